"""Core engine: job tree, registry, catalog, downloader, planner and executor."""
