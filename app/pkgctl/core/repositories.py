"""Persisted list of catalog source URLs.

The list is stored under the ``repositories`` key: the parent holds the
number of entries and each child ``repositories/<n>`` (1-based) holds one
URL in its ``repository`` value.
"""

import logging
from urllib.parse import urlparse

from pkgctl.core.errors import StoreError
from pkgctl.core.store import KeyValueStore

logger = logging.getLogger(__name__)

REPOSITORIES_KEY = "repositories"


def is_absolute_url(url: str) -> bool:
    """Check whether the value is an absolute URL usable as a catalog source."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return bool(parsed.path)
    return bool(parsed.scheme) and bool(parsed.netloc)


def get_repository_urls(store: KeyValueStore) -> list[str]:
    """Read the configured catalog URLs in order.

    Entries that cannot be read are skipped so that a damaged entry does
    not hide the remaining ones.

    Args:
        store: Store holding the list.

    Returns:
        List of absolute URLs; empty if nothing is configured.
    """
    header = store.read(REPOSITORIES_KEY)
    if header is None:
        return []

    try:
        size = int(header.get("size", "0"))
    except ValueError:
        logger.warning("Invalid repository list size: %r", header.get("size"))
        return []

    urls: list[str] = []
    for i in range(1, size + 1):
        try:
            entry = store.read(f"{REPOSITORIES_KEY}/{i}")
        except StoreError as e:
            logger.warning("Cannot read repository entry %d: %s", i, e)
            continue
        if entry and entry.get("repository"):
            urls.append(entry["repository"])
    return urls


def set_repository_urls(store: KeyValueStore, urls: list[str]) -> None:
    """Replace the configured catalog URLs.

    Args:
        store: Store holding the list.
        urls: Absolute URLs in priority order.

    Raises:
        ValueError: If a URL is not absolute.
        StoreError: If the store cannot be written.
    """
    for url in urls:
        if not is_absolute_url(url):
            msg = f"Not an absolute URL: {url!r}"
            raise ValueError(msg)

    store.remove(REPOSITORIES_KEY)
    store.write(REPOSITORIES_KEY, {"size": str(len(urls))})
    for i, url in enumerate(urls, start=1):
        store.write(f"{REPOSITORIES_KEY}/{i}", {"repository": url})


def add_repository_url(store: KeyValueStore, url: str) -> bool:
    """Append a catalog URL unless it is already configured.

    Returns:
        True if the URL was added.
    """
    urls = get_repository_urls(store)
    if url in urls:
        return False
    set_repository_urls(store, [*urls, url])
    return True


def remove_repository_url(store: KeyValueStore, url: str) -> bool:
    """Remove a catalog URL.

    Returns:
        True if the URL was configured and has been removed.
    """
    urls = get_repository_urls(store)
    if url not in urls:
        return False
    set_repository_urls(store, [u for u in urls if u != url])
    return True
