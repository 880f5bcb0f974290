"""pkgctl - package lifecycle manager.

Plans and executes install, uninstall and update operations for
versioned software packages described by a catalog.
"""

__version__ = "0.1.0"
