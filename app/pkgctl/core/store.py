"""Persisted key-value store.

The registry and the repository list keep their state in a store that
maps hierarchical keys ("packages/org.gnu.Emacs-29.1") to small string
dictionaries. Swapping the backend does not touch registry logic.
"""

import logging
import os
import threading
import tomllib
from abc import ABC, abstractmethod
from pathlib import Path
from tempfile import NamedTemporaryFile

import tomli_w

from pkgctl.core.errors import StoreError

logger = logging.getLogger(__name__)


def _check_key(key: str) -> str:
    if not key or key.startswith("/") or key.endswith("/") or "//" in key:
        msg = f"Invalid store key: {key!r}"
        raise ValueError(msg)
    return key


class KeyValueStore(ABC):
    """Abstract hierarchical key-value store.

    Keys are '/'-separated paths. Every key holds a dictionary of string
    values.
    """

    @abstractmethod
    def read(self, key: str) -> dict[str, str] | None:
        """Return the values stored under the key or None if it is absent.

        Raises:
            StoreError: If the backend cannot be read.
        """

    @abstractmethod
    def write(self, key: str, values: dict[str, str]) -> None:
        """Replace the values stored under the key.

        Raises:
            StoreError: If the backend cannot be written.
        """

    @abstractmethod
    def children(self, prefix: str) -> list[str]:
        """Return the names of the direct children of a key, sorted.

        Raises:
            StoreError: If the backend cannot be read.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove the key and everything below it. Missing keys are ignored.

        Raises:
            StoreError: If the backend cannot be written.
        """


class MemoryStore(KeyValueStore):
    """Store keeping everything in memory.

    Subclasses persist the data by overriding :meth:`_load` and
    :meth:`_commit`.
    """

    def __init__(self, data: dict[str, dict[str, str]] | None = None) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, str]] = {k: dict(v) for k, v in (data or {}).items()}

    def _load(self) -> None:
        """Hook called before every access."""

    def _commit(self) -> None:
        """Hook called after every mutation."""

    def read(self, key: str) -> dict[str, str] | None:
        with self._lock:
            self._load()
            values = self._data.get(_check_key(key))
            return dict(values) if values is not None else None

    def write(self, key: str, values: dict[str, str]) -> None:
        with self._lock:
            self._load()
            self._data[_check_key(key)] = {k: str(v) for k, v in values.items()}
            self._commit()

    def children(self, prefix: str) -> list[str]:
        with self._lock:
            self._load()
            start = f"{_check_key(prefix)}/"
            names = {key[len(start) :].split("/", 1)[0] for key in self._data if key.startswith(start)}
            return sorted(names)

    def remove(self, key: str) -> None:
        with self._lock:
            self._load()
            key = _check_key(key)
            doomed = [k for k in self._data if k == key or k.startswith(f"{key}/")]
            if not doomed:
                return
            for k in doomed:
                del self._data[k]
            self._commit()

    def snapshot(self) -> dict[str, dict[str, str]]:
        """Return a deep copy of all stored data."""
        with self._lock:
            self._load()
            return {k: dict(v) for k, v in self._data.items()}


class TomlStore(MemoryStore):
    """Store persisted as a single TOML document.

    The file is read lazily on first access and rewritten atomically after
    each mutation (temporary file in the same directory + ``os.replace``).

    Attributes:
        path: Location of the TOML document.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        if self.path.exists():
            try:
                with open(self.path, "rb") as f:
                    raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise StoreError(f"Invalid TOML syntax in {self.path}: {e}") from e
            except OSError as e:
                raise StoreError(f"Failed to read {self.path}: {e}") from e
            self._data = {
                key: {k: str(v) for k, v in values.items()}
                for key, values in raw.items()
                if isinstance(values, dict)
            }
            logger.debug("Loaded %d key(s) from %s", len(self._data), self.path)
        self._loaded = True

    def _commit(self) -> None:
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="wb",
                dir=self.path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                tomli_w.dump(self._data, f)
            os.replace(str(tmp_path), str(self.path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise StoreError(f"Failed to write {self.path}: {e}") from e
