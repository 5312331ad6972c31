"""Persisted key-value store for bookmarks, source state, settings and cache.

Values are opaque strings. Reads never raise: a missing or unreadable key is
reported as ``None``. Writes raise ``OSError`` and leave it to the caller to
decide whether the failure matters.
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path

from .logging_config import create_execution_logger

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """Abstract base class for key-value backends."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent or unreadable."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One file per key under a data directory."""

    def __init__(self, data_dir: Path, execution_id: str | None = None):
        self.data_dir = Path(data_dir)
        self.logger = create_execution_logger("store", execution_id)

    def _key_to_path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._key_to_path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(
                f"Failed to read key {key}: {e}", key=key, error=str(e)
            )
            return None

    def set(self, key: str, value: str) -> None:
        path = self._key_to_path(key)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written value
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self._key_to_path(key).unlink(missing_ok=True)
