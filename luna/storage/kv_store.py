"""String key-value store backends.

The repository layer only needs a synchronous get/set/remove/clear store of
strings, the same contract as a browser's ``localStorage``.  Two backends are
provided:

    InMemoryStore — process-local dict, used in tests and throwaway sessions
    JsonFileStore — the whole store serialized to one JSON file on disk

Both enforce an optional byte quota and raise ``StorageQuotaError`` when a
write would exceed it.  There is no atomicity across keys.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger("luna.storage.kv_store")


class StorageError(Exception):
    """Base class for key-value store failures."""


class StorageQuotaError(StorageError):
    """Raised when a write would push the store past its byte quota."""


class KeyValueStore(ABC):
    """Abstract string-keyed store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            StorageQuotaError: If the write would exceed the store's quota.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``.  Missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every key in the store."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all keys currently stored."""


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class InMemoryStore(KeyValueStore):
    """Dict-backed store with an optional byte quota.

    Usage::

        store = InMemoryStore(max_bytes=1024)
        store.set("luna_profile", '{"name": "Mai"}')
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)

    @property
    def used_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._data.items())

    def _check_quota(self, key: str, value: str) -> None:
        if self._max_bytes is None:
            return
        current = self._data.get(key)
        used = self.used_bytes - (_entry_size(key, current) if current is not None else 0)
        needed = used + _entry_size(key, value)
        if needed > self._max_bytes:
            raise StorageQuotaError(
                f"Writing {key!r} needs {needed} bytes, quota is {self._max_bytes}"
            )

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore(InMemoryStore):
    """Store persisted as a single JSON object on disk.

    The file is loaded once at construction and rewritten after every
    mutation via a temp file + ``os.replace`` so a crash never leaves a
    half-written file behind.
    """

    def __init__(self, path: Path, max_bytes: int | None = None) -> None:
        super().__init__(max_bytes=max_bytes)
        self._path = Path(path)
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            super().remove(key)
            self._flush()

    def clear(self) -> None:
        super().clear()
        self._flush()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise StorageError(f"Store file {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(f"Store file {self._path} must contain a JSON object")
        logger.debug("Loaded %d keys from %s", len(raw), self._path)
        return {str(k): str(v) for k, v in raw.items()}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".luna-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
