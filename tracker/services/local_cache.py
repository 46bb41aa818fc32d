"""
Local durable cache for the client.

Holds the report collection and the logged-in user between runs, the way the
browser dashboard kept them in local storage. Values are JSON documents.

Backends:
  - FileCacheBackend: one JSON file on disk (TRACKER_CACHE_PATH)
  - MemoryCacheBackend: plain dict for tests and throwaway sessions
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class MemoryCacheBackend:
    """Dict-backed cache; values are stored as JSON text like the file backend."""

    def __init__(self):
        self._store: dict[str, str] = {}

    def get(self, key):
        return self._store.get(key)

    def set(self, key, value):
        self._store[key] = value

    def delete(self, key):
        self._store.pop(key, None)


class FileCacheBackend:
    """Single JSON file holding every key.

    Writes go to a sibling temp file first and are moved into place, so a
    crash mid-write leaves the previous cache intact.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Local cache %s unreadable (%s); starting empty", self.path, exc)
            return {}

    def _write_all(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key):
        return self._read_all().get(key)

    def set(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class LocalCache:
    """JSON get/set/delete over a backend.

    Usage:
        cache = LocalCache.from_path("~/.tracker/cache.json")
        cache.set("fmsc_reports_data", [...])
    """

    def __init__(self, backend=None):
        self._backend = backend or MemoryCacheBackend()

    @classmethod
    def from_path(cls, path) -> "LocalCache":
        return cls(FileCacheBackend(Path(path).expanduser()))

    def get(self, key, default=None):
        raw = self._backend.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Cached value for %s is corrupt; ignoring it", key)
            return default

    def set(self, key, value) -> None:
        self._backend.set(key, json.dumps(value, ensure_ascii=False))

    def delete(self, key) -> None:
        self._backend.delete(key)
