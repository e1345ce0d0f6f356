"""Key-value persistence: Redis, JSON file, or in-memory, plus JSON helpers.

All operations are wrapped in try/except; a store failure never breaks
navigation.  Reads fall back to ``None``, writes are dropped with a log line.
"""
from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key → string value store (``get``/``set``/``remove``)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store; ``ttl`` is ignored (freshness lives in the payload)."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class FileStore(KeyValueStore):
    """Single JSON document on disk; survives restarts like a browser's local storage."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as exc:
            log.warning("Store file %s unreadable (%s), starting empty", self.path, exc)
            return {}

    def _dump(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            log.warning("Store file %s not writable (%s)", self.path, exc)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._dump(data)


class RedisStore(KeyValueStore):
    """redis-py backed store; every call degrades to a no-op on Redis errors."""

    def __init__(self, client):
        self.r = client

    def get(self, key: str) -> Optional[str]:
        try:
            return self.r.get(key)
        except Exception as exc:
            log.debug("Redis get %s failed: %s", key, exc)
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            if ttl:
                self.r.set(key, value, ex=ttl)
            else:
                self.r.set(key, value)
        except Exception as exc:
            log.debug("Redis set %s failed: %s", key, exc)

    def remove(self, key: str) -> None:
        try:
            self.r.delete(key)
        except Exception as exc:
            log.debug("Redis delete %s failed: %s", key, exc)


# ── Singletons ───────────────────────────────────────────────────────────

_redis_client = None
_redis_checked = False
_default_store: Optional[KeyValueStore] = None


def get_redis():
    """Lazy singleton.  Returns ``redis.Redis`` or ``None`` if unavailable."""
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client
    _redis_checked = True
    try:
        from sea_nav.config import settings

        if not settings.redis_url:
            return None
        import redis

        _redis_client = redis.Redis.from_url(
            settings.redis_url, decode_responses=True, socket_connect_timeout=3
        )
        _redis_client.ping()
        log.info("Redis connected: %s", settings.redis_url)
    except Exception as exc:
        log.warning("Redis unavailable (%s), using file store", exc)
        _redis_client = None
    return _redis_client


def get_store() -> KeyValueStore:
    """Process-wide default store: Redis when configured, else a JSON file."""
    global _default_store
    if _default_store is not None:
        return _default_store

    r = get_redis()
    if r is not None:
        _default_store = RedisStore(r)
    else:
        from sea_nav.config import settings

        _default_store = FileStore(settings.resolved_data_dir() / "store.json")
    return _default_store


# ── JSON helpers ─────────────────────────────────────────────────────────

def cache_get_json(store: KeyValueStore, key: str) -> Optional[Any]:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        log.warning("Discarding undecodable value under %s", key)
        return None


def cache_set_json(store: KeyValueStore, key: str, value: Any, ttl: Optional[int] = None) -> None:
    store.set(key, json.dumps(value), ttl=ttl)
