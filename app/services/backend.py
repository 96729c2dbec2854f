# app/services/backend.py
from __future__ import annotations
from datetime import timedelta
from fnmatch import fnmatchcase
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple, Union
import logging
import math
import threading
import time

import redis

from app.errors import BackendError

logger = logging.getLogger(__name__)

Ttl = Union[int, timedelta]


def ttl_seconds(ttl: Optional[Ttl]) -> Optional[int]:
    """Normalize a TTL argument to whole seconds (None means no expiry)."""
    if ttl is None:
        return None
    # Sub-second timedeltas round up to the next whole second
    secs = math.ceil(ttl.total_seconds()) if isinstance(ttl, timedelta) else int(ttl)
    if secs <= 0:
        raise ValueError(f"TTL must be positive, got {ttl!r}")
    return secs


class KeyValueBackend(Protocol):
    """
    The primitives the record stores need. Anything Redis-compatible fits.
    """

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes, ttl: Optional[Ttl] = None,
            keep_ttl: bool = False) -> None: ...

    def delete(self, *keys: str) -> int: ...

    def exists(self, key: str) -> bool: ...

    def expire(self, key: str, ttl: Ttl) -> bool: ...

    def hash_get_all(self, key: str) -> Dict[str, bytes]: ...

    def hash_set(self, key: str, field: str, value: bytes) -> None: ...

    def hash_delete_field(self, key: str, field: str) -> int: ...

    def list_keys(self, pattern: str) -> Iterator[str]: ...

    def flush_all(self) -> None: ...


class RedisBackend:
    """
    redis-py adapter. Raw bytes in and out (no decode_responses), key names
    decoded to str. Every redis error surfaces as BackendError.
    """

    def __init__(self, client: "redis.Redis"):
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: Optional[float] = None) -> "RedisBackend":
        return cls(redis.from_url(url, socket_timeout=socket_timeout))

    def _call(self, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except redis.RedisError as e:
            raise BackendError(str(e)) from e

    def get(self, key: str) -> Optional[bytes]:
        return self._call(self._client.get, key)

    def set(self, key: str, value: bytes, ttl: Optional[Ttl] = None,
            keep_ttl: bool = False) -> None:
        secs = ttl_seconds(ttl)
        if secs:
            self._call(self._client.set, key, value, ex=secs)
        elif keep_ttl:
            self._call(self._client.set, key, value, keepttl=True)
        else:
            self._call(self._client.set, key, value)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self._call(self._client.delete, *keys))

    def exists(self, key: str) -> bool:
        return bool(self._call(self._client.exists, key))

    def expire(self, key: str, ttl: Ttl) -> bool:
        return bool(self._call(self._client.expire, key, ttl_seconds(ttl)))

    def hash_get_all(self, key: str) -> Dict[str, bytes]:
        raw = self._call(self._client.hgetall, key) or {}
        return {_text(k): v for k, v in raw.items()}

    def hash_set(self, key: str, field: str, value: bytes) -> None:
        self._call(self._client.hset, key, field, value)

    def hash_delete_field(self, key: str, field: str) -> int:
        return int(self._call(self._client.hdel, key, field))

    def list_keys(self, pattern: str) -> Iterator[str]:
        # SCAN cursor: lazy and non-blocking, may miss or repeat keys changed mid-scan
        try:
            for key in self._client.scan_iter(match=pattern):
                yield _text(key)
        except redis.RedisError as e:
            raise BackendError(str(e)) from e

    def flush_all(self) -> None:
        self._call(self._client.flushall)


def _text(k: Union[str, bytes]) -> str:
    return k.decode("utf-8") if isinstance(k, bytes) else k


class InMemoryBackend:
    """
    Process-local stand-in for Redis (selected by a memory:// URL).
    Expiry is lazy: an expired key disappears the next time anything touches it.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at); value is bytes or Dict[str, bytes]
        self._data: Dict[str, Tuple[object, Optional[float]]] = {}

    def _live(self, key: str):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def _deadline(self, ttl: Optional[Ttl]) -> Optional[float]:
        secs = ttl_seconds(ttl)
        return self._clock() + secs if secs else None

    def _expect(self, entry, kind: type):
        if entry is not None and not isinstance(entry[0], kind):
            raise BackendError("WRONGTYPE Operation against a key holding the wrong kind of value")

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._live(key)
            self._expect(entry, bytes)
            return entry[0] if entry else None

    def set(self, key: str, value: bytes, ttl: Optional[Ttl] = None,
            keep_ttl: bool = False) -> None:
        with self._lock:
            deadline = self._deadline(ttl)
            if deadline is None and keep_ttl:
                entry = self._live(key)
                deadline = entry[1] if entry else None
            self._data[key] = (bytes(value), deadline)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._live(key) is not None:
                    del self._data[key]
                    removed += 1
        return removed

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def expire(self, key: str, ttl: Ttl) -> bool:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            self._data[key] = (entry[0], self._deadline(ttl))
            return True

    def hash_get_all(self, key: str) -> Dict[str, bytes]:
        with self._lock:
            entry = self._live(key)
            self._expect(entry, dict)
            return dict(entry[0]) if entry else {}

    def hash_set(self, key: str, field: str, value: bytes) -> None:
        with self._lock:
            entry = self._live(key)
            self._expect(entry, dict)
            if entry is None:
                entry = ({}, None)
                self._data[key] = entry
            entry[0][field] = bytes(value)

    def hash_delete_field(self, key: str, field: str) -> int:
        with self._lock:
            entry = self._live(key)
            self._expect(entry, dict)
            if entry is None or field not in entry[0]:
                return 0
            del entry[0][field]
            # Redis drops a hash once its last field is gone
            if not entry[0]:
                del self._data[key]
            return 1

    def list_keys(self, pattern: str) -> Iterator[str]:
        with self._lock:
            matched = [k for k in list(self._data) if fnmatchcase(k, pattern) and self._live(k)]
        # Yield outside the lock so callers can touch the backend while iterating
        for k in matched:
            yield k

    def flush_all(self) -> None:
        with self._lock:
            self._data.clear()
        logger.debug("in-memory backend flushed")
