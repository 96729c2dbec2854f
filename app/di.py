# app/di.py
from dataclasses import dataclass
from app.config import Settings
from app.services.backend import InMemoryBackend, KeyValueBackend, RedisBackend
from app.services.hash_store import HashRecordStore
from app.services.value_store import ValueRecordStore

@dataclass
class Container:
    settings: Settings
    backend: KeyValueBackend
    value_store: ValueRecordStore
    hash_store: HashRecordStore

def build_backend(s: Settings) -> KeyValueBackend:
    if s.REDIS_URL.startswith("memory://"):
        return InMemoryBackend()
    return RedisBackend.from_url(s.REDIS_URL, socket_timeout=s.REDIS_SOCKET_TIMEOUT_SEC)

def build_container(settings: Settings | None = None,
                    backend: KeyValueBackend | None = None) -> Container:
    s = settings or Settings()

    v, h = s.VALUE_KEY_PREFIX, s.HASH_KEY_PREFIX
    if v.startswith(h) or h.startswith(v):
        raise ValueError(f"Key prefixes overlap: {v!r} / {h!r}")

    kv = backend if backend is not None else build_backend(s)
    return Container(s, kv, ValueRecordStore(kv, v), HashRecordStore(kv, h))
