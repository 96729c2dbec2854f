# app/services/base_store.py
from __future__ import annotations
from typing import Iterator
import logging
import re

from app.services.backend import KeyValueBackend

logger = logging.getLogger(__name__)

_GLOB_META = re.compile(r"([*?\[])")


def escape_glob(s: str) -> str:
    # [x] matches a literal x under both Redis and fnmatch globbing
    return _GLOB_META.sub(r"[\1]", s)


class RecordStore:
    """
    Key layout and bulk deletion shared by both encodings.
    Keys are always `<prefix><id>`.
    """

    def __init__(self, backend: KeyValueBackend, prefix: str):
        if not prefix:
            raise ValueError("Key prefix must not be empty")
        self.backend = backend
        self.prefix = prefix

    def key_for(self, id: int) -> str:
        return f"{self.prefix}{int(id)}"

    def _keys(self) -> Iterator[str]:
        return self.backend.list_keys(escape_glob(self.prefix) + "*")

    def delete(self, id: int) -> None:
        self.backend.delete(self.key_for(id))

    def delete_all(self) -> int:
        keys = list(self._keys())
        if not keys:
            return 0
        removed = self.backend.delete(*keys)
        logger.debug("deleted %d keys under %s", removed, self.prefix)
        return removed
