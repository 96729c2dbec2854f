# app/services/hash_store.py
from __future__ import annotations
from typing import Iterator, Optional
import logging

from app.errors import NotFoundError
from app.models import Product, decode_fields, encode_fields, encode_price
from app.services.backend import KeyValueBackend, Ttl
from app.services.base_store import RecordStore

logger = logging.getLogger(__name__)


class HashRecordStore(RecordStore):
    """
    Field-per-hash persistence: `<prefix><id>` -> {id, name, price}.
    Partial updates touch only the changed fields.
    """

    def __init__(self, backend: KeyValueBackend, prefix: str = "product:hashOps:"):
        super().__init__(backend, prefix)

    def save(self, product: Product, ttl: Optional[Ttl] = None) -> str:
        key = self.key_for(product.id)
        for field, value in encode_fields(product).items():
            self.backend.hash_set(key, field, value)
        if ttl is not None:
            self.backend.expire(key, ttl)
        logger.debug("saved %s ttl=%s", key, ttl)
        return key

    def get(self, id: int) -> Optional[Product]:
        key = self.key_for(id)
        fields = self.backend.hash_get_all(key)
        if not fields:
            return None
        return decode_fields(key, fields)

    def list_all(self) -> Iterator[Product]:
        for key in self._keys():
            fields = self.backend.hash_get_all(key)
            if not fields:
                logger.warning("skipping %s: vanished", key)
                continue
            yield decode_fields(key, fields)

    def update_fields(self, id: int, name: Optional[str] = None,
                      price: Optional[float] = None) -> None:
        key = self.key_for(id)
        # Encode first so a bad price writes nothing
        new_price = encode_price(price) if price is not None else None
        # Existence check and writes are separate round-trips
        if not self.backend.exists(key):
            raise NotFoundError(id, key)

        if name is not None and name.strip():
            self.backend.hash_set(key, "name", name.encode("utf-8"))
        if new_price is not None:
            self.backend.hash_set(key, "price", new_price)

    def replace(self, product: Product) -> str:
        """Overwrite every field of an existing record; TTL is untouched."""
        key = self.key_for(product.id)
        fields = encode_fields(product)
        if not self.backend.exists(key):
            raise NotFoundError(product.id, key)
        for field, value in fields.items():
            self.backend.hash_set(key, field, value)
        return key
