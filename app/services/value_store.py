# app/services/value_store.py
from __future__ import annotations
from typing import Iterator, Optional
import logging

from app.errors import DeserializationError, NotFoundError
from app.models import Product, decode_value, encode_value
from app.services.backend import KeyValueBackend, Ttl
from app.services.base_store import RecordStore

logger = logging.getLogger(__name__)


class ValueRecordStore(RecordStore):
    """
    Whole-record persistence: each Product is one JSON blob under `<prefix><id>`.

    Undecodable blobs read as absent. update_fields is fetch-modify-write with no
    locking, so two concurrent updates of the same id may lose one change.
    """

    def __init__(self, backend: KeyValueBackend, prefix: str = "product:valueOps:"):
        super().__init__(backend, prefix)

    def save(self, product: Product, ttl: Optional[Ttl] = None) -> str:
        key = self.key_for(product.id)
        self.backend.set(key, encode_value(product), ttl)
        logger.debug("saved %s ttl=%s", key, ttl)
        return key

    def get(self, id: int) -> Optional[Product]:
        return self._load(self.key_for(id))

    def list_all(self) -> Iterator[Product]:
        for key in self._keys():
            product = self._load(key)
            if product is None:
                logger.warning("skipping %s: vanished or undecodable", key)
                continue
            yield product

    def update_fields(self, id: int, name: Optional[str] = None,
                      price: Optional[float] = None) -> Product:
        key = self.key_for(id)
        existing = self._load(key)
        if existing is None:
            raise NotFoundError(id, key)

        changes = {}
        if name is not None and name.strip():
            changes["name"] = name
        if price is not None:
            changes["price"] = float(price)
        # Re-validated so a non-finite price is rejected like on save
        updated = Product.model_validate({**existing.model_dump(), **changes})

        self.backend.set(key, encode_value(updated), keep_ttl=True)
        return updated

    def replace(self, product: Product) -> str:
        """
        Overwrite an existing record in full, keeping its remaining TTL.
        Unlike save, a missing key is a NotFoundError.
        """
        key = self.key_for(product.id)
        if not self.backend.exists(key):
            raise NotFoundError(product.id, key)
        self.backend.set(key, encode_value(product), keep_ttl=True)
        return key

    def _load(self, key: str) -> Optional[Product]:
        blob = self.backend.get(key)
        if blob is None:
            return None
        try:
            return decode_value(key, blob)
        except DeserializationError as e:
            logger.warning("%s", e)
            return None
