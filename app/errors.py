# app/errors.py
from __future__ import annotations
from typing import Optional


class StoreError(Exception):
    """Base class for record store failures."""


class NotFoundError(StoreError, KeyError):
    def __init__(self, id: int, key: str):
        self.id = id
        self.key = key
        super().__init__(f"Product not found with id: {id}")

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class DeserializationError(StoreError, ValueError):
    """
    Stored data under `key` could not be decoded into a Product.
    `field` names the offending hash field when the field encoding is involved.
    """

    def __init__(self, key: str, message: str, field: Optional[str] = None):
        self.key = key
        self.field = field
        where = f"{key}[{field}]" if field else key
        super().__init__(f"Cannot decode {where}: {message}")


class BackendError(StoreError):
    """Connectivity or command failure reported by the key-value backend."""
