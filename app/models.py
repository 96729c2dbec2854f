# app/models.py
from __future__ import annotations
from typing import Dict, Mapping
import math

from pydantic import BaseModel, ConfigDict, ValidationError

from app.errors import DeserializationError

FIELDS = ("id", "name", "price")


class Product(BaseModel):
    # JSON has no inf/nan; keep both encodings lossless
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: int
    name: str
    price: float


# ---------- Value encoding: whole record as one JSON blob ----------

def encode_value(product: Product) -> bytes:
    return product.model_dump_json().encode("utf-8")


def decode_value(key: str, blob: bytes) -> Product:
    try:
        return Product.model_validate_json(blob)
    except ValidationError as e:
        raise DeserializationError(key, _first_error(e)) from e


# ---------- Field encoding: one hash field per attribute ----------

def encode_fields(product: Product) -> Dict[str, bytes]:
    return {
        "id": str(product.id).encode("utf-8"),
        "name": product.name.encode("utf-8"),
        "price": encode_price(product.price),
    }


def encode_price(price: float) -> bytes:
    price = float(price)
    if not math.isfinite(price):
        raise ValueError(f"Price must be finite, got {price!r}")
    return repr(price).encode("utf-8")


def decode_fields(key: str, fields: Mapping[str, bytes]) -> Product:
    """
    Parse a field map back into a Product. Every field must be present and the
    numeric ones must hold numeric text; anything else is a DeserializationError.
    """
    raw: Dict[str, str] = {}
    for name in FIELDS:
        if name not in fields:
            raise DeserializationError(key, "field missing", field=name)
        try:
            raw[name] = fields[name].decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError(key, "not valid UTF-8", field=name) from e

    try:
        return Product.model_validate(raw)
    except ValidationError as e:
        loc = e.errors()[0]["loc"]
        field = str(loc[0]) if loc else None
        raise DeserializationError(key, _first_error(e), field=field) from e


def _first_error(e: ValidationError) -> str:
    errs = e.errors()
    return errs[0]["msg"] if errs else str(e)
