# server/tools/products.py
from __future__ import annotations
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field
from fastmcp import FastMCP

Encoding = Literal["value", "hash"]

_ENCODING_HELP = "'value' = one JSON blob per product, 'hash' = one hash field per attribute"


class ProductSaveIn(BaseModel):
    id: int = Field(..., ge=0, description="Product id (also the key suffix)")
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price")
    ttlSec: int | None = Field(
        None, ge=1, le=7 * 24 * 3600, description="Optional TTL in seconds (max 7 days)"
    )
    encoding: Encoding = Field("value", description=_ENCODING_HELP)


class ProductReplaceIn(BaseModel):
    id: int = Field(..., ge=0, description="Id of an existing product")
    name: str = Field(..., min_length=1, description="Replacement name")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Replacement price")
    encoding: Encoding = Field("value", description=_ENCODING_HELP)


class ProductIdIn(BaseModel):
    id: int = Field(..., ge=0, description="Product id")
    encoding: Encoding = Field("value", description=_ENCODING_HELP)


class ProductUpdateIn(BaseModel):
    id: int = Field(..., ge=0, description="Product id")
    name: Optional[str] = Field(None, description="New name (blank keeps the current one)")
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="New price")
    encoding: Encoding = Field("value", description=_ENCODING_HELP)


class ProductScopeIn(BaseModel):
    encoding: Encoding = Field("value", description=_ENCODING_HELP)


def register_product_tools(mcp: FastMCP, handlers):
    """
    Thin adapters over ProductToolHandlers; validation lives in the input models.
    """

    @mcp.tool(name="product_save", description="Save a product, optionally with a TTL")
    def product_save(input: ProductSaveIn) -> Dict[str, Any]:
        return handlers.product_save(input)

    @mcp.tool(name="product_get", description="Get a product by id (empty object if missing)")
    def product_get(input: ProductIdIn) -> Dict[str, Any]:
        return handlers.product_get(input)

    @mcp.tool(name="product_list", description="List every stored product")
    def product_list(input: ProductScopeIn) -> Dict[str, Any]:
        return handlers.product_list(input)

    @mcp.tool(name="product_update", description="Update name and/or price of a product")
    def product_update(input: ProductUpdateIn) -> Dict[str, Any]:
        return handlers.product_update(input)

    @mcp.tool(name="product_replace", description="Replace an existing product in full")
    def product_replace(input: ProductReplaceIn) -> Dict[str, Any]:
        return handlers.product_replace(input)

    @mcp.tool(name="product_delete", description="Delete one product (no-op if missing)")
    def product_delete(input: ProductIdIn) -> str:
        return handlers.product_delete(input)

    @mcp.tool(name="product_delete_all", description="Delete every product under the namespace")
    def product_delete_all(input: ProductScopeIn) -> Dict[str, Any]:
        return handlers.product_delete_all(input)
