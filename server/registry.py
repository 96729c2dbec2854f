# server/registry.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Type, Optional
import logging
from pydantic import BaseModel

from app.di import Container, build_container
from app.logging import log_tool_call
from app.models import Product
from app.services.base_store import RecordStore

from server.tools.products import (
    ProductIdIn,
    ProductReplaceIn,
    ProductSaveIn,
    ProductScopeIn,
    ProductUpdateIn,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Any]


class ProductToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Keeps all cross-cutting logic and observability in one place.
    """
    def __init__(self, container: Optional[Container] = None):
        self.container = container or build_container()

    def _store(self, encoding: str) -> RecordStore:
        if encoding == "hash":
            return self.container.hash_store
        return self.container.value_store

    def product_save(self, args: ProductSaveIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_save", args.model_dump())
        ttl = args.ttlSec or self.container.settings.DEFAULT_TTL_SEC
        product = Product(id=args.id, name=args.name, price=args.price)
        key = self._store(args.encoding).save(product, ttl)
        return {"ok": True, "key": key}

    def product_get(self, args: ProductIdIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_get", args.model_dump())
        product = self._store(args.encoding).get(args.id)
        return {} if product is None else product.model_dump()

    def product_list(self, args: ProductScopeIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_list", args.model_dump())
        products = [p.model_dump() for p in self._store(args.encoding).list_all()]
        return {"count": len(products), "products": products}

    def product_update(self, args: ProductUpdateIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_update", args.model_dump())
        store = self._store(args.encoding)
        store.update_fields(args.id, name=args.name, price=args.price)
        product = store.get(args.id)
        # May already have expired between the write and the read-back
        return {} if product is None else product.model_dump()

    def product_replace(self, args: ProductReplaceIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_replace", args.model_dump())
        product = Product(id=args.id, name=args.name, price=args.price)
        key = self._store(args.encoding).replace(product)
        return {"ok": True, "key": key}

    def product_delete(self, args: ProductIdIn) -> str:
        log_tool_call(logger, "product_delete", args.model_dump())
        self._store(args.encoding).delete(args.id)
        return "OK"

    def product_delete_all(self, args: ProductScopeIn) -> Dict[str, Any]:
        log_tool_call(logger, "product_delete_all", args.model_dump())
        return {"deleted": self._store(args.encoding).delete_all()}


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(handlers: Optional[ProductToolHandlers] = None) -> Dict[str, ToolSpec]:
    """
    Build a registry once at startup using DI.
    Transport layers (stdio/HTTP) read from this registry to expose tools.
    """
    handlers = handlers or ProductToolHandlers()

    specs = [
        ToolSpec("product_save", "Save a product, optionally with a TTL",
                 ProductSaveIn, handlers.product_save),
        ToolSpec("product_get", "Get a product by id (empty object if missing)",
                 ProductIdIn, handlers.product_get),
        ToolSpec("product_list", "List every stored product",
                 ProductScopeIn, handlers.product_list),
        ToolSpec("product_update", "Update name and/or price of a product",
                 ProductUpdateIn, handlers.product_update),
        ToolSpec("product_replace", "Replace an existing product in full",
                 ProductReplaceIn, handlers.product_replace),
        ToolSpec("product_delete", "Delete one product (no-op if missing)",
                 ProductIdIn, handlers.product_delete),
        ToolSpec("product_delete_all", "Delete every product under the namespace",
                 ProductScopeIn, handlers.product_delete_all),
    ]
    return {spec.name: spec for spec in specs}


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body as per MCP Tools spec.
    """
    tools = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


def dispatch_tool_call(registry: Dict[str, ToolSpec], name: str, arguments: Dict[str, Any]) -> Any:
    """
    Validate args with the tool's Pydantic model, then invoke the named handler.
    """
    if name not in registry:
        raise KeyError(f"Tool not found: {name}")
    spec = registry[name]
    args_obj = spec.input_model(**arguments)
    return spec.handler(args_obj)
