# server/http_app.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import Settings
from app.di import build_container
from app.errors import DeserializationError, NotFoundError
from app.logging import configure_logging
from app.services.housekeeping import flush_on_startup

from server.registry import ProductToolHandlers, build_tool_registry, list_tools_payload, dispatch_tool_call

settings = Settings()
container = build_container(settings)
REGISTRY = build_tool_registry(ProductToolHandlers(container))


PROTOCOL_VERSION = "2025-03-26"  # aligns with current spec draft dates


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    flush_on_startup(container.backend, settings.FLUSH_ON_STARTUP)
    yield


app = FastAPI(title="Product Store MCP HTTP Server", version="0.1.0", lifespan=lifespan)

# ---------- Security: Origin validation & Bearer token ----------

def _origin_allowed(req: Request) -> bool:
    origin = req.headers.get("origin")
    if not origin:
        return settings.MCP_HTTP_ALLOW_NO_ORIGIN
    allowed = {o.strip().lower() for o in settings.MCP_HTTP_ALLOWED_ORIGINS.split(",") if o.strip()}
    return origin.lower() in allowed

def _require_auth(req: Request):
    auth = req.headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    token = auth.split(" ", 1)[1]
    if token != settings.MCP_HTTP_BEARER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid Bearer token")

@app.middleware("http")
async def origin_validation_mw(request: Request, call_next):
    # MCP spec requires Origin validation to prevent DNS rebinding
    # If provided and not allowed → 403
    if not _origin_allowed(request):
        return JSONResponse({"error": {"code": 403, "message": "Forbidden origin"}}, status_code=403)
    return await call_next(request)


def _jsonrpc_error(id_: Any, code: int, message: str, data: Any | None = None) -> JSONResponse:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "error": {"code": code, "message": message}}
    if data is not None:
        body["error"]["data"] = data
    return JSONResponse(body)

def _jsonrpc_result(id_: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": id_, "result": result})


# ---------- MCP JSON-RPC endpoint (Streamable HTTP) ----------

@app.post(settings.MCP_HTTP_PATH)
async def mcp_endpoint(request: Request):
    _require_auth(request)

    try:
        payload = await request.json()
    except ValueError:
        return _jsonrpc_error(None, -32700, "Parse error")

    id_ = payload.get("id")
    method = payload.get("method")
    params = payload.get("params", {})

    if method == "initialize":
        return _jsonrpc_result(id_, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": { "tools": { "listChanged": True } },
            "serverInfo": { "name": "product-store-mcp-http", "version": "0.1.0" }
        })

    if method == "tools/list":
        return _jsonrpc_result(id_, list_tools_payload(REGISTRY))

    if method == "tools/call":
        name = params.get("name")
        args = params.get("arguments", {})
        try:
            result = dispatch_tool_call(REGISTRY, name, args)
        # NotFoundError is also a KeyError, so it must be matched first
        except NotFoundError as nf:
            return _jsonrpc_error(id_, -32004, "Not found", str(nf))
        except DeserializationError as de:
            return _jsonrpc_error(id_, -32005, "Stored data malformed", str(de))
        except ValidationError as ve:
            return _jsonrpc_error(id_, -32602, "Invalid params", ve.errors(include_url=False, include_context=False, include_input=False))
        except KeyError as ke:
            return _jsonrpc_error(id_, -32601, str(ke))
        except Exception as e:
            return _jsonrpc_error(id_, -32603, "Internal error", str(e))

        content_block = (
            {"type": "json", "json": result}
            if isinstance(result, (dict, list))
            else {"type": "text", "text": str(result)}
        )
        return _jsonrpc_result(id_, {"content": [content_block], "isError": False})

    return _jsonrpc_error(id_, -32601, f"Method not found: {method}")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server.http_app:app",
        host=settings.MCP_HTTP_HOST,
        port=settings.MCP_HTTP_PORT,
        reload=False,
    )
