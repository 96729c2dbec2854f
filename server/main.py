# server/main.py
from fastmcp import FastMCP
from app.di import build_container
from app.logging import configure_logging
from app.services.housekeeping import flush_on_startup
from server.registry import ProductToolHandlers
from server.tools.products import register_product_tools

def create_app() -> FastMCP:
    """
    Build DI container, create FastMCP host, and register tools.
    Keep the server (protocol) separate from tool/service logic.
    """
    container = build_container()
    configure_logging(container.settings.LOG_LEVEL)
    flush_on_startup(container.backend, container.settings.FLUSH_ON_STARTUP)

    mcp = FastMCP("ProductStoreMCP", version="0.1.0")

    # Register tools (thin adapters)
    register_product_tools(mcp, ProductToolHandlers(container))

    return mcp


if __name__ == "__main__":
    app = create_app()
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")
