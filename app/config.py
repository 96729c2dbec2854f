# app/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Backend: redis://... or memory:// for the in-process store
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    REDIS_SOCKET_TIMEOUT_SEC: float | None = 5.0

    # Key namespaces (must not overlap)
    VALUE_KEY_PREFIX: str = "product:valueOps:"
    HASH_KEY_PREFIX: str = "product:hashOps:"

    # Applied by the tools when a save carries no TTL of its own
    DEFAULT_TTL_SEC: int | None = None

    # Startup housekeeping: FLUSHALL before serving (destructive)
    FLUSH_ON_STARTUP: bool = False

    # HTTP MCP transport
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_HTTP_PORT: int = 8080
    MCP_HTTP_PATH: str = "/mcp"

    # Security: Bearer token and allowed origins
    MCP_HTTP_BEARER_TOKEN: str = "change-me"         # set in .env for prod
    MCP_HTTP_ALLOWED_ORIGINS: str = "http://localhost, http://127.0.0.1"
    MCP_HTTP_ALLOW_NO_ORIGIN: bool = True            # allow non-browser clients

    # Logging
    LOG_LEVEL: str = "INFO"
