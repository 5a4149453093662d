from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes.v1 import router as v1_router
from core.constants import get_settings
from utils.client_factory import create_http_client, create_openai_client
from utils.db_utils import check_pool_health, create_database_pool, graceful_pool_close
from utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local) - no manual dotenv loading needed
settings = get_settings()

# Log loaded settings in debug mode
if settings.debug:
    from core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(
        f"Settings: app_env={settings.app_env}, "
        f"model={settings.llm_model}, "
        f"db_pool=[{settings.db_pool_min_size},{settings.db_pool_max_size}]"
    )

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown with graceful handling."""
    # One provider client shared by every request
    http_client = create_http_client(read_timeout=settings.llm_read_timeout)
    app.state.llm_client = create_openai_client(
        settings.llm_api_key or "",
        base_url=settings.llm_base_url_str,
        http_client=http_client,
    )
    logger.info(f"Completion provider configured (endpoint: {settings.llm_base_url_str}, model: {settings.llm_model})")

    # Create database pool with production configuration
    app.state.db_pool = await create_database_pool(
        dsn=settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
        connection_timeout=settings.db_connection_timeout,
        statement_cache_size=settings.db_statement_cache_size,
        max_inactive_connection_lifetime=settings.db_max_inactive_connection_lifetime,
    )

    # Verify database connectivity
    health = await check_pool_health(app.state.db_pool)
    if not health["healthy"]:
        logger.error("Database health check failed during startup")
        raise RuntimeError("Database connection failed")
    logger.info(f"Database pool healthy: {health}")

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")

        # Phase 1: Gracefully close database pool
        await graceful_pool_close(app.state.db_pool, timeout=settings.shutdown_timeout)

        # Phase 2: Release provider connections
        await app.state.llm_client.close()
        logger.info("Completion provider client closed")


app = FastAPI(
    title="Chat Relay API",
    description="""
## Chat Relay API

Chat backend that relays conversations to an OpenAI-compatible completion
provider and keeps a per-user conversation history.

### Features
- **Chat Completions**: Whole replies or Server-Sent Event streaming
- **Token Budgeting**: Reply length sized to the remaining context window
- **Conversation History**: Recent chats, full transcripts, deletion

### Authentication
All endpoints except health checks, signup and login require authentication
via JWT Bearer token. Use `/api/v1/auth/login` to obtain tokens.

### Versioning
API uses URL path versioning: `/api/v1/...`
Breaking changes will increment the version number.
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Health",
            "description": "Health check endpoints for monitoring and orchestration",
        },
        {
            "name": "Authentication",
            "description": "Signup, login, and current user profile",
        },
        {
            "name": "Chat",
            "description": "Chat completions, whole or streamed",
        },
        {
            "name": "Chats",
            "description": "Conversation history for the current user",
        },
    ],
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Request context middleware (adds request ID tracking)
# Note: Middleware is executed in reverse order of registration
app.add_middleware(RequestContextMiddleware)

# CORS configuration (uses Settings for origin control)
# Production: Set CORS_ALLOW_ORIGINS to explicit list of allowed domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes - API v1
app.include_router(v1_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        reload_dirs=["src"],
        log_config=None,
    )
