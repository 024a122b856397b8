"""
ArenaGuard - FastAPI Application
================================

FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from arenaguard import __version__
from arenaguard.core.errors import ArenaGuardError, ConflictError, Timeout
from arenaguard.core.logger import logger
from arenaguard.api.config import get_api_config
from arenaguard.api.errors import ErrorCode, code_for, domain_error_response, error_response
from arenaguard.api.routers import (
    health_router,
    auth_router,
    communities_router,
    roles_router,
    channels_router,
    invitations_router,
    tickets_router,
    moderation_router,
    mentions_router,
)


# =============================================================================
# OpenAPI Documentation
# =============================================================================

API_PREFIX = "/api/arena"

API_DESCRIPTION = """
## ArenaGuard API

Access control and moderation for tournament communities: roles and
channel overwrites, invitation codes, support tickets, audited moderation
actions and mention targeting.

### Authentication

Every endpoint except `/health` requires a bearer token whose subject is
the caller's user id.

```
Authorization: Bearer <access_token>
```

### Error Responses

All errors follow a consistent format:

```json
{
    "success": false,
    "error_code": "INVITATION_EXPIRED",
    "message": "Invitation has expired",
    "details": {"invite_code": "AB3DE9XZ"}
}
```
"""

OPENAPI_TAGS = [
    {"name": "Health", "description": "Health check and status endpoints"},
    {"name": "Auth", "description": "Caller identity"},
    {"name": "Communities", "description": "Community setup, membership and effective permissions"},
    {"name": "Roles", "description": "Roles, permission sets and assignment"},
    {"name": "Channels", "description": "Channels and per-channel overwrites"},
    {"name": "Invitations", "description": "Invitation codes and redemption"},
    {"name": "Tickets", "description": "Support ticket workflow"},
    {"name": "Moderation", "description": "Moderation actions and the audit chain"},
    {"name": "Mentions", "description": "Mention authorization and recipient expansion"},
]


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Handles startup and shutdown events.
    """
    logger.tree("API Starting", [
        ("Version", __version__),
        ("Prefix", API_PREFIX),
    ], emoji="🚀")

    yield

    logger.tree("API Stopping", [], emoji="🛑")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    config = get_api_config()

    app = FastAPI(
        title="ArenaGuard API",
        description=API_DESCRIPTION,
        version=__version__,
        docs_url=f"{API_PREFIX}/docs" if config.debug else None,
        redoc_url=f"{API_PREFIX}/redoc" if config.debug else None,
        openapi_url=f"{API_PREFIX}/openapi.json" if config.debug else None,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # ==========================================================================
    # Middleware
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================================================
    # Exception Handlers
    # ==========================================================================

    @app.exception_handler(ArenaGuardError)
    async def domain_exception_handler(request: Request, exc: ArenaGuardError):
        """Map service errors to their status codes."""
        if isinstance(exc, (ConflictError, Timeout)):
            logger.warning("API Request Contended", [
                ("Path", str(request.url.path)[:50]),
                ("Method", request.method),
                ("Code", exc.code),
            ])
        elif code_for(exc) == ErrorCode.SERVER_ERROR:
            logger.error("Unmapped Service Error", [
                ("Path", str(request.url.path)[:50]),
                ("Code", exc.code),
                ("Error", exc.message[:100]),
            ])
        else:
            logger.debug("API Request Rejected", [
                ("Path", str(request.url.path)[:50]),
                ("Method", request.method),
                ("Code", exc.code),
            ])
        return domain_error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions with consistent error format."""
        logger.error("Unhandled API Error", [
            ("Path", str(request.url.path)[:50]),
            ("Method", request.method),
            ("Error Type", type(exc).__name__),
            ("Error", str(exc)[:100]),
        ])

        return error_response(
            ErrorCode.SERVER_ERROR,
            details={"path": str(request.url.path)} if config.debug else None,
        )

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(communities_router, prefix=API_PREFIX)
    app.include_router(roles_router, prefix=API_PREFIX)
    app.include_router(channels_router, prefix=API_PREFIX)
    app.include_router(invitations_router, prefix=API_PREFIX)
    app.include_router(tickets_router, prefix=API_PREFIX)
    app.include_router(moderation_router, prefix=API_PREFIX)
    app.include_router(mentions_router, prefix=API_PREFIX)

    # Root health check (for load balancers)
    @app.get("/health")
    async def root_health():
        return {"status": "healthy"}

    return app


# =============================================================================
# Module-level app for uvicorn
# =============================================================================

# This allows running with: uvicorn arenaguard.api.app:app
app = create_app()


__all__ = ["create_app", "app", "API_PREFIX"]
