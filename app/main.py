"""taskflow API application.

create_app() only wires things together: lifespan (document store,
WebSocket manager, notifier, bootstrap admin), error mapping, middleware and
the /api/v1 routers. Settings are read when create_app() runs, so tests can
set the environment before importing this module.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.limiter import limiter
from app.middleware import (
    RequestIDMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)

OPENAPI_TAGS = [
    {"name": "tasks", "description": "Task progression, deliveries and comments"},
    {"name": "portal", "description": "Client portal: own tasks and approvals"},
    {"name": "workflows", "description": "Workflow steps and the default workflow"},
    {"name": "task-models", "description": "Templates tasks are created from"},
]


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
        openapi_tags=OPENAPI_TAGS,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Last added runs first: size limit, request id, security headers, CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.request_id_header],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size)

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
