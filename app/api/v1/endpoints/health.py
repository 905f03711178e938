"""Health check endpoints for liveness and readiness probes."""

import logging

import httpx
from google.auth.exceptions import GoogleAuthError
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.domain.exceptions import TaskFlowException
from app.infrastructure.firebase.collections import COLLECTION_WORKFLOWS
from app.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness: the process is up and serving."""
    return HealthResponse(version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Document store unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 if the document store answers a one-document query; 503 otherwise."""
    settings = get_settings()
    client = request.app.state.document_client
    try:
        async for _ in client.collection(COLLECTION_WORKFLOWS).where(
            "is_default", "==", True
        ).limit(1).stream():
            break
    except (httpx.HTTPError, GoogleAuthError, TaskFlowException) as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message=str(e)).model_dump(),
        )
    return ReadinessResponse(backend=settings.database_backend)
