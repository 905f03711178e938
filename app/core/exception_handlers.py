"""Error responses for the API.

Every error body has the shape {"error": CODE, "message": str, "details"?: ...}.
TaskFlowException subclasses carry their own code. Their HTTP status comes
from _ERROR_CODE_STATUS, falling back to 400.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import TaskFlowException
from app.shared.context import get_request_id

logger = logging.getLogger(__name__)

_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "PERMISSION_DENIED": 403,
    "RESOURCE_NOT_FOUND": 404,
    # Transition and write-race errors are all conflicts with current task state.
    "INVALID_TRANSITION": 409,
    "VERSION_CONFLICT": 409,
    "DUPLICATE_RESOURCE": 409,
    "DOCUMENT_EXISTS": 409,
    "PRECONDITION_FAILED": 409,
}


def _error_response(
    status: int,
    code: str,
    message: Any,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"error": code, "message": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status, content=jsonable_encoder(body), headers=headers)


def _taskflow_exception_handler(request: Request, exc: TaskFlowException) -> JSONResponse:
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status == 409:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    payload = exc.to_dict()
    return _error_response(
        status,
        payload["error"],
        payload["message"],
        payload.get("details"),
        headers={"WWW-Authenticate": "Bearer"} if status == 401 else None,
    )


def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(422, "VALIDATION_ERROR", "Request validation failed", exc.errors())


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code, "HTTP_ERROR", exc.detail, headers=getattr(exc, "headers", None)
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything unmapped; the exception text is only exposed in debug."""
    request_id = get_request_id()
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    details = {"request_id": request_id} if request_id else None
    return _error_response(500, "INTERNAL_ERROR", message, details)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskFlowException, _taskflow_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
