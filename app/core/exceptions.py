import logging
from typing import Any, Dict, Optional
from fastapi import Request
from fastapi.responses import JSONResponse
from app.core.logging import log_request_context

logger = logging.getLogger(__name__)

class APIError(Exception):
    """Base error rendered as a JSON response by api_exception_handler"""
    status_code = 500
    error_code = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}

class AuthenticationError(APIError):
    status_code = 401
    error_code = "authentication_required"

class ValidationError(APIError):
    """Malformed input. Surfaced immediately, never retried."""
    status_code = 400
    error_code = "validation_failed"

class NotFoundError(APIError):
    """Referenced entity is absent for the given tenant"""
    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, entity_id: Any, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{entity} {entity_id} not found", details=details)
        self.entity = entity
        self.entity_id = entity_id

class InvalidTransitionError(APIError):
    status_code = 409
    error_code = "invalid_transition"

class TransientStoreError(APIError):
    """Connection or lock failure. The caller decides whether to retry the whole operation."""
    status_code = 503
    error_code = "store_unavailable"

async def api_exception_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        log_request_context(logger, request, f"❌ {exc.error_code}: {exc.message}", level=logging.ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        }
    )

async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_request_context(logger, request, f"❌ Unhandled error: {exc}", level=logging.ERROR, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "Internal server error",
        }
    )
