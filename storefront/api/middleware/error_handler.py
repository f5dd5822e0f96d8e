"""Turns storefront errors into ErrorResponse bodies."""

import logging
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from storefront.core.exceptions import MalformedRecord, PersistenceExhausted, StorefrontError
from storefront.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

# Errors that mean a store misbehaved rather than the caller
OPERATOR_ERRORS = (PersistenceExhausted, MalformedRecord)


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def _request_context(request: Request) -> dict[str, Any]:
    token = request.headers.get("X-Session-Token") or ""
    return {
        "request_id": request.headers.get("X-Request-ID"),
        "path": request.url.path,
        # Enough of the token to correlate log lines, not enough to reuse it
        "session": token[:8] or None,
    }


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Render anything raised below as a JSON error.

    Storefront errors keep their status, type and details. Store failures are
    logged at error level, caller mistakes at warning. Anything else is a 500
    with the traceback in the log only.
    """
    context = _request_context(request)

    try:
        return await call_next(request)

    except StorefrontError as e:
        if isinstance(e, OPERATOR_ERRORS):
            logger.error("%s on %s: %s", e.error_type, context["path"], e.message, extra=context)
        else:
            logger.warning("%s on %s: %s", e.error_type, context["path"], e.message, extra=context)
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=context["request_id"],
        )

    except HTTPException as e:
        logger.warning("HTTP %s on %s: %s", e.status_code, context["path"], e.detail, extra=context)
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=context["request_id"],
        )

    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, context["path"], extra=context)
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=context["request_id"],
        )
