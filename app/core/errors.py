"""
Central error handling for EOD Monitor Backend

Every policy rejection is raised as one of the HTTPException subclasses below
so that the client can tell "session expired" from "insufficient role" from
"viewer access revoked" by the stable ``code`` (and ``reason`` for 403s).
"""
import logging
import traceback
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AccessError(HTTPException):
    """Base class for rejections with a machine-readable code"""

    code = "ERROR"
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Request rejected"

    def __init__(self, detail: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.default_detail,
        )
        self.reason = reason


class Unauthenticated(AccessError):
    code = "UNAUTHENTICATED"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class InvalidCredentials(AccessError):
    code = "INVALID_CREDENTIALS"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid username or password"


class ForbiddenReason:
    INSUFFICIENT_ROLE = "insufficient_role"
    NOT_OWNER = "not_owner"
    REPORT_LOCKED = "report_locked"
    VIEWER_READ_ONLY = "viewer_read_only"


class Forbidden(AccessError):
    code = "FORBIDDEN"
    status_code_default = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"

    def __init__(self, detail: Optional[str] = None, reason: str = ForbiddenReason.INSUFFICIENT_ROLE):
        super().__init__(detail=detail, reason=reason)


class ViewerExpired(AccessError):
    code = "VIEWER_EXPIRED"
    status_code_default = status.HTTP_403_FORBIDDEN
    default_detail = "Viewer access has expired or been revoked"


class ValidationFailed(AccessError):
    code = "VALIDATION"
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request data"


class WeakPassword(ValidationFailed):
    code = "WEAK_PASSWORD"
    default_detail = "Password must be at least 6 characters"


class DuplicateUsername(AccessError):
    code = "DUPLICATE_USERNAME"
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Username already exists"


class NotFound(AccessError):
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class CannotDeleteSelf(AccessError):
    code = "CANNOT_DELETE_SELF"
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "You cannot delete your own account"


def _error_content(request: Request, status_code: int, code: str, detail, reason: Optional[str] = None) -> dict:
    content = {
        "error": True,
        "status_code": status_code,
        "code": code,
        "detail": detail,
        "path": str(request.url.path),
    }
    if reason:
        content["reason"] = reason
    return content


_DEFAULT_CODES = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
}


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException (and the AccessError taxonomy) with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    code = getattr(exc, "code", None) or _DEFAULT_CODES.get(exc.status_code, "ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, exc.status_code, code, exc.detail, getattr(exc, "reason", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError as a 400 VALIDATION error

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    content = _error_content(
        request, status.HTTP_400_BAD_REQUEST, ValidationFailed.code, "Validation error: Invalid request data"
    )
    if settings.APP_ENV != "prod":
        # ctx may hold exception instances which are not JSON serialisable
        errors = []
        for e in exc.errors():
            err = dict(e)
            if "ctx" in err and isinstance(err["ctx"], dict):
                err["ctx"] = {
                    k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                    for k, v in err["ctx"].items()
                }
            err.pop("input", None)
            errors.append(err)
        content["detail"] = "Validation error"
        content["errors"] = errors
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        detail = "Internal server error"
        content = _error_content(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL", detail)
    else:
        content = _error_content(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL", str(exc))
        content["traceback"] = traceback.format_exc() if settings.APP_ENV == "local" else None
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
