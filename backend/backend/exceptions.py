"""
Error types shared by every Workbench API module.

All handled errors leave the API as ``{"code", "message", "details"}`` so the
client can branch on ``code`` (billing limits in particular) and show
``message`` verbatim.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rest_framework import exceptions, status

logger = logging.getLogger(__name__)


class WorkbenchError(exceptions.APIException):
    """Base API error carrying a human message, a machine code and details."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "bad_request"
    default_detail = "Request could not be processed."

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.default_detail
        self.error_code = code or self.default_code
        self.details = details or {}
        super().__init__(detail=self.message, code=self.error_code)


class BadRequest(WorkbenchError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "bad_request"


class Unauthorized(WorkbenchError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"
    default_detail = "Sign in required."


class Forbidden(WorkbenchError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"
    default_detail = "You do not have permission to perform this action."


class NotFoundError(WorkbenchError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Not found."


class Conflict(WorkbenchError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class BillingError(WorkbenchError):
    """Raised when the org's subscription or plan limits block a write."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "payment_required"


class ServerError(WorkbenchError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "server_error"
    default_detail = "Internal server error."


def _error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"code": code, "message": message, "details": details or {}}


def workbench_exception_handler(exc, context):
    """DRF exception handler producing the uniform error body."""
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, WorkbenchError):
        response.data = _error_body(exc.error_code, exc.message, exc.details)
        return response

    if isinstance(exc, exceptions.NotAuthenticated):
        response.data = _error_body("not_authenticated", "Sign in required.")
        return response

    if isinstance(exc, exceptions.ValidationError):
        details = exc.detail if isinstance(exc.detail, dict) else {"errors": exc.detail}
        response.data = _error_body("invalid", "Invalid request.", details)
        return response

    detail = getattr(exc, "detail", None)
    message = str(detail) if detail is not None else "Request failed."
    code = getattr(exc, "default_code", "error")
    if hasattr(detail, "code") and detail.code:
        code = detail.code
    response.data = _error_body(code, message)
    return response
