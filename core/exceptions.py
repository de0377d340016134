# core/exceptions.py
from __future__ import annotations

import logging
from typing import Any, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------

class AppError(APIException):
    """
    Base for errors we expect and translate at the API boundary.
    `details` is opaque extra context (processor error, field errors, ...).
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Application error"
    default_code = "APP_ERROR"

    def __init__(self, message: Optional[str] = None, details: Any = None, code: Optional[str] = None):
        self.message = message or self.default_detail
        self.code = code or self.default_code
        self.details = details
        super().__init__(detail=self.message, code=self.code)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"
    default_code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"
    default_code = "NOT_FOUND"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"
    default_code = "AUTHORIZATION_ERROR"


class PaymentError(AppError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = "Payment failed"
    default_code = "PAYMENT_ERROR"


class GatewayError(PaymentError):
    """Processor rejected the call or could not be reached."""
    default_detail = "Payment provider error"


class SignatureError(PaymentError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid webhook signature"
    default_code = "INVALID_SIGNATURE"


class IssuanceError(AppError):
    default_detail = "Failed to generate any credit codes"
    default_code = "ISSUANCE_ERROR"


class ExhaustedError(Exception):
    """Could not find a free code value within the attempt budget."""


# ---------------------------------------------------------------------------
# Boundary translation (REST_FRAMEWORK["EXCEPTION_HANDLER"])
# ---------------------------------------------------------------------------

def error_body(message: str, code: str, details: Any = None, **extra) -> dict:
    error = {"message": message, "code": code}
    if details:
        error["details"] = details
    error.update(extra)
    return {"success": False, "error": error}


def api_exception_handler(exc, context):
    view = context.get("view")
    view_name = view.__class__.__name__ if view else "-"

    if isinstance(exc, AppError):
        if exc.status_code >= 500:
            logger.error("%s failed: %s (%s)", view_name, exc.message, exc.code)
        else:
            logger.info("%s rejected: %s (%s)", view_name, exc.message, exc.code)
        return Response(error_body(exc.message, exc.code, exc.details), status=exc.status_code)

    if isinstance(exc, DRFValidationError):
        return Response(
            error_body("Validation failed", "VALIDATION_ERROR", exc.detail),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, Http404):
        return Response(error_body("Resource not found", "NOT_FOUND"), status=status.HTTP_404_NOT_FOUND)

    # Auth, throttling, method-not-allowed etc. keep DRF's status codes
    response = exception_handler(exc, context)
    if response is not None:
        code = getattr(exc, "default_code", "error")
        message = str(getattr(exc, "detail", "") or exc)
        response.data = error_body(message, str(code).upper())
        return response

    logger.exception("Unhandled error in %s", view_name)
    return Response(
        error_body("Internal server error", "INTERNAL_ERROR"),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
