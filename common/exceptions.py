import logging

from django.conf import settings
from django.utils import timezone
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """
    Base class for domain errors raised by services.
    Carries the HTTP status and a machine-friendly code used by the API layer.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_message = "Request could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found."


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Not authorized to perform this action."


class InvalidState(MarketplaceError):
    code = "invalid_state"
    default_message = "Action not permitted in the current state."


class InvalidOperation(MarketplaceError):
    code = "invalid_operation"
    default_message = "Operation not permitted."


class ValidationFailed(MarketplaceError):
    code = "validation_failed"
    default_message = "Validation failed."


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Resource already exists."


class DependencyFailure(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "dependency_failure"
    default_message = "Internal server error"


def _envelope(message, code, status_code, **extra):
    payload = {
        "error": message,
        "code": code,
        "status_code": status_code,
        "timestamp": timezone.now().isoformat(),
    }
    payload.update(extra)
    return payload


def custom_exception_handler(exc, context):
    """
    Attach status code and a machine-friendly code field to responses.
    Domain errors, DRF errors and unexpected failures share one envelope.
    """
    if isinstance(exc, MarketplaceError):
        return Response(_envelope(exc.message, exc.code, exc.status_code), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            response.data = _envelope("Validation failed", "validation_failed", response.status_code,
                                      details=response.data)
        else:
            detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
            code = getattr(detail, "code", None) or getattr(exc, "default_code", "error")
            response.data = _envelope(str(detail), code, response.status_code)
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "unknown view")
    extra = {}
    if settings.DEBUG:
        extra["trace"] = repr(exc)
    return Response(
        _envelope("Internal server error", "server_error", status.HTTP_500_INTERNAL_SERVER_ERROR, **extra),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
