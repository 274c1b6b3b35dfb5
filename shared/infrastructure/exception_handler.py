"""
DRF exception handler for domain errors.

Translates the domain error kinds raised by application services into HTTP
responses. Everything else falls through to the stock DRF handler.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from shared.domain.exceptions import (
    ConflictError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        http_status = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc}"
        )
        payload = {"detail": str(exc), "code": exc.code}
        if exc.details:
            payload["errors"] = exc.details
        return Response(payload, status=http_status)
    return drf_exception_handler(exc, context)
