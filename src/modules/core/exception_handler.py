"""DRF exception handler producing the standardized error body.

Every error response has the shape::

    {"type": "validation_error" | "client_error" | "domain_error",
     "errors": [{"code": ..., "detail": ..., "attr": ..., "meta": {...}}]}

``DomainError`` subclasses raised by services are translated here, so
views call services without ``try/except`` blocks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from shared.domain.errors import DomainError, ErrorKind

logger = structlog.get_logger(__name__)

DOMAIN_ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.TERMINAL_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.STALE_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_CLOSED: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_YET_CLOSED: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.EXCEEDS_COMMISSION_CAP: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NO_COMMISSION_HEADROOM: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.SHOP_UNAVAILABLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_ORDER_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_AGGREGATE_INPUT: status.HTTP_400_BAD_REQUEST,
}


def standardized_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    if isinstance(exc, DomainError):
        return _domain_error_response(exc)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = _flatten_validation_errors(exc.detail)
    else:
        error_type = "client_error"
        detail = getattr(exc, "detail", str(exc))
        errors = [
            {
                "code": getattr(detail, "code", None) or "error",
                "detail": str(detail),
                "attr": None,
            }
        ]

    response.data = {"type": error_type, "errors": errors}
    return response


def _domain_error_response(exc: DomainError) -> Response:
    http_status = DOMAIN_ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    logger.info(
        "api.domain_error",
        kind=exc.kind.value,
        status_code=http_status,
        detail=exc.message,
    )
    body = {
        "type": "domain_error",
        "errors": [
            {
                "code": exc.kind.value,
                "detail": exc.message,
                "attr": None,
                "meta": exc.to_dict()["details"],
            }
        ],
    }
    return Response(body, status=http_status)


def _flatten_validation_errors(detail: Any, attr: Optional[str] = None) -> List[dict]:
    if isinstance(detail, dict):
        errors: List[dict] = []
        for key, value in detail.items():
            child = key if attr is None else f"{attr}.{key}"
            errors.extend(_flatten_validation_errors(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            child = attr
            if isinstance(value, (dict, list)):
                child = f"{attr}.{index}" if attr is not None else str(index)
            errors.extend(_flatten_validation_errors(value, child))
        return errors
    return [
        {
            "code": getattr(detail, "code", None) or "invalid",
            "detail": str(detail),
            "attr": attr,
        }
    ]
