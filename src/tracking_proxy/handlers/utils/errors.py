"""
Error taxonomy and response helpers for the tracking proxy.

Every failure raised below the handler layer is one of the exceptions defined
here. The handler catches them at its boundary, logs them with context and
turns them into a single ``{"error": <message>}`` JSON body.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional

from tracking_proxy.handlers.utils.observability import logger, metrics, tracer
from tracking_proxy.models.output import ErrorOutput

JSON_CONTENT_TYPE = 'application/json; charset=utf-8'

# Terse message shown to callers for anything that is not their fault
SERVER_ERROR_MESSAGE = 'Server error'


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    VALIDATION = "VALIDATION"
    SECURITY = "SECURITY"
    NOT_FOUND = "NOT_FOUND"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE"
    INFRASTRUCTURE = "INFRASTRUCTURE"


class TrackingError(Exception):
    """Base exception class for tracking proxy errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    category: ErrorCategory = ErrorCategory.INFRASTRUCTURE

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_code": self.error_code,
            "status_code": self.status_code,
            "category": self.category.value,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


class MissingParameterError(TrackingError):
    """Raised when a required query parameter is absent or empty."""

    status_code = 400
    error_code = "MISSING_PARAMETER"
    category = ErrorCategory.VALIDATION

    def __init__(self, parameter: str):
        super().__init__(message=f"Missing {parameter}", details={"parameter": parameter})
        self.parameter = parameter


class OriginRejectedError(TrackingError):
    """Raised when the calling origin is not on the allow-list."""

    status_code = 403
    error_code = "ORIGIN_REJECTED"
    category = ErrorCategory.SECURITY

    def __init__(self, origin: Optional[str]):
        super().__init__(message="Origin not allowed", details={"origin": origin})
        self.origin = origin


class SignatureInvalidError(TrackingError):
    """Raised when an app proxy signature is missing or does not verify."""

    status_code = 403
    error_code = "SIGNATURE_INVALID"
    category = ErrorCategory.SECURITY

    def __init__(self, reason: str):
        super().__init__(message="Invalid signature", details={"reason": reason})


class MethodNotAllowedError(TrackingError):
    """Raised for any verb other than GET and OPTIONS."""

    status_code = 405
    error_code = "METHOD_NOT_ALLOWED"
    category = ErrorCategory.VALIDATION

    def __init__(self, method: Optional[str]):
        super().__init__(message="Method not allowed", details={"method": method})


class OrderNotFoundError(TrackingError):
    """Raised when upstream has no order for the reference."""

    status_code = 404
    error_code = "ORDER_NOT_FOUND"
    category = ErrorCategory.NOT_FOUND

    def __init__(self, reference: str):
        super().__init__(message="Order not found", details={"reference": reference})
        self.reference = reference


class UpstreamAuthError(TrackingError):
    """Raised when the provider's credential exchange fails."""

    status_code = 500
    error_code = "UPSTREAM_AUTH_FAILED"
    category = ErrorCategory.EXTERNAL_SERVICE

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(
            message=message,
            user_message=SERVER_ERROR_MESSAGE,
            details={"upstream_status": upstream_status},
        )
        self.upstream_status = upstream_status


@tracer.capture_method
def log_error_metrics(error: TrackingError) -> None:
    """Log error metrics and a structured error line."""
    metrics.add_metric(name="ErrorCount", unit="Count", value=1)
    metrics.add_metric(name=f"Error{error.category.value.title().replace('_', '')}Count", unit="Count", value=1)

    tracer.put_annotation("error_code", error.error_code)
    tracer.put_metadata("error_details", error.to_dict())

    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        "Tracking request failed",
        extra={
            "error_code": error.error_code,
            "status_code": error.status_code,
            "error_category": error.category.value,
            "error_message": error.message,
            "details": error.details,
        },
    )


def format_error_response(error: TrackingError) -> Dict[str, Any]:
    """Format error for API response."""
    return ErrorOutput(error=error.user_message).model_dump()


def create_api_response(
    status_code: int,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Create an API Gateway proxy response.

    Dict bodies are serialized as JSON and get a JSON content type. A ``None``
    body produces an empty response with no content type.
    """
    response_headers: Dict[str, str] = dict(headers or {})

    if body is None:
        payload = ""
    else:
        response_headers.setdefault("Content-Type", JSON_CONTENT_TYPE)
        payload = body if isinstance(body, str) else json.dumps(body)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": payload,
    }
