"""
Custom exception hierarchy for the Tour Compare backend.

All application errors inherit from TourCompareError so routes and the
global handler can catch and serialize them uniformly.

Exception Hierarchy:
    TourCompareError (base)
    ├── ValidationError
    ├── ResourceNotFoundError
    ├── RateLimitError
    └── ExternalServiceError
        └── SourceError

Usage:
    from exceptions import SourceError, ValidationError

    raise ValidationError("Please enter a destination")
    raise SourceError("Yatra returned 503", source="Yatra", error_type="http", http_status=503)
"""

from typing import Optional, Dict, Any


class TourCompareError(Exception):
    """
    Base exception for all Tour Compare application errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(TourCompareError):
    """
    Raised when input validation fails.

    Examples:
        raise ValidationError("Please enter a destination")
        raise ValidationError("Unknown sort key", detail={"sort_key": "name"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=400)


class ResourceNotFoundError(TourCompareError):
    """Raised when a requested resource (e.g. a search session) doesn't exist."""

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=404)


class RateLimitError(TourCompareError):
    """
    Raised when rate limit is exceeded.

    Examples:
        raise RateLimitError("Too many searches", retry_after=60)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None,
    ):
        if retry_after and detail is None:
            detail = {"retry_after": retry_after}
        elif retry_after and detail:
            detail["retry_after"] = retry_after

        super().__init__(message, detail=detail, status_code=429)
        self.retry_after = retry_after


class ExternalServiceError(TourCompareError):
    """
    Base exception for external service failures.
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        service_name: Optional[str] = None,
    ):
        if service_name and detail is None:
            detail = {"service": service_name}
        elif service_name and detail:
            detail["service"] = service_name

        super().__init__(message, detail=detail, status_code=502)


class SourceError(ExternalServiceError):
    """
    Raised when one package source fails (transport, parse, upstream status,
    missing credentials or deadline expiry).

    The fan-out executor absorbs it into that source's status; it never
    reaches the session as an exception.

    Examples:
        raise SourceError("Connection refused", source="Goibibo", error_type="transport")
        raise SourceError("status 503", source="Yatra", error_type="http", http_status=503)
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        error_type: str = "unknown",
        http_status: Optional[int] = None,
        detail: Optional[Dict[str, Any]] = None,
    ):
        detail = dict(detail or {})
        if source:
            detail["source"] = source
        detail["error_type"] = error_type
        if http_status is not None:
            detail["http_status"] = http_status

        super().__init__(message, detail=detail, service_name="package_source")
        self.source = source
        self.error_type = error_type
        self.http_status = http_status
