"""Tests for the application exception hierarchy."""

from exceptions import (
    ExternalServiceError,
    RateLimitError,
    ResourceNotFoundError,
    SourceError,
    TourCompareError,
    ValidationError,
)


def test_status_codes():
    assert ValidationError("x").status_code == 400
    assert ResourceNotFoundError("x").status_code == 404
    assert RateLimitError("x").status_code == 429
    assert SourceError("x").status_code == 502


def test_to_dict_omits_empty_detail():
    assert ValidationError("Please enter a destination").to_dict() == {
        "error": "ValidationError",
        "message": "Please enter a destination",
    }


def test_rate_limit_retry_after_in_detail():
    err = RateLimitError("slow down", retry_after=60)
    assert err.retry_after == 60
    assert err.to_dict()["detail"] == {"retry_after": 60}


def test_source_error_attributes():
    err = SourceError("status 503", source="Yatra", error_type="http", http_status=503)
    assert isinstance(err, ExternalServiceError)
    assert isinstance(err, TourCompareError)
    assert err.source == "Yatra"
    assert err.error_type == "http"
    assert err.http_status == 503
    assert err.detail == {
        "source": "Yatra",
        "error_type": "http",
        "http_status": 503,
        "service": "package_source",
    }


def test_source_error_defaults():
    err = SourceError("boom")
    assert err.error_type == "unknown"
    assert err.http_status is None
    assert err.detail["service"] == "package_source"
