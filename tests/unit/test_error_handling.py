"""
Unit tests for the error taxonomy and JSON error responses.
"""

import json

import pytest

from convertease.utils.error_handling import (
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ConfigurationError,
    ConversionError,
    ConversionTimeoutError,
    ErrorCode,
    NetworkError,
    RemoteError,
    ValidationError,
    create_error_response,
    handle_conversion_error,
)


def body_of(response):
    return json.loads(response.body)


class TestErrorMaps:
    """Every code has a status and a severity."""

    def test_all_codes_mapped(self):
        for code in ErrorCode:
            assert code in ERROR_STATUS_MAP
            assert code in ERROR_SEVERITY_MAP

    @pytest.mark.parametrize("error,status", [
        (ValidationError("bad"), 400),
        (ValidationError("big", error_code=ErrorCode.FILE_TOO_LARGE), 400),
        (NetworkError("down"), 500),
        (RemoteError("upstream", upstream_status=503), 500),
        (ConversionTimeoutError("slow"), 500),
        (ConfigurationError("no key"), 500),
        (ConversionError("boom"), 500),
    ])
    def test_status_codes(self, error, status):
        assert error.status_code == status

    def test_taxonomy(self):
        for cls in (ValidationError, NetworkError, RemoteError, ConversionTimeoutError, ConfigurationError):
            assert issubclass(cls, ConversionError)

    def test_timeout_is_builtin_timeout(self):
        with pytest.raises(TimeoutError) as exc_info:
            raise ConversionTimeoutError("Request timed out", job_id="job-1", attempts=30)

        error = exc_info.value
        assert str(error) == "Request timed out"
        assert error.details == {"job_id": "job-1", "attempts": 30}
        assert error.error_code == ErrorCode.TIMEOUT


class TestErrorResponses:
    """Test cases for create_error_response and handle_conversion_error."""

    def test_create_error_response(self):
        response = create_error_response(ErrorCode.SAME_FORMAT, "Input and output formats cannot be the same")

        assert response.status_code == 400
        data = body_of(response)
        assert data["success"] is False
        assert data["error"] == "Input and output formats cannot be the same"
        assert data["code"] == "SAME_FORMAT"
        assert data["status_code"] == 400
        assert data["severity"] == "low"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields_and_override(self):
        response = create_error_response(ErrorCode.INTERNAL_ERROR, "oops", status_code=502, request_id="r1")

        assert response.status_code == 502
        assert body_of(response)["request_id"] == "r1"

    def test_message_truncated(self):
        response = create_error_response(ErrorCode.INVALID_REQUEST, "x" * 5000)
        assert len(body_of(response)["error"]) == 1000

    def test_remote_error_carries_upstream_status(self):
        error = RemoteError("Cloudmersive error: 503 Service Unavailable", upstream_status=503, filename="a.docx")
        response = handle_conversion_error(error)

        assert response.status_code == 500
        data = body_of(response)
        assert data["upstream_status"] == 503
        assert data["filename"] == "a.docx"
        assert data["error"] == "Cloudmersive error: 503 Service Unavailable"

    def test_validation_error_details(self):
        error = ValidationError("too big", error_code=ErrorCode.FILE_TOO_LARGE, filename="big.mp4")
        data = body_of(handle_conversion_error(error))

        assert data["code"] == "FILE_TOO_LARGE"
        assert data["filename"] == "big.mp4"
