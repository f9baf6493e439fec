"""
Unit tests for the Cloudmersive provider client.
"""

from dataclasses import replace

import httpx
import pytest

from convertease.models import JobState
from convertease.utils.cloudmersive import CloudmersiveClient
from convertease.utils.error_handling import (
    ConfigurationError,
    ErrorCode,
    NetworkError,
    RemoteError,
    ValidationError,
)

from tests.conftest import FakeProvider, b64


@pytest.fixture
def cloudmersive(provider_http_client, settings) -> CloudmersiveClient:
    return CloudmersiveClient(provider_http_client, settings)


class TestConfiguration:
    """The credential is checked before anything is sent."""

    @pytest.mark.parametrize("api_key", [None, "", "   ", "abc def"])
    def test_unusable_keys(self, provider_http_client, settings, api_key):
        client = CloudmersiveClient(provider_http_client, replace(settings, api_key=api_key))
        with pytest.raises(ConfigurationError) as exc_info:
            client.ensure_configured()
        assert exc_info.value.message == "API key not configured"

    @pytest.mark.asyncio
    async def test_convert_without_key_sends_nothing(self, provider_http_client, provider, settings):
        client = CloudmersiveClient(provider_http_client, replace(settings, api_key=None))
        with pytest.raises(ConfigurationError):
            await client.convert("a.docx", b"data", "docx", "pdf")
        assert provider.requests == []


class TestConvert:
    """Test cases for synchronous conversions."""

    @pytest.mark.asyncio
    async def test_convert_returns_provider_bytes(self, cloudmersive, provider: FakeProvider):
        converted = await cloudmersive.convert("a.docx", b"data", "docx", "pdf")

        assert converted == FakeProvider.converted_bytes("/convert/docx/to/pdf")
        request = provider.requests[0]
        assert request.headers["Apikey"] == "test-api-key"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="a.docx"' in request.content

    @pytest.mark.asyncio
    async def test_unrouted_pair(self, cloudmersive, provider: FakeProvider):
        with pytest.raises(ValidationError) as exc_info:
            await cloudmersive.convert("v.mp4", b"data", "mp4", "mp3")
        assert exc_info.value.error_code == ErrorCode.CONVERSION_NOT_SUPPORTED
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_upstream_failure(self, cloudmersive, provider: FakeProvider):
        provider.fail_status = 503
        provider.fail_body = "Service Unavailable"
        with pytest.raises(RemoteError) as exc_info:
            await cloudmersive.convert("a.docx", b"data", "docx", "pdf")

        error = exc_info.value
        assert error.upstream_status == 503
        assert error.message == "Cloudmersive error: 503 Service Unavailable"
        assert error.details["filename"] == "a.docx"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_key(self, cloudmersive, provider: FakeProvider, status):
        provider.fail_status = status
        with pytest.raises(ConfigurationError):
            await cloudmersive.convert("a.docx", b"data", "docx", "pdf")

    @pytest.mark.asyncio
    async def test_transport_failure(self, cloudmersive, provider: FakeProvider):
        provider.raise_error = httpx.ConnectTimeout("timed out")
        with pytest.raises(NetworkError):
            await cloudmersive.convert("a.docx", b"data", "docx", "pdf")


class TestJobs:
    """Test cases for provider jobs."""

    @pytest.mark.asyncio
    async def test_start_job(self, cloudmersive, provider: FakeProvider):
        job_id = await cloudmersive.start_job("clip.MOV", b"data", "mov", "mp4")

        assert job_id == "job-123"
        assert provider.requests[0].url.path == "/convert/batch-job/mov/to/mp4"

    @pytest.mark.asyncio
    async def test_get_job_status(self, cloudmersive, provider: FakeProvider):
        provider.job_statuses = [{"AsyncJobStatus": "COMPLETED", "Document": b64(b"out")}]
        status = await cloudmersive.get_job_status("job-123")

        assert status.state == JobState.COMPLETED
        assert status.progress == 100
        assert status.document == b"out"

    @pytest.mark.parametrize("payload,state,progress", [
        ({"AsyncJobStatus": "QUEUED"}, JobState.QUEUED, 0),
        ({"AsyncJobStatus": "Started"}, JobState.PROCESSING, 50),
        ({"Status": "RUNNING", "PercentComplete": 73.6}, JobState.PROCESSING, 73),
        ({"AsyncJobStatus": "PROCESSING", "PercentComplete": 250}, JobState.PROCESSING, 100),
        ({}, JobState.QUEUED, 0),
    ])
    def test_parse_job_status(self, payload, state, progress):
        status = CloudmersiveClient.parse_job_status("job-1", payload)
        assert status.state == state
        assert status.progress == progress
        assert status.document is None
        assert status.error is None

    def test_parse_failed_job(self):
        status = CloudmersiveClient.parse_job_status("job-1", {"AsyncJobStatus": "FAILED"})
        assert status.state == JobState.FAILED
        assert status.error == "File conversion failed. Please try again."

    def test_parse_unsuccessful_completion(self):
        payload = {"AsyncJobStatus": "COMPLETED", "Successful": False, "ErrorMessage": "bad input"}
        status = CloudmersiveClient.parse_job_status("job-1", payload)
        assert status.state == JobState.FAILED
        assert status.error == "bad input"

    def test_parse_unknown_status(self):
        with pytest.raises(RemoteError):
            CloudmersiveClient.parse_job_status("job-1", {"AsyncJobStatus": "EXPLODED"})

    def test_parse_unreadable_document(self):
        with pytest.raises(RemoteError):
            CloudmersiveClient.parse_job_status("job-1", {"AsyncJobStatus": "COMPLETED", "Document": "%%%"})
