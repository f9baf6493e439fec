"""
Shared test configuration and fixtures for ConvertEase tests.

The provider is never contacted: a FakeProvider answers every outbound
call through httpx.MockTransport and records what it received.
"""

import base64
import json
import re
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from convertease.app import app
from convertease.config import JOB_STATUS_PATH, Settings, get_settings
from convertease.router import get_cloudmersive_client
from convertease.utils.cloudmersive import CloudmersiveClient


PROVIDER_BASE_URL = "https://provider.test"
PROXY_URL = "http://testserver/convert"


class FakeProvider:
    """Stand-in for the Cloudmersive API."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None
        self.fail_body = "Service Unavailable"
        self.fail_on_call: Optional[int] = None
        self.raise_error: Optional[Exception] = None
        self.job_statuses: List[Dict[str, Any]] = []
        self.job_id = "job-123"

    @property
    def conversion_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path != JOB_STATUS_PATH]

    @property
    def uploaded_filenames(self) -> List[str]:
        names = []
        for request in self.conversion_requests:
            match = re.search(rb'filename="([^"]+)"', request.content)
            names.append(match.group(1).decode() if match else "")
        return names

    @staticmethod
    def converted_bytes(path: str) -> bytes:
        return b"converted via " + path.encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error

        path = request.url.path
        if path == JOB_STATUS_PATH:
            index = min(len([r for r in self.requests if r.url.path == JOB_STATUS_PATH]) - 1,
                        len(self.job_statuses) - 1)
            return httpx.Response(200, json=self.job_statuses[index])

        call_number = len(self.conversion_requests)
        if self.fail_status is not None and (self.fail_on_call is None or self.fail_on_call == call_number):
            return httpx.Response(self.fail_status, text=self.fail_body)

        if path.startswith("/convert/batch-job/"):
            return httpx.Response(200, json={"Successful": True, "AsyncJobID": self.job_id})
        return httpx.Response(200, content=self.converted_bytes(path))


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def unb64(text: str) -> bytes:
    return base64.b64decode(text)


@pytest.fixture
def settings() -> Settings:
    """Settings with a test credential and the default limits."""
    return Settings(
        api_key="test-api-key",
        api_base_url=PROVIDER_BASE_URL,
        proxy_url=PROXY_URL,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_http_client(provider) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))


@pytest.fixture
def override_dependencies(settings, provider_http_client) -> Callable[[Settings], None]:
    """Point the app at the fake provider; call the result to swap settings."""
    def apply(active: Settings) -> None:
        app.dependency_overrides[get_settings] = lambda: active
        app.dependency_overrides[get_cloudmersive_client] = \
            lambda: CloudmersiveClient(provider_http_client, active)

    apply(settings)
    yield apply
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_dependencies):
    """FastAPI test client wired to the fake provider."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def proxy_http_client(override_dependencies) -> httpx.AsyncClient:
    """httpx client that talks to the proxy in-process."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class SleepRecorder:
    """Replacement for asyncio.sleep that only records delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def elapsed(self) -> float:
        return sum(self.delays)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


def json_body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)
