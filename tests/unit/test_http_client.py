"""
Unit tests for the HTTP client factory.
"""

import pytest

from convertease.utils.http_client import HTTPClientFactory, ServiceType


class TestHTTPClientFactory:
    """Test cases for per-service client creation."""

    def test_service_types(self):
        assert {member.name for member in ServiceType} == {"CLOUDMERSIVE", "PROXY"}

    def test_service_type_is_required(self, settings):
        with pytest.raises(TypeError):
            HTTPClientFactory(settings).create_client()

    @pytest.mark.asyncio
    async def test_provider_client_has_long_write_timeout(self, settings):
        factory = HTTPClientFactory(settings)
        client = factory.create_client(ServiceType.CLOUDMERSIVE)
        try:
            assert client.timeout.write == 300.0
            assert client.timeout.read == settings.http_timeout
            assert factory.get_client(ServiceType.CLOUDMERSIVE) is client
            assert factory.get_client(ServiceType.PROXY) is None
        finally:
            await factory.close_all_clients()
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_closed_client_is_replaced(self, settings):
        factory = HTTPClientFactory(settings)
        first = factory.create_client(ServiceType.PROXY)
        await first.aclose()

        second = factory.get_or_create_client(ServiceType.PROXY)
        try:
            assert second is not first
            assert not second.is_closed
        finally:
            await factory.close_all_clients()
