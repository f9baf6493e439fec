"""
Centralized HTTP client factory for the proxy and the orchestrator.

Clients share connection limits and take their timeouts from the settings.
There is no retry at this layer: the proxy never retries the provider and
the orchestrator only re-enters its bounded polling loop.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, Optional

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


class ServiceType(Enum):
    """Service types for HTTP client configuration."""
    CLOUDMERSIVE = "cloudmersive"
    PROXY = "proxy"


class HTTPClientFactory:
    """
    Creates and tracks httpx.AsyncClient instances per service type.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._clients: Dict[ServiceType, httpx.AsyncClient] = {}
        self._limits: Optional[httpx.Limits] = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _get_connection_limits(self) -> httpx.Limits:
        if self._limits is None:
            self._limits = httpx.Limits(
                max_keepalive_connections=20,
                max_connections=100,
                keepalive_expiry=30.0
            )
        return self._limits

    def _get_timeout(self, service_type: ServiceType) -> httpx.Timeout:
        read_timeout = self.settings.http_timeout
        if service_type == ServiceType.CLOUDMERSIVE:
            # Uploads of up to the maximum file size need a longer write window
            return httpx.Timeout(connect=10.0, read=read_timeout, write=300.0, pool=10.0)
        return httpx.Timeout(connect=5.0, read=read_timeout, write=read_timeout, pool=5.0)

    def create_client(
        self,
        service_type: ServiceType,
        **overrides
    ) -> httpx.AsyncClient:
        """
        Create an HTTP client configured for a service type.

        Args:
            service_type: Type of service the client will be used for
            **overrides: Override default client configuration

        Returns:
            Configured AsyncClient instance
        """
        config = {
            'timeout': self._get_timeout(service_type),
            'limits': self._get_connection_limits(),
            'follow_redirects': False,
        }
        config.update(overrides)

        client = httpx.AsyncClient(**config)
        self._clients[service_type] = client
        return client

    def get_client(self, service_type: ServiceType) -> Optional[httpx.AsyncClient]:
        """Get an existing open client for a service type."""
        client = self._clients.get(service_type)
        if client is not None and client.is_closed:
            return None
        return client

    def get_or_create_client(self, service_type: ServiceType) -> httpx.AsyncClient:
        return self.get_client(service_type) or self.create_client(service_type)

    async def close_all_clients(self):
        """Close all managed clients."""
        for client in self._clients.values():
            try:
                await client.aclose()
            except Exception as e:
                logger.warning(f"Error closing HTTP client: {e}")

        self._clients.clear()


# Global factory instance
_http_factory = HTTPClientFactory()


def get_http_client_factory() -> HTTPClientFactory:
    """Get the global HTTP client factory instance."""
    return _http_factory


@asynccontextmanager
async def lifespan_http_clients():
    """
    Context manager for HTTP client lifecycle management.

    Use this in FastAPI lifespan events to ensure proper client cleanup.
    """
    try:
        yield
    finally:
        await _http_factory.close_all_clients()
