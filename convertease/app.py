"""
ConvertEase conversion proxy.

FastAPI application that relays base64 file payloads to the Cloudmersive
API. Run with ``convertease-proxy`` or ``uvicorn convertease.app:app``.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .router import router as convert_router
from .utils.error_handling import ConversionError, conversion_error_handler, http_error_handler
from .utils.http_client import ServiceType, get_http_client_factory, lifespan_http_clients
from .utils.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared provider client and close it on shutdown."""
    settings = get_settings()
    factory = get_http_client_factory()
    app.state.provider_client = factory.create_client(ServiceType.CLOUDMERSIVE)

    if not settings.api_key:
        # requests will fail with a configuration error until the key is set
        logger.warning("CLOUDMERSIVE_API_KEY is not set")
    logger.info(f"Conversion proxy started, provider at {settings.api_base_url}")

    async with lifespan_http_clients():
        yield


app = FastAPI(
    title="ConvertEase Conversion Proxy",
    version=__version__,
    description="Relays file conversions to the Cloudmersive API.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.add_exception_handler(ConversionError, conversion_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)

app.include_router(convert_router)


@app.get("/ping")
async def general_ping():
    return {"success": True, "data": "PONG!"}


def run() -> None:
    """Run the proxy with uvicorn. HOST and PORT override the bind address."""
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("convertease.app:app", host=host, port=port)


if __name__ == "__main__":
    run()
