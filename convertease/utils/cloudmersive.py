"""
Client for the Cloudmersive conversion API.

All transcoding happens at the provider. This module sends one file per
call, maps provider failures onto the error taxonomy and never retries.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import JOB_START_PATH, JOB_STATUS_PATH, Messages, Settings
from ..models import JobState
from .conversion_lookup import get_conversion_route, normalize_format
from .error_handling import ConfigurationError, ErrorCode, NetworkError, RemoteError, ValidationError
from .logging_config import get_logger, log_performance
from .mime_detector import get_mime_type
from .transport import decode_content

logger = get_logger(__name__)

# Provider job states, upper-cased
PROVIDER_JOB_STATES = {
    "QUEUED": JobState.QUEUED,
    "PENDING": JobState.QUEUED,
    "STARTED": JobState.PROCESSING,
    "PROCESSING": JobState.PROCESSING,
    "RUNNING": JobState.PROCESSING,
    "COMPLETED": JobState.COMPLETED,
    "SUCCEEDED": JobState.COMPLETED,
    "FAILED": JobState.FAILED,
}

COARSE_PROGRESS = {
    JobState.QUEUED: 0,
    JobState.PROCESSING: 50,
    JobState.COMPLETED: 100,
    JobState.FAILED: 100,
}


@dataclass(frozen=True)
class ProviderJobStatus:
    job_id: str
    state: JobState
    progress: int
    document: Optional[bytes] = None
    error: Optional[str] = None


class CloudmersiveClient:
    """Thin wrapper around the provider's REST endpoints."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    def ensure_configured(self) -> None:
        """Fail before any file transfer when the credential is unusable."""
        api_key = self._settings.api_key
        if not api_key or not api_key.strip() or any(c.isspace() for c in api_key):
            raise ConfigurationError(Messages.API_KEY_MISSING)

    def _headers(self) -> Dict[str, str]:
        return {"Apikey": self._settings.api_key or ""}

    def _url(self, path: str) -> str:
        return f"{self._settings.api_base_url}{path}"

    async def _post_file(self, path: str, filename: str, content: bytes) -> httpx.Response:
        self.ensure_configured()
        files = {"inputFile": (filename, content, get_mime_type(filename.rsplit(".", 1)[-1]))}
        try:
            response = await self._client.post(self._url(path), headers=self._headers(), files=files)
        except httpx.RequestError as e:
            logger.error(f"Request error calling provider {path} for '{filename}': {type(e).__name__}")
            raise NetworkError(Messages.NETWORK_ERROR, filename=filename) from e
        self._raise_for_status(response, filename)
        return response

    def _raise_for_status(self, response: httpx.Response, filename: Optional[str] = None) -> None:
        if response.is_success:
            return
        extra = {"filename": filename} if filename else {}
        if response.status_code in (401, 403):
            logger.error(f"Provider rejected the API key with status {response.status_code}")
            raise ConfigurationError(Messages.API_KEY_REJECTED, **extra)
        logger.error(f"Provider returned {response.status_code}: {response.text[:500]}")
        raise RemoteError(
            f"Cloudmersive error: {response.status_code} {response.text}",
            upstream_status=response.status_code,
            **extra,
        )

    @log_performance(logger)
    async def convert(self, filename: str, content: bytes, input_format: str, output_format: str) -> bytes:
        """
        Convert one file synchronously.

        Returns:
            The converted bytes exactly as returned by the provider

        Raises:
            ValidationError: If the pair has no provider route
            ConfigurationError: If the key is missing or rejected
            NetworkError: If the provider cannot be reached
            RemoteError: If the provider answers with a non-success status
        """
        route = get_conversion_route(input_format, output_format)
        if route is None:
            raise ValidationError(
                f"Conversion from {input_format} to {output_format} is not supported",
                error_code=ErrorCode.CONVERSION_NOT_SUPPORTED,
            )
        logger.info(f"Converting '{filename}' via {route} ({len(content)} bytes)")
        response = await self._post_file(route, filename, content)
        return response.content

    async def start_job(self, filename: str, content: bytes, input_format: str, output_format: str) -> str:
        """Start an asynchronous provider job and return its id."""
        path = JOB_START_PATH.format(
            from_format=normalize_format(input_format),
            to_format=normalize_format(output_format),
        )
        response = await self._post_file(path, filename, content)
        payload = self._json(response)
        job_id = payload.get("AsyncJobID") or payload.get("JobID")
        if not payload.get("Successful", True) or not job_id:
            raise RemoteError(
                f"Cloudmersive error: job was not accepted: {payload.get('ErrorMessage') or payload}",
                upstream_status=response.status_code,
                filename=filename,
            )
        logger.info(f"Started provider job {job_id} for '{filename}'")
        return str(job_id)

    async def get_job_status(self, job_id: str) -> ProviderJobStatus:
        """Query the provider for the current state of a job."""
        self.ensure_configured()
        try:
            response = await self._client.get(
                self._url(JOB_STATUS_PATH),
                headers=self._headers(),
                params={"AsyncJobID": job_id},
            )
        except httpx.RequestError as e:
            logger.error(f"Request error polling job {job_id}: {type(e).__name__}")
            raise NetworkError(Messages.NETWORK_ERROR, job_id=job_id) from e
        self._raise_for_status(response)
        return self.parse_job_status(job_id, self._json(response))

    @staticmethod
    def parse_job_status(job_id: str, payload: Dict[str, Any]) -> ProviderJobStatus:
        raw_state = str(payload.get("AsyncJobStatus") or payload.get("Status") or "QUEUED").upper()
        state = PROVIDER_JOB_STATES.get(raw_state)
        if state is None:
            raise RemoteError(f"Cloudmersive error: unknown job status '{raw_state}'")
        if state == JobState.COMPLETED and payload.get("Successful") is False:
            state = JobState.FAILED

        progress = payload.get("PercentComplete")
        if not isinstance(progress, (int, float)):
            progress = COARSE_PROGRESS[state]
        progress = max(0, min(100, int(progress)))

        document = None
        if state == JobState.COMPLETED and payload.get("Document") is not None:
            try:
                document = decode_content(payload["Document"], filename=job_id)
            except ValidationError as e:
                raise RemoteError(f"Cloudmersive error: {e.message}") from e

        error = payload.get("ErrorMessage") if state == JobState.FAILED else None
        if state == JobState.FAILED and not error:
            error = Messages.CONVERSION_FAILED
        return ProviderJobStatus(job_id=job_id, state=state, progress=progress, document=document, error=error)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteError(
                f"Cloudmersive error: expected JSON, got {response.text[:200]}",
                upstream_status=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise RemoteError("Cloudmersive error: unexpected response shape", upstream_status=response.status_code)
        return payload
