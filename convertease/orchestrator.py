"""
Client-side conversion orchestrator.

Turns a file selection and a format choice into a validated
``ConversionRequest``, submits it to the conversion proxy and hands back
one ``ConversionResult`` per input file. Two submission modes exist:

* ``single`` - one proxy call carrying every file.
* ``job`` - per file, a ``start`` call followed by a bounded polling loop
  (``max_poll_attempts`` polls, ``poll_interval`` seconds apart).
"""

import asyncio
import os
from pathlib import Path
from typing import Any, Awaitable, BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from .config import Messages, Settings, get_settings
from .models import (
    ConversionRequest,
    ConversionResult,
    FileEntry,
    JobState,
    JobStatus,
    PollFailure,
    PollOutcome,
    PollSuccess,
    PollTimedOut,
)
from .utils.conversion_lookup import (
    detect_category,
    format_file_size,
    get_file_extension,
    is_supported_pair,
    normalize_format,
)
from .utils.error_handling import (
    ConversionTimeoutError,
    ErrorCode,
    NetworkError,
    RemoteError,
    ValidationError,
)
from .utils.http_client import ServiceType, get_http_client_factory
from .utils.logging_config import get_logger
from .utils.mime_detector import get_mime_type
from .utils.transport import decode_content, encode_content

logger = get_logger(__name__)

FileHandle = Union[str, os.PathLike, Tuple[str, bytes], BinaryIO]
ProgressCallback = Callable[[int, str], None]


# ===== SELECTION =====

def _describe(handle: FileHandle) -> Tuple[str, Optional[int], Callable[[], bytes]]:
    """Return (filename, declared size, reader) without reading the content."""
    if isinstance(handle, tuple):
        filename, content = handle
        return filename, len(content), lambda: bytes(content)

    if isinstance(handle, (str, os.PathLike)):
        path = Path(handle)
        if not path.is_file():
            raise ValidationError(f"File not found: {path}", error_code=ErrorCode.INVALID_FILE)
        return path.name, path.stat().st_size, path.read_bytes

    if hasattr(handle, "read"):
        filename = Path(str(getattr(handle, "name", "") or "")).name
        declared = getattr(handle, "size", None)
        return filename, declared, handle.read

    raise ValidationError(f"Unsupported file handle: {type(handle).__name__}", error_code=ErrorCode.INVALID_FILE)


def _check_size(filename: str, size: int, settings: Settings) -> None:
    if size > settings.max_file_size:
        raise ValidationError(
            Messages.FILE_TOO_LARGE.format(limit=format_file_size(settings.max_file_size)),
            error_code=ErrorCode.FILE_TOO_LARGE,
            filename=filename,
            size=format_file_size(size),
        )


def _check_pair(source_format: str, target_format: str) -> None:
    if normalize_format(source_format) == normalize_format(target_format):
        raise ValidationError(Messages.SAME_FORMAT, error_code=ErrorCode.SAME_FORMAT)
    if not is_supported_pair(source_format, target_format):
        raise ValidationError(
            f"Conversion from {source_format} to {target_format} is not supported",
            error_code=ErrorCode.CONVERSION_NOT_SUPPORTED,
        )


def select_files(
    handles: Sequence[FileHandle],
    target_format: str,
    source_format: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ConversionRequest:
    """
    Build a validated conversion request from raw file handles.

    Handles may be paths, ``(filename, bytes)`` tuples or binary file
    objects. The source format is taken from the first file when omitted.

    Raises:
        ValidationError: On empty selection, unknown or mixed categories,
            extension mismatch, identical formats, unsupported pair or a
            file larger than the configured maximum
    """
    settings = settings or get_settings()
    if not handles:
        raise ValidationError(Messages.NO_FILE_SELECTED, error_code=ErrorCode.MISSING_PARAMETER)
    if not target_format:
        raise ValidationError(Messages.NO_FORMAT_SELECTED, error_code=ErrorCode.MISSING_PARAMETER)

    staged = [_describe(handle) for handle in handles]

    categories = set()
    for filename, _, _ in staged:
        category = detect_category(get_file_extension(filename))
        if category is None:
            raise ValidationError(
                f"{Messages.FILE_NOT_SUPPORTED}: {filename or '(unnamed)'}",
                error_code=ErrorCode.INVALID_FORMAT,
                filename=filename,
            )
        categories.add(category)
    if len(categories) > 1:
        raise ValidationError(Messages.MIXED_CATEGORIES, error_code=ErrorCode.INVALID_FORMAT)

    source = (source_format or get_file_extension(staged[0][0])).strip().lower().lstrip(".")
    target = target_format.strip().lower().lstrip(".")
    _check_pair(source, target)

    for filename, _, _ in staged:
        if normalize_format(get_file_extension(filename)) != normalize_format(source):
            raise ValidationError(
                f"'{filename}' does not match the input format {source}",
                error_code=ErrorCode.INVALID_FORMAT,
                filename=filename,
            )

    entries = []
    for filename, declared, reader in staged:
        if declared is not None:
            _check_size(filename, declared, settings)
        content = reader()
        if declared is None:
            declared = len(content)
            _check_size(filename, declared, settings)
        entries.append(FileEntry(filename=filename, content=content, declared_size=declared))

    return ConversionRequest(
        source_format=source,
        target_format=target,
        files=tuple(entries),
        category=categories.pop(),
    )


# ===== ORCHESTRATOR =====

class ConversionOrchestrator:
    """Submits conversion requests to the proxy and polls provider jobs."""

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._settings = settings or get_settings()
        self._proxy_url = proxy_url or self._settings.proxy_url
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._on_progress = on_progress

    async def __aenter__(self) -> "ConversionOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = get_http_client_factory().create_client(ServiceType.PROXY)
        return self._client

    def _report(self, percent: int, message: str) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(percent, message)
        except Exception:
            logger.warning("Progress callback raised; ignoring", exc_info=True)

    def select_files(
        self,
        handles: Sequence[FileHandle],
        target_format: str,
        source_format: Optional[str] = None,
    ) -> ConversionRequest:
        return select_files(handles, target_format, source_format, settings=self._settings)

    async def _call_proxy(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._get_client().post(self._proxy_url, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Request to proxy failed: {type(e).__name__}: {e}")
            raise NetworkError(Messages.NETWORK_ERROR) from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        if not response.is_success or data.get("success") is False:
            message = data.get("error") or f"Proxy returned {response.status_code}"
            raise RemoteError(str(message), upstream_status=response.status_code, code=data.get("code"))
        return data

    def _to_result(self, item: Dict[str, Any], fallback_name: str, target_format: str) -> ConversionResult:
        try:
            content = decode_content(item.get("content", item.get("data")), filename=fallback_name)
        except ValidationError as e:
            raise RemoteError(f"Proxy returned unreadable content: {e.message}") from e
        return ConversionResult(
            filename=item.get("filename") or fallback_name,
            content=content,
            content_type=item.get("contentType") or get_mime_type(target_format),
        )

    async def submit(self, request: ConversionRequest, mode: str = "single") -> List[ConversionResult]:
        """
        Submit a request and wait for every file's result.

        Args:
            request: Request built by ``select_files``
            mode: ``single`` for one proxy call, ``job`` for start-and-poll

        Returns:
            One result per input file, in input order

        Raises:
            ValidationError: Same formats or unsupported pair (no network call)
            NetworkError: The proxy could not be reached
            RemoteError: The proxy reported a failure
            ConversionTimeoutError: A job did not finish within the polling budget
        """
        if not request.files:
            raise ValidationError(Messages.NO_FILE_SELECTED, error_code=ErrorCode.MISSING_PARAMETER)
        _check_pair(request.source_format, request.target_format)

        if mode == "single":
            return await self._submit_single(request)
        elif mode == "job":
            return await self._submit_jobs(request)
        raise ValidationError(f"Unknown submit mode: {mode}")

    async def _submit_single(self, request: ConversionRequest) -> List[ConversionResult]:
        self._report(10, "Preparing upload...")
        payload = {
            "action": "convert",
            "fromFormat": request.source_format,
            "toFormat": request.target_format,
            "files": [
                {"filename": entry.filename, "fileData": encode_content(entry.content)}
                for entry in request.files
            ],
        }
        self._report(50, "Converting files...")
        data = await self._call_proxy(payload)

        items = data.get("results")
        if not isinstance(items, list) or len(items) != len(request.files):
            count = len(items) if isinstance(items, list) else 0
            raise RemoteError(f"Proxy returned {count} result(s) for {len(request.files)} file(s)")

        results = [
            self._to_result(item, entry.filename, request.target_format)
            for item, entry in zip(items, request.files)
        ]
        self._report(100, "Conversion complete!")
        return results

    async def _submit_jobs(self, request: ConversionRequest) -> List[ConversionResult]:
        results = []
        for entry in request.files:
            self._report(10, f"Uploading {entry.filename}...")
            data = await self._call_proxy({
                "action": "start",
                "fromFormat": request.source_format,
                "toFormat": request.target_format,
                "filename": entry.filename,
                "fileData": encode_content(entry.content),
            })
            job_id = data.get("jobId")
            if not job_id:
                raise RemoteError(f"Proxy did not return a job id for '{entry.filename}'")

            outcome = await self.wait_for_job(job_id, filename=entry.filename, target_format=request.target_format)
            if isinstance(outcome, PollSuccess):
                if outcome.result is None:
                    raise RemoteError(f"Job {job_id} completed without a result")
                results.append(outcome.result)
            elif isinstance(outcome, PollFailure):
                raise RemoteError(outcome.message, job_id=job_id, filename=entry.filename)
            else:
                raise ConversionTimeoutError(
                    Messages.TIMEOUT_ERROR,
                    job_id=job_id,
                    attempts=outcome.attempts,
                ) from outcome.last_error
        self._report(100, "Conversion complete!")
        return results

    async def poll(
        self,
        job_id: str,
        filename: Optional[str] = None,
        target_format: Optional[str] = None,
    ) -> JobStatus:
        """Ask the proxy once for the state of a job."""
        payload: Dict[str, Any] = {"action": "status", "jobId": job_id}
        if filename:
            payload["filename"] = filename
        if target_format:
            payload["toFormat"] = target_format
        data = await self._call_proxy(payload)

        try:
            state = JobState(str(data.get("status", "")).lower())
        except ValueError as e:
            raise RemoteError(f"Unknown job status: {data.get('status')!r}") from e

        progress = data.get("progress")
        progress = max(0, min(100, int(progress))) if isinstance(progress, (int, float)) else 0

        result = None
        if state == JobState.COMPLETED and data.get("data") is not None:
            result = self._to_result(data, filename or job_id, target_format or "")
        return JobStatus(id=job_id, state=state, progress=progress, result=result, error=data.get("error"))

    async def wait_for_job(
        self,
        job_id: str,
        filename: Optional[str] = None,
        target_format: Optional[str] = None,
    ) -> PollOutcome:
        """
        Poll a job until it is terminal or the attempt budget is spent.

        Every non-terminal poll is followed by one interval wait, so the
        loop gives up after ``max_poll_attempts * poll_interval`` seconds.
        Network errors use up an attempt and polling continues.
        """
        attempts = self._settings.max_poll_attempts
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                status = await self.poll(job_id, filename, target_format)
            except NetworkError as e:
                last_error = e
                logger.warning(f"Polling job {job_id} failed ({attempt + 1}/{attempts}): {e.message}")
            else:
                last_error = None
                if status.state == JobState.COMPLETED:
                    return PollSuccess(status)
                if status.state == JobState.FAILED:
                    return PollFailure(status, status.error or Messages.CONVERSION_FAILED)
                self._report(status.progress, f"Converting {filename or job_id}...")

            await self._sleep(self._settings.poll_interval)

        logger.error(f"Job {job_id} did not finish after {attempts} polls")
        return PollTimedOut(job_id=job_id, attempts=attempts, last_error=last_error)
