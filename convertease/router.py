"""
Conversion router for the /convert endpoint.

A single POST endpoint accepts base64 files plus a format pair, forwards
each file to the provider in input order and relays the converted bytes.
The ``action`` field selects between the synchronous flow (``convert``)
and the job-based flow (``start`` then ``status``).
"""

import json
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from .config import Messages, Settings, get_settings
from .utils.cloudmersive import CloudmersiveClient
from .utils.conversion_lookup import (
    get_output_filename,
    get_supported_conversions,
    is_supported_pair,
    normalize_format,
    format_file_size,
)
from .utils.error_handling import (
    ConversionError,
    ErrorCode,
    ValidationError,
)
from .utils.http_client import ServiceType, get_http_client_factory
from .utils.logging_config import get_logger
from .utils.mime_detector import get_mime_type
from .utils.transport import decode_content, decoded_size, encode_content

logger = get_logger(__name__)

router = APIRouter(prefix="/convert", tags=["conversions"])


def get_cloudmersive_client(request: Request, settings: Settings = Depends(get_settings)) -> CloudmersiveClient:
    """Provider client bound to the application's shared httpx client."""
    client = getattr(request.app.state, "provider_client", None)
    if client is None or client.is_closed:
        client = get_http_client_factory().get_or_create_client(ServiceType.CLOUDMERSIVE)
    return CloudmersiveClient(client, settings)


# ===== REQUEST PARSING =====

async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Request body must be valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _require_formats(body: Dict[str, Any]) -> Tuple[str, str]:
    from_format = body.get("fromFormat")
    to_format = body.get("toFormat")
    if not isinstance(from_format, str) or not from_format.strip() \
            or not isinstance(to_format, str) or not to_format.strip():
        raise ValidationError(
            "Missing required fields: fromFormat, toFormat",
            error_code=ErrorCode.MISSING_PARAMETER,
        )

    from_format = from_format.strip().lower()
    to_format = to_format.strip().lower()
    if normalize_format(from_format) == normalize_format(to_format):
        raise ValidationError(Messages.SAME_FORMAT, error_code=ErrorCode.SAME_FORMAT)
    if not is_supported_pair(from_format, to_format):
        raise ValidationError(
            f"Conversion from {from_format} to {to_format} is not supported",
            error_code=ErrorCode.CONVERSION_NOT_SUPPORTED,
        )
    return from_format, to_format


def _extract_files(body: Dict[str, Any]) -> Tuple[List[Tuple[str, str]], bool]:
    """
    Pull (filename, fileData) pairs from either payload shape.

    Returns:
        The pairs in input order, and whether the single-file shape was used
    """
    single = "files" not in body
    raw_files = [{"filename": body.get("filename"), "fileData": body.get("fileData")}] if single else body["files"]

    if not isinstance(raw_files, list) or not raw_files:
        raise ValidationError("Missing required field: files", error_code=ErrorCode.MISSING_PARAMETER)

    entries = []
    for index, item in enumerate(raw_files):
        if not isinstance(item, dict):
            raise ValidationError(f"File #{index + 1} must be an object", error_code=ErrorCode.INVALID_FILE)
        filename = item.get("filename")
        file_data = item.get("fileData")
        if not isinstance(filename, str) or not filename.strip():
            raise ValidationError(
                f"Missing filename for file #{index + 1}",
                error_code=ErrorCode.MISSING_PARAMETER,
            )
        if not isinstance(file_data, str) or not file_data:
            raise ValidationError(
                f"No file data provided for '{filename}'",
                error_code=ErrorCode.MISSING_PARAMETER,
            )
        entries.append((filename.strip(), file_data))
    return entries, single


def _decode_files(entries: List[Tuple[str, str]], settings: Settings) -> List[Tuple[str, bytes]]:
    # sizes are checked on the base64 text, before anything is decoded
    for filename, file_data in entries:
        if decoded_size(file_data) > settings.max_file_size:
            raise ValidationError(
                Messages.FILE_TOO_LARGE.format(limit=format_file_size(settings.max_file_size)),
                error_code=ErrorCode.FILE_TOO_LARGE,
                filename=filename,
            )
    return [(filename, decode_content(file_data, filename=filename)) for filename, file_data in entries]


# ===== ACTIONS =====

async def _handle_convert(body: Dict[str, Any], settings: Settings, provider: CloudmersiveClient) -> Dict[str, Any]:
    from_format, to_format = _require_formats(body)
    entries, single = _extract_files(body)
    files = _decode_files(entries, settings)
    provider.ensure_configured()

    results = []
    for filename, content in files:
        try:
            converted = await provider.convert(filename, content, from_format, to_format)
        except ConversionError as e:
            # first failure aborts the batch
            e.details.setdefault("filename", filename)
            raise
        results.append({
            "filename": get_output_filename(filename, to_format),
            "content": encode_content(converted),
            "contentType": get_mime_type(to_format),
        })

    logger.info(f"Converted {len(results)} file(s) from {from_format} to {to_format}")
    if single:
        result = results[0]
        return {
            "success": True,
            "data": result["content"],
            "filename": result["filename"],
            "contentType": result["contentType"],
        }
    return {"results": results}


async def _handle_start(body: Dict[str, Any], settings: Settings, provider: CloudmersiveClient) -> Dict[str, Any]:
    from_format, to_format = _require_formats(body)
    entries, _ = _extract_files(body)
    if len(entries) != 1:
        raise ValidationError("Job-based conversion accepts exactly one file", error_code=ErrorCode.INVALID_REQUEST)
    (filename, content), = _decode_files(entries, settings)
    provider.ensure_configured()

    job_id = await provider.start_job(filename, content, from_format, to_format)
    return {"success": True, "jobId": job_id, "status": "queued", "progress": 0}


async def _handle_status(body: Dict[str, Any], provider: CloudmersiveClient) -> Dict[str, Any]:
    job_id = body.get("jobId") or body.get("conversionId")
    if not isinstance(job_id, str) or not job_id.strip():
        raise ValidationError("Missing required field: jobId", error_code=ErrorCode.MISSING_PARAMETER)
    to_format = body.get("toFormat") if isinstance(body.get("toFormat"), str) else None
    filename = body.get("filename") if isinstance(body.get("filename"), str) else None

    status = await provider.get_job_status(job_id.strip())
    payload: Dict[str, Any] = {
        "success": True,
        "jobId": status.job_id,
        "status": status.state.value,
        "progress": status.progress,
    }
    if status.document is not None:
        output_name = filename or status.job_id
        if to_format:
            output_name = get_output_filename(output_name, to_format)
        payload.update({
            "data": encode_content(status.document),
            "filename": output_name,
            "contentType": get_mime_type(to_format),
        })
    if status.error:
        payload["error"] = status.error
    return payload


# ===== ENDPOINTS =====

@router.post("")
async def convert_endpoint(
    request: Request,
    settings: Settings = Depends(get_settings),
    provider: CloudmersiveClient = Depends(get_cloudmersive_client),
):
    """Convert base64 files through the provider, or start/poll a provider job."""
    body = await _read_json(request)
    action = body.get("action") or "convert"

    if action == "convert":
        return await _handle_convert(body, settings, provider)
    elif action == "start":
        return await _handle_start(body, settings, provider)
    elif action == "status":
        return await _handle_status(body, provider)
    raise ValidationError(f"Unknown action: {action}")


@router.options("")
async def convert_options():
    return Response(status_code=200)


@router.get("/supported")
async def get_supported_conversions_endpoint():
    """Get all supported conversion format pairs"""
    return JSONResponse(content={
        "supported_conversions": get_supported_conversions()
    })
