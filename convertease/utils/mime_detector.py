"""
Static MIME type lookup for converted files.

The provider does not report a reliable content type, so results are
labelled from the target format.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPE_MAPPINGS = {
    # Document formats
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "odt": "application/vnd.oasis.opendocument.text",
    "rtf": "application/rtf",
    "pages": "application/vnd.apple.pages",
    "txt": "text/plain",
    "html": "text/html",

    # Image formats
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "webp": "image/webp",
    "svg": "image/svg+xml",

    # Video formats
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "webm": "video/webm",

    # Audio formats
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "wma": "audio/x-ms-wma",
    "m4a": "audio/mp4",
}


def get_mime_type(file_format: Optional[str]) -> str:
    """Get the MIME type for a format, falling back to octet-stream."""
    if not file_format:
        return DEFAULT_MIME_TYPE
    mime_type = MIME_TYPE_MAPPINGS.get(file_format.lower().lstrip("."))
    if mime_type is None:
        logger.debug(f"No MIME mapping for '{file_format}', using {DEFAULT_MIME_TYPE}")
        return DEFAULT_MIME_TYPE
    return mime_type
