"""
Conversion configuration for the /convert endpoint and the orchestrator.

This module defines the format categories, the provider route table that
acts as the allow-list of supported conversion pairs, and the runtime
settings read from the environment.
"""

import os
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class FormatTable:
    """Input and output extensions accepted for one category."""
    input: FrozenSet[str]
    output: FrozenSet[str]


# Format categories offered by the front-end
FORMAT_CATEGORIES: Dict[str, FormatTable] = {
    "document": FormatTable(
        input=frozenset({"pdf", "docx", "doc", "txt", "rtf", "odt", "pages", "html"}),
        output=frozenset({"pdf", "docx", "txt", "rtf", "odt", "html"}),
    ),
    "image": FormatTable(
        input=frozenset({"jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp", "svg"}),
        output=frozenset({"jpg", "png", "gif", "webp", "bmp", "tiff", "svg"}),
    ),
    "video": FormatTable(
        input=frozenset({"mp4", "avi", "mov", "mkv", "wmv", "flv", "webm"}),
        output=frozenset({"mp4", "avi", "mov", "mkv", "webm", "gif"}),
    ),
    "audio": FormatTable(
        input=frozenset({"mp3", "wav", "flac", "aac", "ogg", "wma", "m4a"}),
        output=frozenset({"mp3", "wav", "flac", "aac", "ogg"}),
    ),
}

# Spelling variants that resolve to the same format
FORMAT_ALIASES: Dict[str, str] = {
    "jpeg": "jpg",
    "tif": "tiff",
    "htm": "html",
}

# Provider routes, keyed by (from, to). Only these pairs are supported.
CONVERSION_ROUTES: Dict[Tuple[str, str], str] = {
    # Document conversions
    ("docx", "pdf"): "/convert/docx/to/pdf",
    ("pdf", "docx"): "/convert/pdf/to/docx",
    ("pdf", "txt"): "/convert/pdf/to/txt",
    ("docx", "txt"): "/convert/docx/to/txt",
    ("txt", "pdf"): "/convert/txt/to/pdf",
    ("html", "pdf"): "/convert/html/to/pdf",
    ("rtf", "pdf"): "/convert/rtf/to/pdf",

    # Image conversions
    ("jpg", "png"): "/image/convert/jpg/to/png",
    ("png", "jpg"): "/image/convert/png/to/jpg",
    ("gif", "png"): "/image/convert/gif/to/png",
    ("bmp", "png"): "/image/convert/bmp/to/png",
    ("tiff", "png"): "/image/convert/tiff/to/png",
    ("webp", "png"): "/image/convert/webp/to/png",
    ("png", "webp"): "/image/convert/png/to/webp",
    ("jpg", "webp"): "/image/convert/jpg/to/webp",

    # Video conversions (basic support)
    ("mp4", "avi"): "/video/convert/mp4/to/avi",
    ("avi", "mp4"): "/video/convert/avi/to/mp4",
    ("mov", "mp4"): "/video/convert/mov/to/mp4",
    ("mkv", "mp4"): "/video/convert/mkv/to/mp4",
    ("webm", "mp4"): "/video/convert/webm/to/mp4",

    # Audio conversions
    ("mp3", "wav"): "/audio/convert/mp3/to/wav",
    ("wav", "mp3"): "/audio/convert/wav/to/mp3",
    ("flac", "mp3"): "/audio/convert/flac/to/mp3",
    ("aac", "mp3"): "/audio/convert/aac/to/mp3",
    ("ogg", "mp3"): "/audio/convert/ogg/to/mp3",
}

# Asynchronous (job-based) provider endpoints
JOB_START_PATH = "/convert/batch-job/{from_format}/to/{to_format}"
JOB_STATUS_PATH = "/convert/batch-job/get-status"

DEFAULT_API_BASE_URL = "https://api.cloudmersive.com"
DEFAULT_PROXY_URL = "http://localhost:8080/convert"
DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 30


# User-facing messages
class Messages:
    FILE_TOO_LARGE = "File size exceeds the maximum limit of {limit}"
    FILE_NOT_SUPPORTED = "File type not supported for conversion"
    SAME_FORMAT = "Input and output formats cannot be the same"
    NO_FILE_SELECTED = "Please select a file first"
    NO_FORMAT_SELECTED = "Please select both input and output formats"
    MIXED_CATEGORIES = "All files in one batch must belong to the same category"
    CONVERSION_FAILED = "File conversion failed. Please try again."
    NETWORK_ERROR = "Network error. Please check your connection and try again."
    TIMEOUT_ERROR = "Request timed out. Please try again."
    API_KEY_MISSING = "API key not configured"
    API_KEY_REJECTED = "API key rejected by the conversion provider"
    METHOD_NOT_ALLOWED = "Method not allowed"


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read once from the environment."""
    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    proxy_url: str = DEFAULT_PROXY_URL
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS

    @classmethod
    def from_env(cls) -> 'Settings':
        """Create settings from environment variables."""
        return cls(
            api_key=os.getenv('CLOUDMERSIVE_API_KEY') or None,
            api_base_url=os.getenv('CONVERTEASE_API_BASE_URL', DEFAULT_API_BASE_URL).rstrip('/'),
            proxy_url=os.getenv('CONVERTEASE_PROXY_URL', DEFAULT_PROXY_URL),
            max_file_size=int(os.getenv('CONVERTEASE_MAX_FILE_SIZE', str(DEFAULT_MAX_FILE_SIZE))),
            http_timeout=float(os.getenv('CONVERTEASE_HTTP_TIMEOUT', str(DEFAULT_HTTP_TIMEOUT))),
            poll_interval=float(os.getenv('CONVERTEASE_POLL_INTERVAL', str(DEFAULT_POLL_INTERVAL))),
            max_poll_attempts=int(os.getenv('CONVERTEASE_MAX_POLL_ATTEMPTS', str(DEFAULT_MAX_POLL_ATTEMPTS))),
        )

    @property
    def poll_ceiling(self) -> float:
        """Longest time the polling loop can wait, in seconds."""
        return self.poll_interval * self.max_poll_attempts


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reload_settings() -> Settings:
    """Discard cached settings and read the environment again."""
    global _settings
    _settings = Settings.from_env()
    return _settings
