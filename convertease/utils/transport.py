"""
Base64 transport encoding for file bytes carried inside JSON payloads.
"""

import base64
import binascii

from .error_handling import ErrorCode, ValidationError


def encode_content(content: bytes) -> str:
    """Encode raw bytes to base64 text."""
    return base64.b64encode(content).decode("ascii")


def _strip_data_url(data: str) -> str:
    text = data.strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    return text


def decoded_size(data: str) -> int:
    """
    Number of bytes the base64 text decodes to, computed without decoding.

    Exact for well-formed input; malformed input is left for
    ``decode_content`` to reject.
    """
    text = _strip_data_url(data)
    return len(text) * 3 // 4 - text[-2:].count("=")


def decode_content(data: str, filename: str = "") -> bytes:
    """
    Decode base64 text back to raw bytes.

    Accepts surrounding whitespace and a ``data:<mime>;base64,`` prefix as
    produced by browser FileReader.readAsDataURL().

    Raises:
        ValidationError: If the text is not valid base64
    """
    if not isinstance(data, str):
        raise ValidationError(
            f"File data for '{filename}' must be a base64 string",
            error_code=ErrorCode.INVALID_FILE,
        )

    text = _strip_data_url(data)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        label = f" for '{filename}'" if filename else ""
        raise ValidationError(
            f"Invalid base64 file data{label}: {e}",
            error_code=ErrorCode.INVALID_FILE,
        ) from e
