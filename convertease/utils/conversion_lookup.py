"""
Conversion lookup utilities.

Format normalization, category detection and route resolution against the
static tables in ``convertease.config``.
"""

from typing import Dict, List, Optional

from ..config import CONVERSION_ROUTES, FORMAT_ALIASES, FORMAT_CATEGORIES


def normalize_format(file_format: Optional[str]) -> str:
    """Lower-case a format name, strip a leading dot and resolve aliases."""
    if not file_format:
        return ""
    normalized = file_format.strip().lower().lstrip(".")
    return FORMAT_ALIASES.get(normalized, normalized)


def get_file_extension(filename: str) -> str:
    """Get the lower-cased extension of a filename, or '' if it has none."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def _in_table(file_format: str, table: frozenset) -> bool:
    return file_format in table or normalize_format(file_format) in table


def detect_category(file_format: str) -> Optional[str]:
    """
    Find the category whose input table contains the format.

    Args:
        file_format: Extension or format name, e.g. 'docx' or 'JPEG'

    Returns:
        Category name ('document', 'image', 'video', 'audio') or None
    """
    fmt = (file_format or "").strip().lower().lstrip(".")
    if not fmt:
        return None
    for category, table in FORMAT_CATEGORIES.items():
        if _in_table(fmt, table.input):
            return category
    return None


def get_conversion_route(input_format: str, output_format: str) -> Optional[str]:
    """
    Get the provider route for a format pair.

    Returns:
        Provider path such as '/convert/docx/to/pdf', or None when the pair
        is not in the allow-list
    """
    key = (normalize_format(input_format), normalize_format(output_format))
    return CONVERSION_ROUTES.get(key)


def is_supported_pair(input_format: str, output_format: str) -> bool:
    """Check that a route exists and both formats share one category."""
    if get_conversion_route(input_format, output_format) is None:
        return False
    category = detect_category(input_format)
    if category is None:
        return False
    return _in_table(output_format.strip().lower(), FORMAT_CATEGORIES[category].output)


def get_supported_conversions() -> Dict[str, List[str]]:
    """
    Get all supported input formats and their possible output formats.

    Returns:
        Dictionary mapping input formats to sorted lists of output formats
    """
    supported: Dict[str, List[str]] = {}
    for input_fmt, output_fmt in CONVERSION_ROUTES:
        if is_supported_pair(input_fmt, output_fmt):
            supported.setdefault(input_fmt, []).append(output_fmt)
    return {fmt: sorted(outputs) for fmt, outputs in sorted(supported.items())}


def get_output_filename(filename: str, output_format: str) -> str:
    """Rewrite the extension of a filename to the output format."""
    base_name = filename.rsplit(".", 1)[0] if "." in filename else filename
    return f"{base_name or 'converted'}.{output_format.lower()}"


def format_file_size(size: int) -> str:
    """Format a byte count in human readable form, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"
