"""Utility helper functions shared by the engine and the CLI."""

import uuid

from common.constants import (
    TEMP_ID_PREFIX,
    UPLOAD_BASE_TIMEOUT_SECONDS,
    UPLOAD_TIMEOUT_PER_MIB_SECONDS,
)


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def generate_temp_id() -> str:
    """
    Generate a client-side identifier for a staged file unit.

    Returns:
        Identifier of the form tmp_<32 hex chars>
    """
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(unit_id: str) -> bool:
    return unit_id.startswith(TEMP_ID_PREFIX)


def calculate_upload_timeout(file_size: int) -> float:
    """
    Calculate timeout for upload based on file size.

    Args:
        file_size: File size in bytes

    Returns:
        Timeout in seconds (30s base + 0.1s per MiB)
    """
    size_mib = file_size / (1024 * 1024)
    return UPLOAD_BASE_TIMEOUT_SECONDS + size_mib * UPLOAD_TIMEOUT_PER_MIB_SECONDS


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
