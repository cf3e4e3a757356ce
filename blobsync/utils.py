"""Utility functions for blobsync."""

from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Constants for transfer operations
# =============================================================================

# Retry configuration for transient transport errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 5.0  # seconds, doubled after each failed attempt

# Safety factor applied to the theoretical transfer time of a single request
DEFAULT_TIMEOUT_SAFETY_FACTOR: int = 5

# Interval between keep-awake ticks
DEFAULT_KEEP_AWAKE_INTERVAL: float = 60.0  # seconds


# =============================================================================
# Timestamp utilities
# =============================================================================


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC, which is how the
    storage service reports its timestamps.

    Args:
        value: Datetime to normalize

    Returns:
        Timezone-aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_from_timestamp(timestamp: float) -> datetime:
    """Convert a POSIX timestamp (e.g. ``st_mtime``) to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a timestamp for console listings.

    Examples:
        >>> format_timestamp(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2025-01-02 03:04:05 UTC'
        >>> format_timestamp(None)
        '-'
    """
    if value is None:
        return "-"
    return to_utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def format_speed(size_bytes: int, elapsed: float) -> str:
    """Format a transfer rate in kB/s.

    Examples:
        >>> format_speed(2048, 1.0)
        '2 kB/s'
        >>> format_speed(2048, 0.0)
        '- kB/s'
    """
    if elapsed <= 0:
        return "- kB/s"
    return f"{size_bytes / 1024 / elapsed:,.0f} kB/s"
