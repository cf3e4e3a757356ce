"""Change detection and per-transfer timeout/retry policies."""

import logging
import time
from datetime import datetime
from typing import Callable, Optional, TypeVar

from ..exceptions import BlobTransportError
from ..utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT_SAFETY_FACTOR,
    to_utc,
)
from .modes import TransferDirection
from .scanner import LocalFile

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _truncate_to_seconds(value: datetime) -> datetime:
    return to_utc(value).replace(microsecond=0)


def needs_upload(
    local_file: LocalFile,
    remote_exists: bool,
    remote_last_modified: Optional[datetime],
    overwrite: bool,
) -> bool:
    """Decide whether a local file must be uploaded.

    Timestamps are compared in UTC at whole-second resolution, since the
    service reports last modified times without sub-second precision. Equal
    timestamps do not trigger an upload.

    Args:
        local_file: Local file to check
        remote_exists: Whether the remote object exists
        remote_last_modified: Last modified time of the remote object
        overwrite: Upload unconditionally

    Returns:
        True if the file should be uploaded
    """
    if overwrite or not remote_exists or remote_last_modified is None:
        return True
    return _truncate_to_seconds(local_file.last_modified) > _truncate_to_seconds(
        remote_last_modified
    )


def compute_timeout(
    size_bytes: int,
    speed_mbps: float,
    safety_factor: int = DEFAULT_TIMEOUT_SAFETY_FACTOR,
) -> int:
    """Per-request timeout for a transfer of the given size.

    The theoretical transfer time is ``size * 8 / (speed * 1024 * 1024)``
    seconds; it is multiplied by the safety factor, rounded to whole seconds
    and floored at one second.

    Examples:
        >>> compute_timeout(10 * 1024 * 1024, 1)
        400
        >>> compute_timeout(10, 100)
        1
    """
    if speed_mbps <= 0:
        raise ValueError("Transfer speed must be positive")
    theoretical = size_bytes * 8 / (speed_mbps * 1024 * 1024)
    return max(1, round(theoretical * safety_factor))


class AttemptPolicy:
    """Runs one transfer under a timeout and/or retry budget.

    ``transfer`` is called with the per-attempt timeout in seconds (or None
    for no explicit deadline).
    """

    def execute(
        self,
        transfer: Callable[[Optional[float]], T],
        size_bytes: int,
        direction: TransferDirection,
        description: str = "",
    ) -> T:
        raise NotImplementedError


class SpeedTimeoutPolicy(AttemptPolicy):
    """Single attempt with a deadline derived from the expected link speed."""

    def __init__(
        self,
        upload_speed_mbps: float,
        download_speed_mbps: float,
        safety_factor: int = DEFAULT_TIMEOUT_SAFETY_FACTOR,
    ):
        if upload_speed_mbps <= 0 or download_speed_mbps <= 0:
            raise ValueError("Transfer speeds must be positive")
        self.upload_speed_mbps = upload_speed_mbps
        self.download_speed_mbps = download_speed_mbps
        self.safety_factor = safety_factor

    def compute_timeout(self, size_bytes: int, direction: TransferDirection) -> int:
        """Timeout in seconds for a transfer of ``size_bytes`` in ``direction``."""
        speed = (
            self.upload_speed_mbps
            if direction == TransferDirection.UPLOAD
            else self.download_speed_mbps
        )
        return compute_timeout(size_bytes, speed, self.safety_factor)

    def execute(
        self,
        transfer: Callable[[Optional[float]], T],
        size_bytes: int,
        direction: TransferDirection,
        description: str = "",
    ) -> T:
        timeout = self.compute_timeout(size_bytes, direction)
        logger.debug(f"{direction.value} of {description} with timeout {timeout}s")
        return transfer(float(timeout))


class ExponentialRetryPolicy(AttemptPolicy):
    """Retries transport errors with exponential backoff.

    The first retry waits ``initial_delay`` seconds and each further retry
    waits ``backoff`` times longer. Only ``BlobTransportError`` is retried;
    missing objects and local I/O errors fail immediately.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_RETRY_DELAY,
        backoff: float = 2.0,
        timeout: Optional[float] = None,
    ):
        """Initialize the retry policy.

        Args:
            max_retries: Retries after the first attempt (0 disables retrying)
            initial_delay: Delay before the first retry in seconds
            backoff: Multiplier applied to the delay after each retry
            timeout: Optional fixed per-attempt timeout in seconds
        """
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff = backoff
        self.timeout = timeout

    def retry_delay(self, attempt: int) -> float:
        """Delay before retrying after the given 0-based failed attempt."""
        return self.initial_delay * (self.backoff**attempt)

    def execute(
        self,
        transfer: Callable[[Optional[float]], T],
        size_bytes: int,
        direction: TransferDirection,
        description: str = "",
    ) -> T:
        attempt = 0
        while True:
            try:
                return transfer(self.timeout)
            except BlobTransportError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.retry_delay(attempt)
                logger.debug(
                    f"{direction.value.capitalize()} of {description} failed "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                time.sleep(delay)
                attempt += 1
