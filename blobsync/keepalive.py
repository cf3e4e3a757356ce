"""Background ticker that keeps the host from sleeping during long runs."""

import logging
import sys
import threading
from typing import Callable, Optional

from .utils import DEFAULT_KEEP_AWAKE_INTERVAL

logger = logging.getLogger(__name__)

# SetThreadExecutionState flags
ES_CONTINUOUS = 0x80000000
ES_SYSTEM_REQUIRED = 0x00000001


def default_tick() -> None:
    """Tell the OS that the system is in use.

    Only Windows exposes a per-thread execution state; elsewhere this is a
    no-op.
    """
    if sys.platform != "win32":
        return

    import ctypes

    ctypes.windll.kernel32.SetThreadExecutionState(  # type: ignore[attr-defined]
        ES_CONTINUOUS | ES_SYSTEM_REQUIRED
    )


class KeepAwake:
    """Calls ``tick`` every ``interval`` seconds on a daemon thread.

    Usable as a context manager:

        >>> with KeepAwake(tick=lambda: None):
        ...     pass
    """

    def __init__(
        self,
        interval: float = DEFAULT_KEEP_AWAKE_INTERVAL,
        tick: Optional[Callable[[], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("Keep-awake interval must be positive")
        self.interval = interval
        self.tick = tick or default_tick
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="blobsync-keepawake", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except OSError as e:
                # A failed tick must not take down the transfer run
                logger.debug(f"Keep-awake tick failed: {e}")

    def __enter__(self) -> "KeepAwake":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
