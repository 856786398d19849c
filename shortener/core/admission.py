"""
Sliding-Window Admission Control

Per-client request admission for write endpoints (shorten, bulk shorten,
delete, expiration updates).

Each identifier (usually the client IP) owns a queue of request timestamps.
Timestamps older than the window are dropped from the front of the queue,
and a request is admitted only while fewer than ``max_requests`` remain.

Design Decisions:
- Timestamps live in a deque; expiry is a prefix trim, not a scan
- One lock per identifier, so unrelated clients never wait on each other
- A small registry lock guards only adding/removing windows in the map
- Admission never raises: no tracking state means zero prior requests
- The idle-window sweep is an explicit background task (AdmissionSweeper)
  that can be started, stopped and stepped from tests

State is process-local and disposable; it is never persisted or shared
between instances.
"""

import asyncio
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class AdmissionResult:
    """
    Outcome of an admission check.

    ``remaining`` is set when the request was admitted, ``retry_after_seconds``
    when it was rejected. The retry hint is derived from the oldest tracked
    timestamp and can be 0 or negative; callers clamp it before display.
    """
    allowed: bool
    remaining: Optional[int] = None
    retry_after_seconds: Optional[int] = None


class _Window:
    __slots__ = ("timestamps", "lock", "retired")

    def __init__(self) -> None:
        self.timestamps: Deque[float] = deque()
        self.lock = threading.Lock()
        # Set by cleanup once the window has been dropped from the registry
        self.retired = False

    def trim(self, cutoff: float) -> None:
        timestamps = self.timestamps
        while timestamps and timestamps[0] < cutoff:
            timestamps.popleft()


class SlidingWindowAdmission:
    """
    Per-identifier sliding-window request admission controller.

    One shared instance serves the whole process. Checks for the same
    identifier are linearized; checks for different identifiers run in
    parallel.
    """

    def __init__(
        self,
        window_ms: int = 60000,
        max_requests: int = 10,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the controller.

        Args:
            window_ms: Width of the sliding window in milliseconds
            max_requests: Requests admitted per identifier within one window
            clock: Millisecond clock (defaults to a monotonic clock)
        """
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")

        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or monotonic_ms

        self._windows: Dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    def _window_for(self, identifier: str) -> _Window:
        window = self._windows.get(identifier)
        if window is not None:
            return window
        with self._registry_lock:
            window = self._windows.get(identifier)
            if window is None:
                window = _Window()
                self._windows[identifier] = window
            return window

    def is_allowed(self, identifier: str) -> AdmissionResult:
        """
        Check and record one request for an identifier.

        Args:
            identifier: Client key (IP address, API key, ...)

        Returns:
            AdmissionResult with ``remaining`` when admitted, or
            ``retry_after_seconds`` when rejected
        """
        while True:
            window = self._window_for(identifier)
            with window.lock:
                if window.retired:
                    # Swept between lookup and lock; fetch the fresh window
                    continue

                now = self._clock()
                window.trim(now - self.window_ms)
                timestamps = window.timestamps

                if len(timestamps) >= self.max_requests:
                    retry_after = math.ceil(
                        (timestamps[0] + self.window_ms - now) / 1000
                    )
                    return AdmissionResult(allowed=False, retry_after_seconds=retry_after)

                timestamps.append(now)
                return AdmissionResult(
                    allowed=True,
                    remaining=self.max_requests - len(timestamps)
                )

    def get_request_count(self, identifier: str) -> int:
        """
        Number of timestamps currently tracked for an identifier.

        Not trimmed: reflects the state left by the last check or sweep.
        """
        window = self._windows.get(identifier)
        if window is None:
            return 0
        with window.lock:
            return len(window.timestamps)

    def reset(self, identifier: str) -> None:
        """Forget all requests recorded for an identifier."""
        with self._registry_lock:
            window = self._windows.pop(identifier, None)
        if window is not None:
            with window.lock:
                window.retired = True

    def cleanup(self) -> int:
        """
        Trim every window and drop identifiers left with no timestamps.

        Only bounds memory; ``is_allowed`` trims on its own.

        Returns:
            Number of identifiers removed
        """
        removed = 0
        cutoff = self._clock() - self.window_ms

        with self._registry_lock:
            snapshot = list(self._windows.items())

        for identifier, window in snapshot:
            with window.lock:
                window.trim(cutoff)
                if window.timestamps:
                    continue
                with self._registry_lock:
                    if self._windows.get(identifier) is window:
                        del self._windows[identifier]
                        window.retired = True
                        removed += 1

        if removed:
            logger.debug(f"Admission cleanup removed {removed} idle identifiers")
        return removed

    def tracked_identifiers(self) -> int:
        with self._registry_lock:
            return len(self._windows)


class AdmissionSweeper:
    """
    Background task that periodically runs ``SlidingWindowAdmission.cleanup``.

    Started and stopped explicitly (the application lifespan does both), so
    tests can drive sweeps with ``sweep_once`` instead of waiting on timers.
    """

    def __init__(self, admission: SlidingWindowAdmission, interval_ms: Optional[int] = None):
        self.admission = admission
        self.interval_ms = interval_ms or admission.window_ms
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        return self.admission.cleanup()

    async def _run(self) -> None:
        interval = self.interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep_once()
            except Exception as e:
                logger.error(f"Admission sweep failed: {e}", exc_info=True)

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Admission sweeper started (interval={self.interval_ms}ms)")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Admission sweeper stopped")
