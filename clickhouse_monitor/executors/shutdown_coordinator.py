"""
Turns an operator termination request into a quiescent measurement log.
"""
from __future__ import annotations

import signal
import threading
from typing import Any, Dict, Optional, Sequence, Tuple

from loguru import logger

from ..utils.measurement_log import Measurement, MeasurementLog
from .sampler import Sampler

_POLL_S = 0.2


class ShutdownCoordinator:
    def __init__(self, signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM)) -> None:
        self.signals = tuple(signals)
        self._requested = threading.Event()
        self._lock = threading.Lock()
        self._previous: Dict[int, Any] = {}
        self.reason: Optional[str] = None
        self._from_signal = False

    def install(self) -> None:
        """Register signal handlers. Must be called from the main thread."""
        for sig in self.signals:
            self._previous[sig] = signal.signal(sig, self._handle_signal)
        logger.debug("Shutdown handlers installed for {}", [signal.Signals(s).name for s in self.signals])

    def uninstall(self) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()

    def __enter__(self) -> "ShutdownCoordinator":
        self.install()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.uninstall()

    def request_termination(self, reason: str = "requested") -> bool:
        """
        Record a termination request. Only the first one counts; returns
        False for any later request.
        """
        with self._lock:
            if self._requested.is_set():
                logger.debug("Ignoring repeated termination request ({})", reason)
                return False
            self.reason = reason
            self._requested.set()
        logger.info("Termination requested ({})", reason)
        return True

    @property
    def termination_requested(self) -> bool:
        return self._requested.is_set()

    def wait_for_termination_request(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a termination request arrives. Polls so that signal
        handlers get a chance to run on the main thread.
        """
        if timeout is not None:
            if not self._requested.wait(timeout):
                return False
        else:
            while not self._requested.wait(_POLL_S):
                pass
        if self._from_signal:
            logger.info("Termination requested ({})", self.reason)
        return True

    def shutdown(self, sampler: Sampler, log: MeasurementLog) -> Tuple[Measurement, ...]:
        """
        Stop the sampler, wait for its acknowledgment, and hand off the log.
        After this returns no further appends can happen.
        """
        logger.info("Stopping monitoring and generating chart...")
        sampler.stop()
        return log.freeze()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        # Runs on the main thread between bytecodes: no locks, no logging.
        if self._requested.is_set():
            return
        self.reason = signal.Signals(signum).name
        self._from_signal = True
        self._requested.set()
