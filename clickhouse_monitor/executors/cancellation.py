"""
Cooperative stop token with an explicit acknowledgment handshake.
"""
from __future__ import annotations

import threading
from typing import Optional


class StopToken:
    """
    Signal + acknowledgment contract between a controller and one worker.

    The controller calls `request_stop()` and then `wait_acknowledged()`.
    The worker checks `stop_requested` (or sleeps with `wait()`) and calls
    `acknowledge()` once, after its last write. When `wait_acknowledged()`
    returns True, every write the worker made before acknowledging is
    visible to the controller and no further writes will happen.
    """

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._ack = threading.Event()

    def request_stop(self) -> None:
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def wait(self, timeout: Optional[float]) -> bool:
        """Sleep up to `timeout` seconds. Returns True if stop was requested."""
        return self._stop.wait(timeout)

    def acknowledge(self) -> None:
        self._ack.set()

    @property
    def acknowledged(self) -> bool:
        return self._ack.is_set()

    def wait_acknowledged(self, timeout: Optional[float] = None) -> bool:
        return self._ack.wait(timeout)
