"""
Fixed-period sampling loop feeding the measurement log.
"""
from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from loguru import logger

from ..utils.clickhouse_utils import QuerySample
from ..utils.errors import SampleQueryError
from ..utils.measurement_log import Measurement, MeasurementLog
from .cancellation import StopToken

DEFAULT_PERIOD_S = 0.3


class MetricSource(Protocol):
    def query_sample(self) -> QuerySample: ...


def monotonic_clock() -> Callable[[], datetime]:
    """
    Wall clock anchored once and advanced by time.monotonic(), so readings
    never go backwards even if the system clock is stepped.
    """
    anchor_wall = datetime.now(timezone.utc)
    anchor_mono = time.monotonic()

    def now() -> datetime:
        return anchor_wall + timedelta(seconds=time.monotonic() - anchor_mono)

    return now


class Sampler:
    """
    Queries the metric source every `period` seconds and appends one
    Measurement per tick until the stop token is signalled.
    """

    def __init__(
        self,
        source: MetricSource,
        log: MeasurementLog,
        *,
        period: float = DEFAULT_PERIOD_S,
        token: Optional[StopToken] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self.source = source
        self.log = log
        self.period = period
        self.token = token or StopToken()
        self._clock = clock or monotonic_clock()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0
        self.degraded_ticks = 0

    def run(self) -> None:
        """Sampling loop. Acknowledges the stop token on the way out."""
        try:
            while not self.token.stop_requested:
                self._tick()
                if self.token.wait(self.period):
                    break
        finally:
            logger.debug("Sampler exiting after {} ticks ({} degraded)", self.ticks, self.degraded_ticks)
            self.token.acknowledge()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("sampler already started")
        logger.info("Sampler started | period={}s", self.period)
        self._thread = threading.Thread(target=self.run, name="clickhouse-sampler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Request stop and block until the loop acknowledges. Returns False if
        `timeout` expired first; the log must not be treated as quiescent then.
        """
        self.token.request_stop()
        if self._thread is None:
            # Never started: nothing can append.
            self.token.acknowledge()
            return True
        if not self.token.wait_acknowledged(timeout):
            logger.warning("Sampler did not acknowledge stop within {}s", timeout)
            return False
        self._thread.join()
        logger.info("Sampler stopped | ticks={} degraded={}", self.ticks, self.degraded_ticks)
        return True

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _tick(self) -> None:
        start = self._clock()
        t0 = time.perf_counter()
        try:
            sample = self.source.query_sample()
        except SampleQueryError as e:
            self._record_degraded(start, t0, str(e))
            return
        except Exception as e:
            self._record_degraded(start, t0, f"{type(e).__name__}: {e}")
            return
        logger.debug("Collected metrics {}", sample.value)
        self.log.append(
            Measurement(timestamp=start, connection_count=sample.value, query_latency=sample.elapsed)
        )
        self.ticks += 1

    def _record_degraded(self, start: datetime, t0: float, reason: str) -> None:
        logger.warning("Sample query failed: {}", reason)
        elapsed = timedelta(seconds=time.perf_counter() - t0)
        self.log.append(Measurement(timestamp=start, connection_count=0, query_latency=elapsed, error=reason))
        self.ticks += 1
        self.degraded_ticks += 1
