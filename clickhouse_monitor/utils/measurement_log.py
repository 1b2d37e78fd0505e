"""
Measurement value object and the append-only measurement log.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import LogFrozenError


@dataclass(frozen=True)
class Measurement:
    timestamp: datetime
    connection_count: int
    query_latency: timedelta
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @property
    def latency_ms(self) -> float:
        return self.query_latency / timedelta(milliseconds=1)


class MeasurementLog:
    """
    Ordered, append-only history of one monitoring session.

    The sampler is the only writer. Once the session stops, `freeze()` hands
    the completed history to the reader as an immutable tuple and any later
    append raises LogFrozenError.
    """

    def __init__(self) -> None:
        self._items: List[Measurement] = []
        self._lock = threading.Lock()
        self._frozen: Optional[Tuple[Measurement, ...]] = None

    def append(self, measurement: Measurement) -> None:
        if measurement.connection_count < 0:
            raise ValueError(f"connection_count must be >= 0, got {measurement.connection_count}")
        with self._lock:
            if self._frozen is not None:
                raise LogFrozenError("measurement log is frozen")
            if self._items and measurement.timestamp < self._items[-1].timestamp:
                raise ValueError(
                    f"timestamp {measurement.timestamp.isoformat()} precedes "
                    f"{self._items[-1].timestamp.isoformat()}"
                )
            self._items.append(measurement)

    def freeze(self) -> Tuple[Measurement, ...]:
        with self._lock:
            if self._frozen is None:
                self._frozen = tuple(self._items)
            return self._frozen

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    def snapshot(self) -> Tuple[Measurement, ...]:
        with self._lock:
            return tuple(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.snapshot())

    def summary(self) -> Dict[str, float]:
        """
        Session summary: count, degraded count, connection min/max/mean and
        latency mean/p50/p90 (ms). Degraded entries only count towards
        `count` and `degraded`.
        """
        items = self.snapshot()
        if not items:
            return {"count": 0}
        ok = [m for m in items if not m.degraded]
        summary: Dict[str, float] = {
            "count": float(len(items)),
            "degraded": float(len(items) - len(ok)),
        }
        if not ok:
            return summary
        conns = [m.connection_count for m in ok]
        lats = sorted(m.latency_ms for m in ok)
        n = len(lats)

        def perc(p: float) -> float:
            idx = max(0, min(n - 1, int(round(p * (n - 1)))))
            return lats[idx]

        summary.update(
            {
                "connections_min": float(min(conns)),
                "connections_max": float(max(conns)),
                "connections_mean": sum(conns) / len(conns),
                "latency_mean_ms": sum(lats) / n,
                "latency_p50_ms": perc(0.5),
                "latency_p90_ms": perc(0.9),
            }
        )
        return summary
