"""
Error taxonomy for the monitor.

Startup errors (configuration, session) are fatal. Sample query errors are
absorbed by the sampler. Render-phase errors abort chart production only.
"""
from __future__ import annotations


class MonitorError(Exception):
    """Base class for all monitor errors."""


class ConfigurationError(MonitorError):
    """Malformed connection target or invalid configuration values."""


class SessionError(MonitorError):
    """A session with the metric source could not be established."""


class SampleQueryError(MonitorError):
    """A single sampling query failed."""


class EmptyLogError(MonitorError):
    """Render requested on a measurement log without any measurements."""

    def __init__(self, message: str = "no measurements to plot") -> None:
        super().__init__(message)


class RenderError(MonitorError):
    """Failure while building or rasterizing the chart."""


class OutputError(MonitorError):
    """Encoded chart bytes could not be delivered to the sink."""


class LogFrozenError(MonitorError):
    """Append attempted after the measurement log was handed off."""
