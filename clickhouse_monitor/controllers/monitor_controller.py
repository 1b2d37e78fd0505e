"""
Monitoring session controller.

Wires the ClickHouse client, the sampler, the shutdown coordinator and the
chart renderer into one session: sample until the operator asks to stop,
then render the collected history and hand the PNG to a sink.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from ..executors.sampler import DEFAULT_PERIOD_S, MetricSource, Sampler
from ..executors.shutdown_coordinator import ShutdownCoordinator
from ..utils.chart_layout import CanvasSpec
from ..utils.chart_renderer import ChartImage, ChartRenderer, DEFAULT_FILE_PREFIX
from ..utils.clickhouse_utils import DEFAULT_QUERY, ClickHouseClient, parse_dsn
from ..utils.errors import ConfigurationError
from ..utils.measurement_log import Measurement, MeasurementLog
from ..utils.output_sink import FileSink, OutputSink


class MonitorConfig(BaseModel):
    dsn: str
    sample_period_s: float = Field(default=DEFAULT_PERIOD_S, gt=0)
    query: str = DEFAULT_QUERY
    # None keeps queries unbounded; only the connect phase times out.
    query_timeout_s: Optional[float] = Field(default=None, gt=0)
    output_dir: str = "."
    file_prefix: str = DEFAULT_FILE_PREFIX
    chart_base_size: int = Field(default=800, ge=200)


def build_config(data: Dict[str, Any]) -> MonitorConfig:
    try:
        return MonitorConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


class MonitorController:
    """One monitoring session against a single ClickHouse server."""

    def __init__(
        self,
        config: MonitorConfig,
        *,
        client: Optional[MetricSource] = None,
        sink_factory: Optional[Callable[[ChartImage], OutputSink]] = None,
        renderer: Optional[ChartRenderer] = None,
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._sink_factory = sink_factory or self._file_sink
        self.renderer = renderer or ChartRenderer(
            canvas=CanvasSpec.tall(float(config.chart_base_size)),
            file_prefix=config.file_prefix,
        )
        self.log: Optional[MeasurementLog] = None
        self.sampler: Optional[Sampler] = None
        self.last_output: Optional[Path] = None

    @property
    def client(self) -> Optional[MetricSource]:
        return self._client

    def start(self) -> None:
        """Open the session and start sampling. Startup errors propagate."""
        if self._client is None:
            settings = parse_dsn(self.config.dsn)
            client = ClickHouseClient(
                settings,
                query=self.config.query,
                query_timeout=self.config.query_timeout_s,
            )
            try:
                client.connect()
            except Exception:
                client.close()
                raise
            self._client = client

        self.log = MeasurementLog()
        self.sampler = Sampler(self._client, self.log, period=self.config.sample_period_s)
        self.sampler.start()
        logger.info("Starting monitoring. Press Ctrl+C to stop and generate the chart...")

    def stop(self, coordinator: ShutdownCoordinator) -> Tuple[Measurement, ...]:
        if self.sampler is None or self.log is None:
            raise RuntimeError("controller not started")
        measurements = coordinator.shutdown(self.sampler, self.log)
        logger.info("Session summary: {}", self.log.summary())
        if isinstance(self._client, ClickHouseClient):
            logger.info("Query latency (successful queries): {}", self._client.latency_summary())
        return measurements

    def render(self, measurements: Tuple[Measurement, ...]) -> Optional[Path]:
        """Render and deliver. Render-phase errors propagate to the caller."""
        image = self.renderer.render(measurements)
        sink = self._sink_factory(image)
        sink.write(image.data)
        self.last_output = getattr(sink, "path", None)
        return self.last_output

    def run(self, coordinator: ShutdownCoordinator) -> Optional[Path]:
        """Full session: sample until termination is requested, then chart."""
        try:
            self.start()
            coordinator.wait_for_termination_request()
            measurements = self.stop(coordinator)
            return self.render(measurements)
        finally:
            self.close()

    def close(self) -> None:
        if self.sampler is not None and self.sampler.running:
            self.sampler.stop()
        if self._owns_client and isinstance(self._client, ClickHouseClient):
            self._client.close()

    def _file_sink(self, image: ChartImage) -> OutputSink:
        return FileSink(Path(self.config.output_dir) / image.suggested_filename)
