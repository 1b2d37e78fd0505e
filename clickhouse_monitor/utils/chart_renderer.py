"""
Renders a frozen measurement log as a two-panel PNG time-series chart.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from .chart_layout import AxisInsets, CanvasSpec, Padding, PanelSpec, Series, layout_panels
from .errors import EmptyLogError, RenderError
from .measurement_log import Measurement

CONNECTIONS_TITLE = "Active Connections"
CONNECTIONS_Y_LABEL = "Number of Connections"
DURATION_TITLE = "Query Duration"
DURATION_Y_LABEL = "Duration (ms)"
DEFAULT_FILE_PREFIX = "clickhouse-metrics"


@dataclass(frozen=True)
class ChartImage:
    data: bytes
    suggested_filename: str
    point_count: int


def relative_times(measurements: Sequence[Measurement]) -> List[float]:
    """Seconds elapsed since the first measurement; starts at exactly 0.0."""
    if not measurements:
        return []
    t0 = measurements[0].timestamp
    return [(m.timestamp - t0).total_seconds() for m in measurements]


def build_panels(measurements: Sequence[Measurement]) -> List[PanelSpec]:
    if not measurements:
        raise EmptyLogError()
    ts = relative_times(measurements)
    connections = Series(tuple((t, float(m.connection_count)) for t, m in zip(ts, measurements)))
    durations = Series(tuple((t, m.latency_ms) for t, m in zip(ts, measurements)))
    return [
        PanelSpec(title=CONNECTIONS_TITLE, y_label=CONNECTIONS_Y_LABEL, series=connections),
        PanelSpec(title=DURATION_TITLE, y_label=DURATION_Y_LABEL, series=durations),
    ]


def suggest_filename(prefix: str = DEFAULT_FILE_PREFIX, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{prefix}-{now:%Y%m%d-%H%M%S}.png"


class ChartRenderer:
    def __init__(
        self,
        *,
        canvas: Optional[CanvasSpec] = None,
        padding: Padding = Padding(),
        insets: AxisInsets = AxisInsets(),
        dpi: float = 72.0,
        file_prefix: str = DEFAULT_FILE_PREFIX,
    ) -> None:
        self.canvas = canvas or CanvasSpec.tall()
        self.padding = padding
        self.insets = insets
        self.dpi = dpi
        self.file_prefix = file_prefix

    def build_figure(self, panels: Sequence[PanelSpec]) -> Figure:
        """
        Draw each panel into its own axes. Axes are stacked in one column,
        share the x axis and scale their y axis independently.
        """
        fig = Figure(figsize=(self.canvas.width / 72.0, self.canvas.height / 72.0), dpi=self.dpi)
        FigureCanvasAgg(fig)
        shared = None
        for panel, rect in layout_panels(panels, self.canvas, self.padding, self.insets):
            ax = fig.add_axes(rect.to_fraction(self.canvas), sharex=shared)
            if shared is None:
                shared = ax
            ax.plot(panel.series.xs, panel.series.ys, marker="o", markersize=4, linewidth=1.2)
            ax.set_title(panel.title)
            ax.set_xlabel(panel.x_label)
            ax.set_ylabel(panel.y_label)
            ax.set_axisbelow(True)
            ax.grid(True, alpha=0.3, linestyle="--")
        return fig

    def render(self, measurements: Sequence[Measurement], *, now: Optional[datetime] = None) -> ChartImage:
        panels = build_panels(measurements)
        try:
            fig = self.build_figure(panels)
            buf = io.BytesIO()
            fig.savefig(buf, format="png", dpi=self.dpi, metadata={"Software": None})
        except Exception as e:
            raise RenderError(f"error rendering chart: {e}") from e
        data = buf.getvalue()
        logger.debug("Rendered {} points per panel into {} bytes", len(measurements), len(data))
        return ChartImage(
            data=data,
            suggested_filename=suggest_filename(self.file_prefix, now),
            point_count=len(measurements),
        )
