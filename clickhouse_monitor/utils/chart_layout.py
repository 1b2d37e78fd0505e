"""
Declarative chart layout: panel descriptors and the geometry that stacks
them in one column sharing a time axis. All lengths are in points (1/72 in).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

MILLIMETER = 72.0 / 25.4
TIME_AXIS_LABEL = "Time (seconds)"


@dataclass(frozen=True)
class Series:
    points: Tuple[Tuple[float, float], ...]

    @property
    def xs(self) -> List[float]:
        return [p[0] for p in self.points]

    @property
    def ys(self) -> List[float]:
        return [p[1] for p in self.points]

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class PanelSpec:
    title: str
    y_label: str
    series: Series
    x_label: str = TIME_AXIS_LABEL


@dataclass(frozen=True)
class CanvasSpec:
    width: float
    height: float

    @classmethod
    def tall(cls, base: float = 800.0) -> "CanvasSpec":
        """Portrait canvas twice as high as wide."""
        return cls(width=base, height=2 * base)


@dataclass(frozen=True)
class Padding:
    top: float = 10.0
    bottom: float = 10.0
    left: float = 10.0
    right: float = 10.0
    between: float = MILLIMETER


@dataclass(frozen=True)
class AxisInsets:
    """Room kept inside a tile for title, tick labels and axis labels."""

    top: float = 28.0
    bottom: float = 44.0
    left: float = 64.0
    right: float = 12.0


@dataclass(frozen=True)
class Rect:
    left: float
    bottom: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.bottom + self.height

    @property
    def right(self) -> float:
        return self.left + self.width

    def to_fraction(self, canvas: CanvasSpec) -> Tuple[float, float, float, float]:
        """(left, bottom, width, height) as fractions of the canvas."""
        return (
            self.left / canvas.width,
            self.bottom / canvas.height,
            self.width / canvas.width,
            self.height / canvas.height,
        )


def stack_panels(count: int, canvas: CanvasSpec, padding: Padding = Padding()) -> List[Rect]:
    """
    Split the canvas into `count` tiles stacked top to bottom. Tiles share
    the same left edge and width and have equal heights, separated by
    `padding.between`. The first tile is the topmost.
    """
    if count < 1:
        raise ValueError(f"need at least one panel, got {count}")
    width = canvas.width - padding.left - padding.right
    usable = canvas.height - padding.top - padding.bottom - padding.between * (count - 1)
    if width <= 0 or usable <= 0:
        raise ValueError("padding leaves no room for panels")
    height = usable / count

    tiles: List[Rect] = []
    top = canvas.height - padding.top
    for _ in range(count):
        bottom = top - height
        tiles.append(Rect(left=padding.left, bottom=bottom, width=width, height=height))
        top = bottom - padding.between
    return tiles


def plot_area(tile: Rect, insets: AxisInsets = AxisInsets()) -> Rect:
    """Axes rectangle inside a tile, leaving room for labels."""
    width = tile.width - insets.left - insets.right
    height = tile.height - insets.top - insets.bottom
    if width <= 0 or height <= 0:
        raise ValueError("tile too small for axis labels")
    return Rect(left=tile.left + insets.left, bottom=tile.bottom + insets.bottom, width=width, height=height)


def layout_panels(
    panels: Sequence[PanelSpec],
    canvas: CanvasSpec,
    padding: Padding = Padding(),
    insets: AxisInsets = AxisInsets(),
) -> List[Tuple[PanelSpec, Rect]]:
    """Pair each panel with the axes rectangle it is drawn into."""
    tiles = stack_panels(len(panels), canvas, padding)
    return [(panel, plot_area(tile, insets)) for panel, tile in zip(panels, tiles)]
