"""
Interactive line chart engine.

Holds named (timestamp, value) series, keeps auto-scaling axis bounds and a
zoom/pan viewport over the x axis, and renders to a flat list of draw
operations. The engine knows nothing about the toolkit: the tkinter canvas
painter in `feepulse.app` interprets the operations, and `export_png`
renders the same view with matplotlib.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import matplotlib.dates as mdates
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from feepulse.history import FeeHistory
from feepulse.models import MarketSnapshot

logger = logging.getLogger(__name__)

# red, yellow, teal, blue, purple, orange, green
PALETTE = ('#F24236', '#F5CC17', '#29A199', '#66A6FC', '#BD2EF2', '#FF705E', '#4DB04F')

BACKGROUND_COLOR = '#1E1E2E'
GRID_COLOR = '#45475A'
TEXT_COLOR = '#CDD6F4'
LEGEND_BACKGROUND = '#1A1A1A'

MIN_ZOOM = 1.0
MAX_ZOOM = 20.0
GRID_DIVISIONS = 5
LINE_WIDTH = 2.0
POINT_RADIUS = 3.0

LEGEND_WIDTH = 150
LEGEND_PADDING = 10
LEGEND_ROW_HEIGHT = 20
LEGEND_SWATCH = 12
LEGEND_TEXT_GAP = 5

FEE_SERIES = ('Fastest', 'Half hour', 'Hour')
PRICE_SERIES = 'BTC/USD'
MEMPOOL_SERIES = 'Transactions'


@dataclass
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: str


@dataclass
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float = 0.5


@dataclass
class PolylineOp:
    points: List[Tuple[float, float]]
    color: str
    width: float = LINE_WIDTH


@dataclass
class CircleOp:
    x: float
    y: float
    radius: float
    fill: str


@dataclass
class TextOp:
    x: float
    y: float
    text: str
    color: str
    anchor: str = 'w'
    size: int = 9


DrawOp = Union[RectOp, LineOp, PolylineOp, CircleOp, TextOp]


@dataclass
class ChartSeries:
    label: str
    color: str
    points: List[Tuple[float, float]] = field(default_factory=list)
    visible: bool = True
    show_points: bool = True


def format_axis_value(value: float) -> str:
    magnitude = abs(value)
    if magnitude >= 1000:
        return f"{value:,.0f}"
    if magnitude >= 10:
        return f"{value:.1f}"
    return f"{value:.2f}"


class ChartEngine:
    """Time-series chart state: series, bounds, zoom and pan"""

    def __init__(self, title: Optional[str] = None):
        self.title = title
        self.series: Dict[str, ChartSeries] = {}
        self.zoom = MIN_ZOOM
        self.pan_offset = 0.0
        self.auto_x = True
        self._reset_bounds()

    def _reset_bounds(self) -> None:
        self.min_x, self.max_x = 0.0, 1.0
        self.min_y, self.max_y = 0.0, 1.0
        self._has_x = False
        self._has_y = False

    @property
    def x_range(self) -> float:
        return self.max_x - self.min_x

    @property
    def visible_range(self) -> float:
        return self.x_range / self.zoom

    def add_series(self, label: str, color: Optional[str] = None,
                   show_points: bool = True) -> ChartSeries:
        """Create a series, or return the existing one with that label"""
        existing = self.series.get(label)
        if existing is not None:
            return existing
        if color is None:
            color = PALETTE[len(self.series) % len(PALETTE)]
        series = ChartSeries(label=label, color=color, show_points=show_points)
        self.series[label] = series
        return series

    def get_series(self, label: str) -> Optional[ChartSeries]:
        return self.series.get(label)

    def add_point(self, label: str, timestamp: float, value: float) -> None:
        series = self.add_series(label)
        series.points.append((float(timestamp), float(value)))
        self._expand_x(float(timestamp))
        self._expand_y(float(value))

    def add_value(self, index: int, value: float, now: Optional[float] = None) -> bool:
        """Append a value stamped with the current time to the series at index"""
        labels = list(self.series)
        if not 0 <= index < len(labels):
            return False
        self.add_point(labels[index], time.time() if now is None else now, value)
        return True

    def _expand_x(self, x: float) -> None:
        if not self.auto_x:
            return
        if not self._has_x:
            self.min_x = self.max_x = x
            self._has_x = True
        else:
            self.min_x = min(self.min_x, x)
            self.max_x = max(self.max_x, x)
        self._clamp_pan()

    def _expand_y(self, y: float) -> None:
        if not self._has_y:
            self.min_y = self.max_y = y
            self._has_y = True
        else:
            if y < self.min_y:
                self.min_y = y - abs(y) * 0.05
            if y > self.max_y:
                self.max_y = y + abs(y) * 0.05

        if self.min_y == self.max_y:
            spread = abs(self.min_y) * 0.1 if self.min_y != 0 else 1.0
            self.min_y -= spread
            self.max_y += spread

    def clear_series(self, label: str) -> bool:
        series = self.series.get(label)
        if series is None:
            return False
        series.points.clear()
        if not any(s.points for s in self.series.values()):
            auto_x = self.auto_x
            x_bounds = (self.min_x, self.max_x)
            self._reset_bounds()
            if not auto_x:
                self.min_x, self.max_x = x_bounds
            self.reset_zoom()
        return True

    def clear(self) -> None:
        for label in list(self.series):
            self.clear_series(label)

    def set_series_visible(self, label: str, visible: bool) -> bool:
        series = self.series.get(label)
        if series is None:
            return False
        series.visible = visible
        return True

    def set_time_range(self, start: float, end: float) -> None:
        """Pin the x axis to [start, end]; new points no longer move it"""
        if end < start:
            start, end = end, start
        self.min_x, self.max_x = float(start), float(end)
        self.auto_x = False
        self._clamp_pan()

    def reset_zoom(self) -> None:
        self.zoom = MIN_ZOOM
        self.pan_offset = 0.0

    def _max_pan(self) -> float:
        return max(0.0, self.x_range * (1.0 - 1.0 / self.zoom))

    def _clamp_pan(self) -> None:
        self.pan_offset = min(max(self.pan_offset, 0.0), self._max_pan())

    def visible_x_range(self) -> Tuple[float, float]:
        start = self.min_x + self.pan_offset
        return start, start + self.visible_range

    def data_x_at(self, pixel_x: float, width: float) -> float:
        start, _ = self.visible_x_range()
        if width <= 0:
            return start
        return start + (pixel_x / width) * self.visible_range

    def to_screen(self, x: float, y: float, width: float, height: float) -> Tuple[float, float]:
        view_min, view_max = self.visible_x_range()
        view_range = view_max - view_min
        if view_range > 0:
            screen_x = (x - view_min) / view_range * width
        else:
            screen_x = width / 2.0

        y_range = self.max_y - self.min_y
        if y_range > 0:
            screen_y = height - (y - self.min_y) / y_range * height
        else:
            screen_y = height / 2.0
        return screen_x, screen_y

    def on_pan(self, delta_pixels: float, width: float) -> None:
        if width <= 0:
            return
        self.pan_offset += delta_pixels * (self.visible_range / width)
        self._clamp_pan()

    def on_zoom(self, factor: float, pivot_x: float, width: float) -> bool:
        """Zoom around pivot_x so the data under it stays put; False if nothing changed"""
        if width <= 0 or factor <= 0:
            return False
        new_zoom = min(max(self.zoom * factor, MIN_ZOOM), MAX_ZOOM)
        if new_zoom == self.zoom:
            return False

        data_x = self.data_x_at(pivot_x, width)
        self.zoom = new_zoom
        self.pan_offset = (data_x - self.min_x) - (pivot_x / width) * self.visible_range
        self._clamp_pan()
        return True

    def _drawable_series(self) -> List[ChartSeries]:
        return [s for s in self.series.values() if s.visible and s.points]

    def render(self, width: float, height: float) -> List[DrawOp]:
        """Draw operations for a canvas of the given size, back to front"""
        if width <= 0 or height <= 0:
            return []

        ops: List[DrawOp] = [RectOp(0, 0, width, height, BACKGROUND_COLOR)]
        for i in range(GRID_DIVISIONS + 1):
            x = width * i / GRID_DIVISIONS
            y = height * i / GRID_DIVISIONS
            ops.append(LineOp(x, 0, x, height, GRID_COLOR))
            ops.append(LineOp(0, y, width, y, GRID_COLOR))

        drawable = self._drawable_series()
        if not drawable:
            return ops

        for i in range(GRID_DIVISIONS + 1):
            value = self.max_y - (self.max_y - self.min_y) * i / GRID_DIVISIONS
            y = height * i / GRID_DIVISIONS
            anchor = 'nw' if i == 0 else ('sw' if i == GRID_DIVISIONS else 'w')
            ops.append(TextOp(4, y, format_axis_value(value), TEXT_COLOR, anchor=anchor, size=8))

        if self.title:
            ops.append(TextOp(width / 2.0, 4, self.title, TEXT_COLOR, anchor='n', size=10))

        for series in drawable:
            screen = [self.to_screen(x, y, width, height) for x, y in series.points]
            ops.append(PolylineOp(screen, series.color))
            if series.show_points:
                ops.extend(CircleOp(sx, sy, POINT_RADIUS, series.color) for sx, sy in screen)

        ops.extend(self._legend_ops(drawable, width))
        return ops

    def legend_height(self, count: int) -> int:
        return count * LEGEND_ROW_HEIGHT + 2 * LEGEND_PADDING

    def _legend_ops(self, entries: List[ChartSeries], width: float) -> List[DrawOp]:
        legend_x = width - LEGEND_WIDTH - LEGEND_PADDING
        legend_y = LEGEND_PADDING
        ops: List[DrawOp] = [
            RectOp(legend_x, legend_y, LEGEND_WIDTH, self.legend_height(len(entries)),
                   LEGEND_BACKGROUND),
        ]
        item_y = legend_y + LEGEND_PADDING
        for series in entries:
            ops.append(RectOp(legend_x + LEGEND_PADDING, item_y, LEGEND_SWATCH, LEGEND_SWATCH,
                              series.color))
            ops.append(TextOp(legend_x + LEGEND_PADDING + LEGEND_SWATCH + LEGEND_TEXT_GAP,
                              item_y + LEGEND_SWATCH / 2.0, series.label, TEXT_COLOR))
            item_y += LEGEND_ROW_HEIGHT
        return ops

    def export_png(self, path: Union[str, Path], width: int = 800, height: int = 400,
                   dpi: int = 100) -> bool:
        """Save the visible window of the chart as a PNG image"""
        try:
            fig = Figure(figsize=(width / dpi, height / dpi), dpi=dpi,
                         facecolor=BACKGROUND_COLOR)
            FigureCanvasAgg(fig)
            ax = fig.add_subplot(111, facecolor=BACKGROUND_COLOR)

            ax.spines['top'].set_visible(False)
            ax.spines['right'].set_visible(False)
            ax.spines['bottom'].set_color(GRID_COLOR)
            ax.spines['left'].set_color(GRID_COLOR)
            ax.tick_params(colors=TEXT_COLOR, labelsize=8)
            ax.grid(True, alpha=0.3, color=GRID_COLOR)

            drawable = self._drawable_series()
            for series in drawable:
                times = [datetime.fromtimestamp(x) for x, _ in series.points]
                values = [y for _, y in series.points]
                ax.plot(times, values, color=series.color, linewidth=LINE_WIDTH,
                        marker='o' if series.show_points else None, markersize=POINT_RADIUS,
                        label=series.label)

            if drawable:
                start, end = self.visible_x_range()
                if end > start:
                    ax.set_xlim(datetime.fromtimestamp(start), datetime.fromtimestamp(end))
                ax.set_ylim(self.min_y, self.max_y)
                ax.xaxis.set_major_formatter(mdates.DateFormatter('%H:%M'))
                legend = ax.legend(loc='upper right', facecolor=LEGEND_BACKGROUND,
                                   edgecolor=GRID_COLOR, fontsize=8)
                for text in legend.get_texts():
                    text.set_color(TEXT_COLOR)

            if self.title:
                ax.set_title(self.title, color=TEXT_COLOR, fontsize=11)

            fig.savefig(str(path), facecolor=fig.get_facecolor())
            logger.info(f"Chart exported to {path}")
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Chart export failed: {e}")
            return False


def plot_history(chart: ChartEngine, history: FeeHistory) -> int:
    """Replace the fee series with the contents of a history buffer"""
    for label in FEE_SERIES:
        chart.add_series(label)
        chart.clear_series(label)
    points = history.iterate()
    for point in points:
        chart.add_point(FEE_SERIES[0], point.timestamp, point.fastest)
        chart.add_point(FEE_SERIES[1], point.timestamp, point.half_hour)
        chart.add_point(FEE_SERIES[2], point.timestamp, point.hour)
    return len(points)


def plot_snapshot(charts: Dict[str, ChartEngine], snapshot: MarketSnapshot) -> None:
    """Append one snapshot to whichever of the fee/price/mempool charts are present"""
    stamp = snapshot.fees.timestamp
    fee_chart = charts.get('fees')
    if fee_chart is not None:
        fee_chart.add_point(FEE_SERIES[0], stamp, snapshot.fees.fastest)
        fee_chart.add_point(FEE_SERIES[1], stamp, snapshot.fees.half_hour)
        fee_chart.add_point(FEE_SERIES[2], stamp, snapshot.fees.hour)

    price_chart = charts.get('price')
    if price_chart is not None and snapshot.price is not None:
        price_chart.add_point(PRICE_SERIES, snapshot.price.timestamp or stamp, snapshot.price.usd)

    mempool_chart = charts.get('mempool')
    if mempool_chart is not None and snapshot.mempool is not None:
        mempool_chart.add_point(MEMPOOL_SERIES, stamp, snapshot.mempool.tx_count)
