import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from tokenlens.series import Metric, ModelShare, SeriesPoint

DEFAULT_PADDING = 40
BAR_FILL_RATIO = 0.7
DEGREES_PER_PERCENT = 3.6
FULL_TURN = 360.0
DONUT_RADIUS = 60
GAUGE_RADIUS = 75

GRID_RATIOS: "tuple[float, ...]" = (0, 0.25, 0.5, 0.75, 1)
TICK_RATIOS: "tuple[float, ...]" = (1, 0.75, 0.5, 0.25, 0)


class ChartKind(Enum):
    AREA = "area"
    LINE = "line"
    BAR = "bar"


@dataclass(frozen=True, slots=True)
class PlotArea:
    width: "float"
    height: "float"
    padding: "float" = DEFAULT_PADDING

    @property
    def plot_width(self) -> "float":
        return self.width - self.padding * 2

    @property
    def plot_height(self) -> "float":
        return self.height - self.padding * 2

    @property
    def baseline(self) -> "float":
        return self.padding + self.plot_height

    @property
    def is_degenerate(self) -> "bool":
        return self.plot_width <= 0 or self.plot_height <= 0


@dataclass(frozen=True, slots=True)
class ChartPoint:
    label: "str"
    value: "float"
    # share of the max value, 1.0 at the top of the plot
    normalized_y: "float"
    x: "float"
    y: "float"


@dataclass(frozen=True, slots=True)
class BarRect:
    label: "str"
    value: "float"
    x: "float"
    y: "float"
    width: "float"
    height: "float"


@dataclass(frozen=True, slots=True)
class ChartGeometry:
    """
    ChartGeometry is everything needed to draw one chart kind.
    Area and line charts carry a path and points; bar charts only
    carry bars. is_empty tells the caller to show an empty state.
    """

    kind: "ChartKind"
    max_value: "float"
    path: "str" = ""
    points: "tuple[ChartPoint, ...]" = ()
    bars: "tuple[BarRect, ...]" = ()

    @property
    def is_empty(self) -> "bool":
        return not self.path and not self.bars


@dataclass(frozen=True, slots=True)
class AxisTick:
    label: "str"
    x: "float"
    y: "float"
    value: "float | None" = None


@dataclass(frozen=True, slots=True)
class DonutArc:
    key: "str"
    color: "str"
    percentage: "float"
    start_rotation: "float"
    sweep: "float"
    dash_array: "float"
    dash_offset: "float"


@dataclass(frozen=True, slots=True)
class RingGauge:
    percentage: "float"
    dash_array: "float"
    dash_offset: "float"


def _coord(value: "float") -> "str":
    # integral coordinates render without a trailing ".0"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _finite_or_zero(value: "float") -> "float":
    return value if math.isfinite(value) else 0.0


def max_value(values: "Sequence[float]") -> "float":
    """
    largest value, floored at 1 so an empty or all-zero series
    never divides by zero.
    """
    finite = [v for v in values if math.isfinite(v)]
    if not finite:
        return 1
    highest = max(finite)
    return highest if highest > 0 else 1


def chart_points(
    series: "Sequence[SeriesPoint]",
    metric: "Metric",
    area: "PlotArea",
) -> "list[ChartPoint]":
    if not series or area.is_degenerate:
        return []

    top = max_value([p.value(metric) for p in series])
    steps = max(len(series) - 1, 1)
    points: "list[ChartPoint]" = []
    for i, point in enumerate(series):
        value = _finite_or_zero(point.value(metric))
        normalized = value / top
        points.append(
            ChartPoint(
                label=point.short_date,
                value=value,
                normalized_y=max(0.0, min(1.0, normalized)),
                x=area.padding + i / steps * area.plot_width,
                y=area.padding + area.plot_height - normalized * area.plot_height,
            )
        )
    return points


def line_path(points: "Sequence[ChartPoint]") -> "str":
    return " ".join(
        f"{'M' if i == 0 else 'L'} {_coord(p.x)} {_coord(p.y)}"
        for i, p in enumerate(points)
    )


def area_path(points: "Sequence[ChartPoint]", area: "PlotArea") -> "str":
    """
    line path closed along the baseline, back to the first x.
    """
    if not points:
        return ""
    base = _coord(area.baseline)
    return (
        f"{line_path(points)} L {_coord(points[-1].x)} {base} "
        f"L {_coord(area.padding)} {base} Z"
    )


def bar_rects(
    series: "Sequence[SeriesPoint]",
    metric: "Metric",
    area: "PlotArea",
) -> "list[BarRect]":
    if not series or area.is_degenerate:
        return []

    top = max_value([p.value(metric) for p in series])
    slot = area.plot_width / len(series)
    bar_width = slot * BAR_FILL_RATIO
    bars: "list[BarRect]" = []
    for i, point in enumerate(series):
        value = _finite_or_zero(point.value(metric))
        height = value / top * area.plot_height
        bars.append(
            BarRect(
                label=point.short_date,
                value=value,
                x=area.padding + i * slot + (slot - bar_width) / 2,
                y=area.padding + area.plot_height - height,
                width=bar_width,
                height=height,
            )
        )
    return bars


def build_chart(
    series: "Sequence[SeriesPoint]",
    metric: "Metric",
    kind: "ChartKind",
    area: "PlotArea",
) -> "ChartGeometry":
    top = max_value([p.value(metric) for p in series])
    if kind is ChartKind.BAR:
        return ChartGeometry(
            kind=kind,
            max_value=top,
            bars=tuple(bar_rects(series, metric, area)),
        )

    points = chart_points(series, metric, area)
    if kind is ChartKind.AREA:
        path = area_path(points, area)
    else:
        path = line_path(points)
    return ChartGeometry(kind=kind, max_value=top, path=path, points=tuple(points))


def grid_lines(area: "PlotArea") -> "list[tuple[float, float, float, float]]":
    """
    horizontal guide lines as (x1, y1, x2, y2).
    """
    if area.is_degenerate:
        return []
    return [
        (
            area.padding,
            area.padding + area.plot_height * ratio,
            area.width - area.padding,
            area.padding + area.plot_height * ratio,
        )
        for ratio in GRID_RATIOS
    ]


def y_axis_ticks(
    top: "float",
    area: "PlotArea",
    formatter: "Callable[[float], str]" = _coord,
) -> "list[AxisTick]":
    if area.is_degenerate:
        return []
    return [
        AxisTick(
            label=formatter(top * ratio),
            x=area.padding - 8,
            y=area.padding + area.plot_height * (1 - ratio) + 4,
            value=top * ratio,
        )
        for ratio in TICK_RATIOS
    ]


def x_axis_labels(
    series: "Sequence[SeriesPoint]",
    kind: "ChartKind",
    area: "PlotArea",
) -> "list[AxisTick]":
    if not series or area.is_degenerate:
        return []

    n = len(series)
    labels: "list[AxisTick]" = []
    for i, point in enumerate(series):
        if kind is ChartKind.BAR:
            x = area.padding + i * area.plot_width / n + area.plot_width / n / 2
        else:
            x = area.padding + i / max(n - 1, 1) * area.plot_width
        labels.append(AxisTick(label=point.short_date, x=x, y=area.height - 10))
    return labels


def donut_arcs(
    shares: "Sequence[ModelShare]",
    radius: "float" = DONUT_RADIUS,
) -> "list[DonutArc]":
    """
    lays the breakdown out as stroke-dash arcs on one ring. Each
    arc starts where the previous ones end; rotation stops at a
    full turn so inconsistent totals can't wrap around.
    """
    circumference = 2 * math.pi * radius
    arcs: "list[DonutArc]" = []
    cumulative = 0.0
    for share in shares:
        pct = max(0.0, _finite_or_zero(share.percentage_of_today))
        start = min(cumulative * DEGREES_PER_PERCENT, FULL_TURN)
        arcs.append(
            DonutArc(
                key=share.model_id,
                color=share.color,
                percentage=pct,
                start_rotation=start,
                sweep=pct * DEGREES_PER_PERCENT,
                dash_array=circumference,
                dash_offset=circumference * (1 - pct / 100),
            )
        )
        cumulative += pct
    return arcs


def donut_total_rotation(arcs: "Sequence[DonutArc]") -> "float":
    total = sum(arc.percentage for arc in arcs) * DEGREES_PER_PERCENT
    return min(total, FULL_TURN)


def ring_gauge(percentage: "float", radius: "float" = GAUGE_RADIUS) -> "RingGauge":
    pct = max(0.0, min(100.0, _finite_or_zero(percentage)))
    circumference = 2 * math.pi * radius
    return RingGauge(
        percentage=pct,
        dash_array=circumference,
        dash_offset=circumference * (1 - pct / 100),
    )
