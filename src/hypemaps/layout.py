"""Plot geometry for map output figures.

Three coordinate spaces are in play and each has its own type:

* `Inches`: physical sizes on the figure,
* `FracPoint`: fractions of the plot region (0..1 on both axes),
* `MapPoint`: map (data) coordinates.

`PlotWindow` converts inches to fractions, `AxisFrame` converts fractions to
map coordinates and back.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NewType, Sequence

from .classify import signif
from .models import LegendSpec


Inches = NewType("Inches", float)

# Distances below are fractions of the plot region.
_BOTTOM_SCALE_ROOM = 0.1
_SCALE_BELOW_LEGEND = 0.1
_ANNOTATION_GAP = 0.01
_LEFT_SCALE_PAD = 0.02
_ARROW_GAP_RIGHT = 0.02
_ARROW_GAP_LEFT = 0.055
_ARROW_LENGTH_DIVISOR = 70.0


@dataclass(frozen=True, slots=True)
class FracPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class MapPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class BBox:
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @classmethod
    def from_bounds(cls, bounds: Sequence[float]) -> BBox:
        xmin, ymin, xmax, ymax = (float(item) for item in bounds)
        if xmax - xmin <= 0:
            xmin, xmax = xmin - 0.5, xmax + 0.5
        if ymax - ymin <= 0:
            ymin, ymax = ymin - 0.5, ymax + 0.5
        return cls(xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def mid_y(self) -> float:
        return (self.ymin + self.ymax) / 2.0


@dataclass(frozen=True, slots=True)
class PlotWindow:
    """Size of the plot region in inches."""

    width: Inches
    height: Inches

    @property
    def aspect(self) -> float:
        return float(self.height) / float(self.width)

    def frac_x(self, length: Inches) -> float:
        return float(length) / float(self.width)

    def frac_y(self, length: Inches) -> float:
        return float(length) / float(self.height)


@dataclass(frozen=True, slots=True)
class AxisFrame:
    """Axis limits of the map panel in map coordinates."""

    xlim: tuple[float, float]
    ylim: tuple[float, float]

    @property
    def width(self) -> float:
        return self.xlim[1] - self.xlim[0]

    @property
    def height(self) -> float:
        return self.ylim[1] - self.ylim[0]

    def to_map(self, point: FracPoint) -> MapPoint:
        return MapPoint(
            x=self.xlim[0] + point.x * self.width,
            y=self.ylim[0] + point.y * self.height,
        )

    def to_frac(self, point: MapPoint) -> FracPoint:
        return FracPoint(
            x=(point.x - self.xlim[0]) / self.width,
            y=(point.y - self.ylim[0]) / self.height,
        )


def geographic_x_scale(bbox: BBox) -> float:
    """Screen length of one x unit relative to one y unit for lon/lat maps."""
    lat = max(min(bbox.mid_y, 89.0), -89.0)
    return math.cos(math.radians(lat))


def fit_map_frame(
    bbox: BBox,
    plot_aspect: float,
    map_adj: float,
    *,
    x_scale: float = 1.0,
) -> AxisFrame:
    """Axis limits showing the whole map at its true aspect ratio.

    The map fills the plot region in the direction where it is relatively
    larger; in the other direction it is left- or bottom-justified
    (`map_adj` 0), centered (0.5) or right- or top-justified (1).
    """
    map_aspect = bbox.height / (bbox.width * x_scale)
    if map_aspect > plot_aspect:
        ylim = (bbox.ymin, bbox.ymax)
        span = bbox.height / plot_aspect / x_scale
        xmin = _justify(bbox.xmin, bbox.xmax, span, map_adj)
        return AxisFrame(xlim=(xmin, xmin + span), ylim=ylim)
    xlim = (bbox.xmin, bbox.xmax)
    span = bbox.width * x_scale * plot_aspect
    ymin = _justify(bbox.ymin, bbox.ymax, span, map_adj)
    return AxisFrame(xlim=xlim, ylim=(ymin, ymin + span))


def _justify(lo: float, hi: float, span: float, map_adj: float) -> float:
    if map_adj == 0:
        return lo
    if map_adj == 1:
        return hi - span
    return (lo + hi) / 2.0 - span / 2.0


@dataclass(frozen=True, slots=True)
class LegendMetrics:
    """Trial-layout measurements, all in plot-region fractions."""

    title_height: float
    title_width: float
    row_height: float
    bar_width: float
    annotation_width: float


@dataclass(frozen=True, slots=True)
class LegendLayout:
    inset: tuple[float, float]
    left: float
    top: float
    width: float
    height: float
    title_anchor: FracPoint
    bar_left: float
    bar_right: float
    bar_tops: tuple[float, ...]
    row_height: float
    annotations: tuple[FracPoint, ...]
    trial_bottom: float

    @property
    def bottom(self) -> float:
        return self.top - self.height


def layout_legend(
    legend: LegendSpec,
    metrics: LegendMetrics,
    n_classes: int,
) -> LegendLayout:
    """Place legend box, color bar rows and break annotations.

    The lowest class sits at the top of the bar. Annotations (one per break)
    are left-aligned right of the bar, at the row boundaries. On the right
    side the legend moves inwards by the annotation width.
    """
    inset_x, inset_y = legend.inset
    extra_y = _BOTTOM_SCALE_ROOM if legend.at_bottom else 0.0
    if legend.on_right:
        inset_x += metrics.annotation_width
    inset_y += extra_y

    width = max(metrics.title_width, metrics.bar_width)
    height = metrics.title_height + n_classes * metrics.row_height

    if legend.on_right:
        left = 1.0 - inset_x - width
    else:
        left = inset_x

    if legend.at_bottom:
        top = inset_y + height
        trial_top = height
    elif legend.in_middle:
        top = 0.5 + height / 2.0
        trial_top = top
    else:
        top = 1.0 - inset_y
        trial_top = 1.0

    bar_left = left
    bar_right = left + metrics.bar_width
    first_bar_top = top - metrics.title_height
    bar_tops = tuple(first_bar_top - idx * metrics.row_height for idx in range(n_classes))
    annotations = tuple(
        FracPoint(x=bar_right + _ANNOTATION_GAP, y=first_bar_top - idx * metrics.row_height)
        for idx in range(n_classes + 1)
    )
    return LegendLayout(
        inset=(inset_x, inset_y),
        left=left,
        top=top,
        width=width,
        height=height,
        title_anchor=FracPoint(x=left, y=top),
        bar_left=bar_left,
        bar_right=bar_right,
        bar_tops=bar_tops,
        row_height=metrics.row_height,
        annotations=annotations,
        trial_bottom=trial_top - height,
    )


def annotation_texts(labels: Sequence[str], *, outer: bool) -> list[str]:
    out = list(labels)
    if not outer and out:
        out[0] = ""
        out[-1] = ""
    return out


@dataclass(frozen=True, slots=True)
class ScaleArrowPlacement:
    scale_origin: MapPoint
    scale_length: float
    arrow_base: MapPoint
    arrow_length: float


def place_scale_and_arrow(
    legend: LegendSpec,
    layout: LegendLayout,
    frame: AxisFrame,
    reference_width: float,
) -> ScaleArrowPlacement:
    """Scale bar origin and north arrow base relative to the legend's lower-left corner.

    `reference_width` is the map bounding box width, or the axis width when
    adding to an existing plot.
    """
    inset_x, inset_y = layout.inset
    distance = signif(reference_width / 4.0, 1)
    if legend.on_right:
        scale_x = frame.xlim[1] - distance - inset_x * frame.width
        arrow_x = scale_x - _ARROW_GAP_RIGHT * frame.width
    else:
        scale_x = frame.xlim[0] + (inset_x + _LEFT_SCALE_PAD) * frame.width
        arrow_x = scale_x + distance + _ARROW_GAP_LEFT * frame.width

    if legend.at_bottom:
        frac_y = layout.trial_bottom + inset_y / 2.0
    elif legend.in_middle:
        frac_y = layout.trial_bottom + inset_y / 2.0 - _SCALE_BELOW_LEGEND
    else:
        frac_y = layout.trial_bottom - inset_y / 2.0 - _SCALE_BELOW_LEGEND
    scale_y = frame.to_map(FracPoint(x=0.0, y=frac_y)).y

    return ScaleArrowPlacement(
        scale_origin=MapPoint(x=scale_x, y=scale_y),
        scale_length=distance,
        arrow_base=MapPoint(x=arrow_x, y=scale_y),
        arrow_length=reference_width / _ARROW_LENGTH_DIVISOR,
    )


def margins_to_fractions(
    mar_lines: Sequence[float],
    fig_size: tuple[Inches, Inches],
    line_height: Inches,
) -> tuple[float, float, float, float]:
    """Convert bottom/left/top/right margins in text lines to subplot params."""
    fig_w, fig_h = float(fig_size[0]), float(fig_size[1])
    bottom, left, top, right = (float(item) * float(line_height) for item in mar_lines)
    return (
        left / fig_w,
        bottom / fig_h,
        1.0 - right / fig_w,
        1.0 - top / fig_h,
    )
