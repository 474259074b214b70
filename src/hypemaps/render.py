"""Choropleth rendering of HYPE map results on sub-catchment polygons."""

from __future__ import annotations

import logging
import math
import numbers
import time
import warnings
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .attributes import variable
from .classify import (
    breaks_cover_range,
    build_classification,
    classify_table,
    format_annotation,
    resolve_color_spec,
    value_range,
)
from .config import AppConfig
from .device import DeviceContext
from .errors import InvalidInputError, RangeWarning, warn
from .io_hype import detect_subid_column, read_map_output, read_subid_polygons
from .layout import (
    AxisFrame,
    BBox,
    FracPoint,
    Inches,
    LegendLayout,
    LegendMetrics,
    MapPoint,
    PlotWindow,
    ScaleArrowPlacement,
    annotation_texts,
    fit_map_frame,
    geographic_x_scale,
    layout_legend,
    margins_to_fractions,
    place_scale_and_arrow,
)
from .models import Classification, LegendSpec, MapOptions


_LOGGER = logging.getLogger("hypemaps.render")

VALUE_COLUMN = "value"
CLASS_COLUMN = "class"
COLOR_COLUMN = "color"


@dataclass(frozen=True, slots=True)
class _TextPolicy:
    annotation_scale: float
    line_height_scale: float
    title_gap_rows: float


@dataclass(frozen=True, slots=True)
class _MarkPolicy:
    scale_bar_height_frac: float
    scale_units_per_km: float
    arrow_height_lengths: float
    arrow_half_width_lengths: float
    zorder_legend: int
    zorder_marks: int


_TEXT_POLICY = _TextPolicy(annotation_scale=0.8, line_height_scale=1.2, title_gap_rows=0.25)
_MARK_POLICY = _MarkPolicy(
    scale_bar_height_frac=0.008,
    scale_units_per_km=1000.0,
    arrow_height_lengths=3.0,
    arrow_half_width_lengths=1.0,
    zorder_legend=10,
    zorder_marks=11,
)


class MapPlotter:
    """Draw classified HYPE results as a sub-catchment choropleth."""

    def __init__(self, options: MapOptions | None = None) -> None:
        self.options = options or MapOptions()

    def render(
        self,
        values: Any,
        polygons: Any,
        subid_column: int = 0,
        var_name: str = "",
        *,
        ax: Any | None = None,
    ) -> Any:
        """Plot `values` on `polygons` and return the augmented polygon copy.

        The returned GeoDataFrame carries three extra columns: the matched
        result value, the class interval label and the resolved fill color.
        Polygons without a matching SUBID keep missing values and are not
        filled.
        """
        opts = self.options
        opts.validate()
        gpd = _require_geopandas()
        _check_values(values)
        id_column = _check_polygons(polygons, subid_column, gpd)

        col_breaks = _prepare_breaks(opts.col_breaks, values.iloc[:, 1])
        spec = resolve_color_spec(opts.col)

        plt = _require_matplotlib()
        device = DeviceContext(plt)
        with device.scoped(restore=opts.restore_par):
            classification = build_classification(
                values.iloc[:, 1],
                spec,
                var_name=var_name,
                col_breaks=col_breaks,
            )
            if not breaks_cover_range(classification.breaks, values.iloc[:, 1]):
                warn(
                    "Range of color breaks does not cover range of result values. "
                    "Areas outside range will be excluded from plot.",
                    RangeWarning,
                )
            map_df = _join_classes(polygons, id_column, values, classification)
            title = _legend_title(opts.legend_title, classification, var_name)
            legend = LegendSpec(
                position=opts.legend_pos,
                title=title,
                inset=opts.inset_xy,
                outer_labels=opts.legend_outer,
            )

            projected = _is_projected(polygons)
            bbox = BBox.from_bounds(polygons.total_bounds)
            fig, ax = self._prepare_axes(plt=plt, device=device, ax=ax)
            window = _plot_window(fig, ax)

            if opts.add:
                frame = AxisFrame(xlim=tuple(ax.get_xlim()), ylim=tuple(ax.get_ylim()))
                reference_width = frame.width
            else:
                x_scale = 1.0 if projected else geographic_x_scale(bbox)
                frame = fit_map_frame(bbox, window.aspect, opts.map_adj, x_scale=x_scale)
                reference_width = bbox.width

            _draw_polygons(ax=ax, map_df=map_df)
            ax.set_xlim(*frame.xlim)
            ax.set_ylim(*frame.ylim)
            if not opts.add:
                ax.set_aspect("auto")
                ax.set_axis_off()

            labels = annotation_texts(
                [format_annotation(item) for item in classification.breaks],
                outer=legend.outer_labels,
            )
            metrics = _measure_legend(
                fig=fig,
                ax=ax,
                window=window,
                title=legend.title,
                labels=labels,
                n_classes=classification.n_classes,
                font_size=device.font_size,
            )
            layout = layout_legend(legend, metrics, classification.n_classes)
            if opts.plot_legend:
                _draw_legend(
                    ax=ax,
                    frame=frame,
                    layout=layout,
                    classification=classification,
                    title=legend.title,
                    labels=labels,
                    font_size=device.font_size,
                    clip_on=device.clip_on,
                )

            placement = place_scale_and_arrow(legend, layout, frame, reference_width)
            if opts.plot_scale:
                if not projected:
                    warn(
                        "Scale bar meaningless with un-projected maps. "
                        "Set 'plot_scale=False' to remove it.",
                        RangeWarning,
                    )
                _draw_scale_bar(
                    ax=ax,
                    frame=frame,
                    placement=placement,
                    font_size=device.font_size * _TEXT_POLICY.annotation_scale,
                    clip_on=device.clip_on,
                )
            if opts.plot_arrow:
                _draw_north_arrow(
                    ax=ax,
                    placement=placement,
                    font_size=device.font_size * _TEXT_POLICY.annotation_scale,
                    clip_on=device.clip_on,
                )
        _LOGGER.info(
            "Plotted %d of %d polygons in %d classes",
            int(map_df[COLOR_COLUMN].notna().sum()),
            len(map_df),
            classification.n_classes,
        )
        return map_df

    def _prepare_axes(self, *, plt: Any, device: DeviceContext, ax: Any | None) -> tuple[Any, Any]:
        opts = self.options
        if opts.add:
            target = ax if ax is not None else plt.gca()
            device.apply(cex=opts.par_cex)
            return (target.figure, target)

        fig = ax.figure if ax is not None else plt.gcf()
        fig.clf()
        size = fig.get_size_inches()
        line_height = Inches(
            device.base_font_size * opts.par_cex * _TEXT_POLICY.line_height_scale / 72.0
        )
        device.apply(
            cex=opts.par_cex,
            subplot_params=margins_to_fractions(
                opts.par_mar,
                (Inches(float(size[0])), Inches(float(size[1]))),
                line_height,
            ),
        )
        new_ax = fig.add_axes(device.subplot_rect)
        return (fig, new_ax)


def plot_map_output(
    values: Any,
    polygons: Any,
    subid_column: int = 0,
    var_name: str = "",
    options: MapOptions | None = None,
    *,
    ax: Any | None = None,
) -> Any:
    """Functional entry point for `MapPlotter.render`."""
    return MapPlotter(options).render(values, polygons, subid_column, var_name, ax=ax)


def _check_values(values: Any) -> None:
    if not isinstance(values, pd.DataFrame) or values.shape[1] != 2:
        raise InvalidInputError(
            "'values' must be a data frame with two columns: SUBID and result value."
        )


def _check_polygons(polygons: Any, subid_column: int, gpd: Any) -> str:
    if not isinstance(polygons, gpd.GeoDataFrame):
        raise InvalidInputError("'polygons' must be a GeoDataFrame of sub-catchment polygons.")
    attribute_columns = [
        column for column in polygons.columns if column != polygons.geometry.name
    ]
    if len(polygons) == 0:
        raise InvalidInputError("'polygons' holds no sub-catchment features.")
    if isinstance(subid_column, bool) or not isinstance(subid_column, numbers.Integral):
        raise InvalidInputError("'subid_column' must be an integer column index.")
    if not 0 <= subid_column < len(attribute_columns):
        raise InvalidInputError(
            f"'subid_column' {subid_column} out of range for {len(attribute_columns)} attribute columns."
        )
    return str(attribute_columns[int(subid_column)])


def _prepare_breaks(col_breaks: Sequence[float] | None, values: Any) -> list[float] | None:
    if col_breaks is None:
        return None
    breaks = [float(item) for item in col_breaks]
    if len(breaks) == 1:
        lo, hi = value_range(values)
        breaks = [lo, hi]
        warn("Just one value in user-provided 'col_breaks', set to range of result values.", RangeWarning)
    return sorted(breaks)


def _join_classes(
    polygons: Any,
    id_column: str,
    values: pd.DataFrame,
    classification: Classification,
) -> Any:
    classified = classify_table(values, classification)
    key_column = classified.columns[0]
    value_column = classified.columns[1]
    lookup = classified.drop_duplicates(subset=key_column).set_index(key_column)
    out = polygons.copy()
    keys = out[id_column]
    out[VALUE_COLUMN] = keys.map(lookup[value_column])
    out[CLASS_COLUMN] = keys.map(lookup[CLASS_COLUMN])
    out[COLOR_COLUMN] = keys.map(lookup[COLOR_COLUMN])
    unmatched = int(out[VALUE_COLUMN].isna().sum())
    if unmatched:
        _LOGGER.debug("%d polygons without matching result value", unmatched)
    return out


def _legend_title(user_title: str | None, classification: Classification, var_name: str) -> str:
    if user_title is not None:
        return user_title
    if classification.legend_title is not None:
        return classification.legend_title
    return var_name.upper()


def _is_projected(polygons: Any) -> bool:
    crs = polygons.crs
    if crs is None:
        return True
    return not bool(crs.is_geographic)


def _plot_window(fig: Any, ax: Any) -> PlotWindow:
    size = fig.get_size_inches()
    pos = ax.get_position()
    return PlotWindow(
        width=Inches(float(size[0]) * float(pos.width)),
        height=Inches(float(size[1]) * float(pos.height)),
    )


def _measure_legend(
    *,
    fig: Any,
    ax: Any,
    window: PlotWindow,
    title: str,
    labels: Sequence[str],
    n_classes: int,
    font_size: float,
) -> LegendMetrics:
    """Zero-ink trial layout of legend title, rows and annotations."""
    renderer = _renderer(fig)
    trial_rows = max(n_classes, 2)
    rows_w, rows_h = _text_size(ax, renderer, "\n".join(["00"] * trial_rows), font_size)
    row_height = Inches(rows_h / trial_rows)
    bar_width = Inches(rows_w)
    if title:
        title_w, title_h = _text_size(ax, renderer, title, font_size)
        title_h += row_height * _TEXT_POLICY.title_gap_rows
    else:
        title_w, title_h = (0.0, 0.0)
    ann_size = font_size * _TEXT_POLICY.annotation_scale
    ann_w = max(
        (_text_size(ax, renderer, label, ann_size)[0] for label in labels if label),
        default=0.0,
    )
    return LegendMetrics(
        title_height=window.frac_y(Inches(title_h)),
        title_width=window.frac_x(Inches(title_w)),
        row_height=window.frac_y(row_height),
        bar_width=window.frac_x(bar_width),
        annotation_width=window.frac_x(Inches(ann_w)),
    )


def _renderer(fig: Any) -> Any:
    fig.canvas.draw()
    return fig.canvas.get_renderer()


def _text_size(ax: Any, renderer: Any, text: str, font_size: float) -> tuple[float, float]:
    artist = ax.text(0.0, 0.0, text, fontsize=font_size, alpha=0.0, transform=ax.transAxes)
    try:
        bbox = artist.get_window_extent(renderer=renderer)
    finally:
        artist.remove()
    dpi = float(ax.figure.dpi)
    return (float(bbox.width) / dpi, float(bbox.height) / dpi)


def _draw_polygons(*, ax: Any, map_df: Any) -> None:
    filled = map_df[map_df[COLOR_COLUMN].notna()]
    if filled.empty:
        _LOGGER.warning("No polygon matched a classified result value; map is empty.")
        return
    filled.plot(
        ax=ax,
        color=list(filled[COLOR_COLUMN]),
        edgecolor="none",
        linewidth=0.0,
        aspect=None,
    )


def _draw_legend(
    *,
    ax: Any,
    frame: AxisFrame,
    layout: LegendLayout,
    classification: Classification,
    title: str,
    labels: Sequence[str],
    font_size: float,
    clip_on: bool,
) -> None:
    from matplotlib.patches import Rectangle

    if title:
        anchor = frame.to_map(layout.title_anchor)
        ax.text(
            anchor.x,
            anchor.y,
            title,
            fontsize=font_size,
            ha="left",
            va="top",
            clip_on=clip_on,
            zorder=_MARK_POLICY.zorder_legend,
        )
    for top, color in zip(layout.bar_tops, classification.colors):
        lower_left = frame.to_map(FracPoint(x=layout.bar_left, y=top - layout.row_height))
        upper_right = frame.to_map(FracPoint(x=layout.bar_right, y=top))
        ax.add_patch(
            Rectangle(
                (lower_left.x, lower_left.y),
                upper_right.x - lower_left.x,
                upper_right.y - lower_left.y,
                facecolor=color,
                edgecolor="none",
                clip_on=clip_on,
                zorder=_MARK_POLICY.zorder_legend,
            )
        )
    for point, label in zip(layout.annotations, labels):
        if not label:
            continue
        target = frame.to_map(point)
        ax.text(
            target.x,
            target.y,
            label,
            fontsize=font_size * _TEXT_POLICY.annotation_scale,
            ha="left",
            va="center",
            clip_on=clip_on,
            zorder=_MARK_POLICY.zorder_legend,
        )


def _draw_scale_bar(
    *,
    ax: Any,
    frame: AxisFrame,
    placement: ScaleArrowPlacement,
    font_size: float,
    clip_on: bool,
) -> None:
    from matplotlib.patches import Rectangle

    origin = placement.scale_origin
    length = placement.scale_length
    if length <= 0 or not math.isfinite(length):
        return
    bar_height = frame.height * _MARK_POLICY.scale_bar_height_frac
    half = length / 2.0
    for offset, face in ((0.0, "black"), (half, "white")):
        ax.add_patch(
            Rectangle(
                (origin.x + offset, origin.y),
                half,
                bar_height,
                facecolor=face,
                edgecolor="black",
                linewidth=0.6,
                clip_on=clip_on,
                zorder=_MARK_POLICY.zorder_marks,
            )
        )
    km = _MARK_POLICY.scale_units_per_km
    ticks = ((0.0, "0"), (half, f"{half / km:g}"), (length, f"{length / km:g} km"))
    for offset, text in ticks:
        ax.text(
            origin.x + offset,
            origin.y + bar_height * 1.6,
            text,
            fontsize=font_size,
            ha="center",
            va="bottom",
            clip_on=clip_on,
            zorder=_MARK_POLICY.zorder_marks,
        )


def _draw_north_arrow(
    *,
    ax: Any,
    placement: ScaleArrowPlacement,
    font_size: float,
    clip_on: bool,
) -> None:
    from matplotlib.patches import Polygon

    base = placement.arrow_base
    length = placement.arrow_length
    half_width = length * _MARK_POLICY.arrow_half_width_lengths
    tip = MapPoint(x=base.x, y=base.y + length * _MARK_POLICY.arrow_height_lengths)
    ax.add_patch(
        Polygon(
            [(base.x - half_width, base.y), (tip.x, tip.y), (base.x + half_width, base.y)],
            closed=True,
            facecolor="black",
            edgecolor="black",
            clip_on=clip_on,
            zorder=_MARK_POLICY.zorder_marks,
        )
    )
    ax.text(
        tip.x,
        tip.y + length * 0.5,
        "N",
        fontsize=font_size,
        ha="center",
        va="bottom",
        clip_on=clip_on,
        zorder=_MARK_POLICY.zorder_marks,
    )


@dataclass(slots=True)
class RenderReport:
    output_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def run_render(
    cfg: AppConfig,
    *,
    output_path: Path | None = None,
    var_name: str | None = None,
) -> RenderReport:
    """Read configured inputs, plot the map and save the figure."""
    target = output_path or cfg.paths.output_image
    report = RenderReport(output_path=target)
    t0 = time.perf_counter()

    try:
        values = read_map_output(cfg.paths.map_output, column=cfg.map.result_column)
    except Exception as exc:
        report.add_error(f"Failed reading map output '{cfg.paths.map_output}': {exc}")
        return report
    report.add_info(f"Loaded {len(values)} result rows from {cfg.paths.map_output}")

    try:
        polygons = read_subid_polygons(cfg.paths.polygons, crs=cfg.map.crs)
    except Exception as exc:
        report.add_error(f"Failed reading sub-catchment polygons '{cfg.paths.polygons}': {exc}")
        return report
    report.add_info(f"Loaded {len(polygons)} polygons from {cfg.paths.polygons}")

    subid_column = cfg.map.subid_column
    if subid_column is None:
        try:
            subid_column = detect_subid_column(polygons)
        except ValueError as exc:
            report.add_error(str(exc))
            return report
        report.add_info(f"SUBID column detected at attribute index {subid_column}")

    effective_var = var_name or cfg.map.var_name or variable(values) or ""
    options = cfg.plot
    if options.add:
        options = replace(options, add=False)
        report.add_warning("'add' is ignored when rendering to a new figure file.")

    plt = _require_matplotlib(headless=True)
    fig = plt.figure(
        figsize=(cfg.figure.width_in, cfg.figure.height_in),
        dpi=cfg.figure.dpi,
        facecolor=cfg.figure.background,
    )
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            map_df = plot_map_output(
                values,
                polygons,
                subid_column=subid_column,
                var_name=effective_var,
                options=options,
            )
        for item in caught:
            report.add_warning(str(item.message))
        target.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(target, dpi=cfg.figure.dpi, format=cfg.figure.format, facecolor=cfg.figure.background)
    except Exception as exc:
        report.add_error(f"Map rendering failed: {exc}")
        return report
    finally:
        plt.close(fig)

    filled = int(map_df[COLOR_COLUMN].notna().sum())
    report.summary = {
        "results_total": len(values),
        "polygons_total": len(map_df),
        "polygons_filled": filled,
        "polygons_unfilled": len(map_df) - filled,
    }
    report.add_info(
        "Render summary: "
        f"polygons_total={len(map_df)}, polygons_filled={filled}, "
        f"polygons_unfilled={len(map_df) - filled}"
    )
    _LOGGER.info("[render] built %s in %.2fs", target.name, time.perf_counter() - t0)
    report.add_info(f"Map written to {target}")
    return report


def format_render_lines(report: RenderReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Map rendering completed with no errors.")
    return lines


def _require_matplotlib(*, headless: bool = False) -> Any:
    try:
        import matplotlib

        if headless:
            matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for sub-catchment polygons") from exc
    return gpd
