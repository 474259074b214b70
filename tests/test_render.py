from __future__ import annotations

import warnings

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from hypemaps.config import load_config
from hypemaps.errors import (
    CountMismatchError,
    InvalidArgumentError,
    InvalidInputError,
    RangeWarning,
    TruncationWarning,
)
from hypemaps.models import MapOptions
from hypemaps.render import (
    CLASS_COLUMN,
    COLOR_COLUMN,
    VALUE_COLUMN,
    format_render_lines,
    plot_map_output,
    run_render,
)


def _own_warnings(caught) -> list[str]:
    return [
        str(item.message)
        for item in caught
        if issubclass(item.category, (RangeWarning, TruncationWarning))
    ]


def test_explicit_colors_and_breaks_assign_fill(subbasins) -> None:
    values = pd.DataFrame({"SUBID": [1, 2], "CCTN": [10.0, 600.0]})
    options = MapOptions(col=("yellow", "red"), col_breaks=(0.0, 500.0, 1000.0))
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        map_df = plot_map_output(values, subbasins.iloc[:2], options=options)
    assert _own_warnings(caught) == []
    assert list(map_df[COLOR_COLUMN]) == ["yellow", "red"]
    assert list(map_df[VALUE_COLUMN]) == [10.0, 600.0]
    assert list(map_df[CLASS_COLUMN]) == ["[0,500]", "(500,1000]"]


def test_all_zero_results_share_one_color(subbasins) -> None:
    values = pd.DataFrame({"SUBID": [1, 2, 3, 4], "X": [0.0, 0.0, 0.0, 0.0]})
    map_df = plot_map_output(values, subbasins)
    assert map_df[COLOR_COLUMN].nunique() == 1
    assert map_df[COLOR_COLUMN].notna().all()
    assert list(map_df[CLASS_COLUMN].unique()) == ["[-1,1]"]


def test_polygons_without_results_stay_unfilled(subbasins, results) -> None:
    map_df = plot_map_output(results.iloc[:2], subbasins, var_name="COUT")
    assert map_df[COLOR_COLUMN].notna().tolist() == [True, True, False, False]
    assert len(map_df) == len(subbasins)
    assert COLOR_COLUMN not in subbasins.columns


def test_auto_preset_sets_legend_title(subbasins, results) -> None:
    plot_map_output(results, subbasins, var_name="COUT")
    texts = [text.get_text() for text in plt.gca().texts]
    assert r"Q (m$^{3}$ s$^{-1}$)" in texts
    assert "N" in texts


def test_user_legend_title_and_hidden_legend(subbasins, results) -> None:
    plot_map_output(results, subbasins, options=MapOptions(legend_title="Runoff"))
    assert "Runoff" in [text.get_text() for text in plt.gca().texts]
    plt.close("all")
    plot_map_output(
        results,
        subbasins,
        options=MapOptions(legend_title="Runoff", plot_legend=False, plot_scale=False, plot_arrow=False),
    )
    assert "Runoff" not in [text.get_text() for text in plt.gca().texts]


@pytest.mark.parametrize(
    "values",
    [
        pd.DataFrame({"SUBID": [1], "A": [1.0], "B": [2.0]}),
        [(1, 1.0), (2, 2.0)],
    ],
)
def test_invalid_values_rejected_before_drawing(subbasins, values) -> None:
    with pytest.raises(InvalidInputError):
        plot_map_output(values, subbasins)
    assert plt.get_fignums() == []


def test_invalid_polygons_rejected(results, subbasins) -> None:
    with pytest.raises(InvalidInputError):
        plot_map_output(results, pd.DataFrame(subbasins.drop(columns="geometry")))
    with pytest.raises(InvalidInputError):
        plot_map_output(results, subbasins, subid_column=5)


@pytest.mark.parametrize(
    "options",
    [
        MapOptions(legend_pos="center"),
        MapOptions(map_adj=0.3),
        MapOptions(col="not-a-color"),
        MapOptions(legend_inset=(0.1, 0.1, 0.1)),
    ],
)
def test_invalid_arguments_rejected_before_drawing(subbasins, results, options) -> None:
    with pytest.raises(InvalidArgumentError):
        plot_map_output(results, subbasins, options=options)
    assert plt.get_fignums() == []


def test_non_numeric_breaks_rejected(subbasins, results) -> None:
    with pytest.raises(InvalidInputError):
        plot_map_output(results, subbasins, options=MapOptions(col_breaks=("low", "high")))


def test_color_count_mismatch(subbasins, results) -> None:
    options = MapOptions(col=("yellow", "orange", "red"), col_breaks=(0.0, 100.0, 1000.0))
    with pytest.raises(CountMismatchError):
        plot_map_output(results, subbasins, options=options)


def test_single_break_replaced_by_data_range(subbasins, results) -> None:
    with pytest.warns(RangeWarning, match="Just one value"):
        map_df = plot_map_output(results, subbasins, options=MapOptions(col_breaks=(5.0,)))
    assert map_df[COLOR_COLUMN].notna().all()
    assert map_df[CLASS_COLUMN].iloc[0] == "[0.2,700]"


def test_breaks_not_covering_data_warn_and_exclude(subbasins, results) -> None:
    with pytest.warns(RangeWarning, match="does not cover"):
        map_df = plot_map_output(results, subbasins, options=MapOptions(col_breaks=(0.0, 10.0, 100.0)))
    assert map_df[COLOR_COLUMN].isna().tolist() == [False, False, False, True]


def test_scale_bar_on_unprojected_map_warns() -> None:
    polygons = gpd.GeoDataFrame(
        {"SUBID": [1, 2]},
        geometry=[box(15.0, 60.0, 15.5, 60.5), box(15.5, 60.0, 16.0, 60.5)],
        crs="EPSG:4326",
    )
    values = pd.DataFrame({"SUBID": [1, 2], "TEMP": [2.0, 4.0]})
    with pytest.warns(RangeWarning, match="un-projected"):
        plot_map_output(values, polygons, var_name="TEMP")
    plt.close("all")
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        plot_map_output(values, polygons, var_name="TEMP", options=MapOptions(plot_scale=False))
    assert _own_warnings(caught) == []


def test_restore_par_controls_device_state(subbasins, results) -> None:
    before = plt.rcParams["font.size"]
    plot_map_output(results, subbasins, options=MapOptions(par_cex=2.0, restore_par=True))
    assert plt.rcParams["font.size"] == before
    plot_map_output(results, subbasins, options=MapOptions(par_cex=2.0))
    assert plt.rcParams["font.size"] == pytest.approx(plt.rcParamsDefault["font.size"] * 2.0)


def test_device_state_restored_on_error(subbasins, results) -> None:
    before = {key: plt.rcParams[key] for key in ("font.size", "figure.subplot.left")}
    options = MapOptions(col=("yellow", "red", "blue"), col_breaks=(0.0, 1000.0), restore_par=True)
    with pytest.raises(CountMismatchError):
        plot_map_output(results, subbasins, options=options)
    assert plt.rcParams["font.size"] == before["font.size"]
    assert plt.rcParams["figure.subplot.left"] == before["figure.subplot.left"]


def test_margins_follow_par_mar(subbasins, results) -> None:
    fig = plt.figure(figsize=(5, 8))
    plot_map_output(results, subbasins, options=MapOptions(par_mar=(0.0, 0.0, 0.0, 0.0)))
    ax = fig.axes[0]
    assert tuple(ax.get_position().bounds) == pytest.approx((0.0, 0.0, 1.0, 1.0))
    assert not ax.axison


def test_add_to_existing_axes_keeps_limits(subbasins, results) -> None:
    fig, ax = plt.subplots()
    ax.set_xlim(490_000, 530_000)
    ax.set_ylim(6_490_000, 6_530_000)
    map_df = plot_map_output(results, subbasins, options=MapOptions(add=True), ax=ax)
    assert ax.get_xlim() == (490_000, 530_000)
    assert ax.get_ylim() == (6_490_000, 6_530_000)
    assert fig.axes == [ax]
    assert map_df[COLOR_COLUMN].notna().all()


def test_run_render_writes_image(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    report = run_render(cfg)
    assert report.ok, report.errors
    assert report.output_path == project_dir / "output" / "mapCOUT.png"
    assert report.output_path.exists()
    assert report.summary["polygons_filled"] == 4
    assert plt.get_fignums() == []
    assert format_render_lines(report)[-1].startswith("[OK]")


def test_run_render_reports_missing_input(project_dir) -> None:
    (project_dir / "data" / "mapCOUT.txt").unlink()
    cfg = load_config(project_dir / "config.yaml")
    report = run_render(cfg, output_path=project_dir / "other.png")
    assert not report.ok
    assert "Failed reading map output" in report.errors[0]
    assert not (project_dir / "other.png").exists()


def test_preset_breaks_not_covering_data_warn(subbasins) -> None:
    values = pd.DataFrame({"SUBID": [1, 2, 3, 4], "COUT": [-5.0, 3.0, 45.0, 700.0]})
    with pytest.warns(RangeWarning, match="does not cover"):
        map_df = plot_map_output(values, subbasins, var_name="COUT")
    assert map_df[COLOR_COLUMN].isna().tolist() == [True, False, False, False]


def test_empty_polygons_rejected_before_drawing(subbasins, results) -> None:
    before = plt.rcParams["font.size"]
    with pytest.raises(InvalidInputError, match="no sub-catchment"):
        plot_map_output(results, subbasins.iloc[:0], options=MapOptions(par_cex=2.0))
    assert plt.get_fignums() == []
    assert plt.rcParams["font.size"] == before


def test_numpy_integer_subid_column(subbasins, results) -> None:
    map_df = plot_map_output(results, subbasins, subid_column=np.int64(0))
    assert map_df[COLOR_COLUMN].notna().all()
