from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest

from hypemaps.attributes import datetime, subid, variable
from hypemaps.io_hype import (
    detect_subid_column,
    read_map_output,
    read_subid_polygons,
    variable_from_filename,
)


def test_read_map_output_all_periods(project_dir) -> None:
    df = read_map_output(project_dir / "data" / "mapCOUT.txt")
    assert list(df.columns) == ["SUBID", "2001-01-01", "2002-01-01"]
    assert df["SUBID"].dtype == "int64"
    assert variable(df) == "COUT"
    assert subid(df) == [1, 2, 3, 4]
    assert datetime(df) == [pd.Timestamp("2001-01-01"), pd.Timestamp("2002-01-01")]


@pytest.mark.parametrize("column,expected", [(1, "2002-01-01"), ("2001-01-01", "2001-01-01")])
def test_read_map_output_select_column(project_dir, column, expected) -> None:
    df = read_map_output(project_dir / "data" / "mapCOUT.txt", column=column)
    assert list(df.columns) == ["SUBID", expected]
    assert datetime(df) == [pd.Timestamp(expected)]


def test_read_map_output_tab_separated_with_period_labels(tmp_path) -> None:
    path = tmp_path / "mapcctn.txt"
    path.write_text(
        "!! Mean total nitrogen concentration\n"
        "SUBID\tDJF\tJJA\n"
        "10\t1200.5\t-9999\n"
        "11\tNA\t980\n",
        encoding="utf-8",
    )
    df = read_map_output(path)
    assert variable(df) == "CCTN"
    assert datetime(df) == ["DJF", "JJA"]
    assert df["DJF"].isna().tolist() == [False, True]
    assert df["JJA"].isna().tolist() == [True, False]
    assert read_map_output(path, column="JJA")["JJA"].tolist()[1] == 980.0


def test_read_map_output_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_map_output(tmp_path / "mapCOUT.txt")
    bad = tmp_path / "mapCOUT.txt"
    bad.write_text("AREA,2001\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="SUBID"):
        read_map_output(bad)
    bad.write_text("SUBID,2001\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="out of range"):
        read_map_output(bad, column=3)


@pytest.mark.parametrize(
    "name,expected",
    [("mapCOUT.txt", "COUT"), ("mapcrun.txt", "CRUN"), ("timeCOUT.txt", None), ("results.csv", None)],
)
def test_variable_from_filename(name, expected) -> None:
    assert variable_from_filename(Path(name)) == expected


def test_read_subid_polygons_assigns_missing_crs(tmp_path, subbasins) -> None:
    path = tmp_path / "nocrs.gpkg"
    unreferenced = gpd.GeoDataFrame(
        {"SUBID": list(subbasins["SUBID"])},
        geometry=list(subbasins.geometry),
    )
    unreferenced.to_file(path, driver="GPKG")
    gdf = read_subid_polygons(path, crs="EPSG:3006")
    assert gdf.crs is not None
    assert gdf.crs.to_epsg() == 3006
    assert detect_subid_column(gdf) == 0


def test_detect_subid_column_case_insensitive(subbasins) -> None:
    renamed = subbasins.rename(columns={"SUBID": "subid"})[["AREA_KM2", "subid", "geometry"]]
    assert detect_subid_column(renamed) == 1
    with pytest.raises(ValueError, match="Could not detect"):
        detect_subid_column(subbasins.drop(columns="SUBID"))
