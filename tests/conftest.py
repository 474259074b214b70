from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
import pytest
from shapely.geometry import box


@pytest.fixture(autouse=True)
def _isolated_pyplot():
    with matplotlib.rc_context():
        yield
    plt.close("all")


@pytest.fixture
def subbasins() -> gpd.GeoDataFrame:
    """Four 10 km square sub-basins in a 2x2 grid (SWEREF99 TM)."""
    return gpd.GeoDataFrame(
        {"SUBID": [1, 2, 3, 4], "AREA_KM2": [100.0, 100.0, 100.0, 100.0]},
        geometry=[
            box(500_000, 6_500_000, 510_000, 6_510_000),
            box(510_000, 6_500_000, 520_000, 6_510_000),
            box(500_000, 6_510_000, 510_000, 6_520_000),
            box(510_000, 6_510_000, 520_000, 6_520_000),
        ],
        crs="EPSG:3006",
    )


@pytest.fixture
def results() -> pd.DataFrame:
    return pd.DataFrame({"SUBID": [1, 2, 3, 4], "COUT": [0.2, 3.0, 45.0, 700.0]})


@pytest.fixture
def project_dir(tmp_path, subbasins):
    """A config file with matching map output and polygon inputs."""
    data = tmp_path / "data"
    data.mkdir()
    (data / "mapCOUT.txt").write_text(
        "!! Computed output variable: COUT\n"
        "SUBID,2001-01-01,2002-01-01\n"
        "1,0.2,0.3\n"
        "2,3.0,2.5\n"
        "3,45.0,40.0\n"
        "4,700.0,650.0\n",
        encoding="utf-8",
    )
    subbasins.to_file(data / "subbasins.gpkg", driver="GPKG")
    (tmp_path / "config.yaml").write_text(
        "paths:\n"
        "  map_output: data/mapCOUT.txt\n"
        "  polygons: data/subbasins.gpkg\n"
        "  output_image: output/mapCOUT.png\n"
        "  logs_dir: logs\n"
        "figure:\n"
        "  width_in: 4\n"
        "  height_in: 5\n"
        "  dpi: 60\n",
        encoding="utf-8",
    )
    return tmp_path
