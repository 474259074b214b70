"""HYPE result and sub-catchment polygon loading."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd

from .attributes import set_datetime, set_subid, set_variable


# HYPE writes missing results as -9999
MISSING_VALUES = (-9999, "-9999", "-9999.0")

SUBID_COLUMNS = ("SUBID", "SubId", "subid", "SUBID_1", "HYPE_ID", "ID")

_MAP_FILE_PATTERN = re.compile(r"^map(?P<var>[A-Za-z0-9]+)$")


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {str(col).lower(): str(col) for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


def variable_from_filename(path: Path) -> str | None:
    """HYPE variable code from a `map<VAR>.txt` file name."""
    match = _MAP_FILE_PATTERN.match(path.stem)
    if match is None:
        return None
    return match.group("var").upper()


def read_map_output(path: str | Path, *, column: int | str | None = None) -> pd.DataFrame:
    """Read a HYPE `map<VAR>.txt` result file.

    Comment lines start with ``!``; the header holds ``SUBID`` followed by
    one column per output period. With `column` (0-based result column index
    or header name) only SUBID and that column are kept, which is the
    two-column shape map plotting expects.

    The returned frame is tagged with the `variable`, `subid` and
    `datetime` HYPE attributes.
    """
    src = Path(path)
    if not src.exists():
        raise FileNotFoundError(f"Map output file not found: {src}")
    df = pd.read_csv(src, sep=r"[,\t]", engine="python", comment="!", na_values=list(MISSING_VALUES))
    if df.shape[1] < 2:
        raise ValueError(f"Expected SUBID and at least one result column in {src}")
    id_col = _first_existing_column(df.columns[:1], SUBID_COLUMNS)
    if id_col is None:
        raise ValueError(
            f"First column of {src} must be SUBID (got '{df.columns[0]}')"
        )
    df = df.rename(columns={id_col: "SUBID"})
    df["SUBID"] = pd.to_numeric(df["SUBID"], errors="raise").astype("int64")
    periods = [str(col) for col in df.columns[1:]]

    if column is not None:
        if isinstance(column, int):
            if not 0 <= column < len(periods):
                raise ValueError(
                    f"Result column index {column} out of range; {src} has {len(periods)} result columns"
                )
            chosen = periods[column]
        else:
            if column not in periods:
                raise ValueError(f"Result column '{column}' not found in {src}")
            chosen = column
        df = df[["SUBID", chosen]].copy()
        periods = [chosen]

    for col in df.columns[1:]:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    set_variable(df, variable_from_filename(src))
    set_subid(df, df["SUBID"].tolist())
    set_datetime(df, _parse_periods(periods))
    return df


def _parse_periods(periods: Sequence[str]) -> list[Any]:
    out: list[Any] = []
    for period in periods:
        parsed = pd.to_datetime(period, errors="coerce")
        out.append(period if pd.isna(parsed) else parsed)
    return out


def read_subid_polygons(path: str | Path, *, crs: str | None = None) -> Any:
    """Load sub-catchment polygons via GeoPandas.

    `crs` is assigned when the file carries no coordinate reference.
    """
    src = Path(path)
    if not src.exists():
        raise FileNotFoundError(f"Polygon file not found: {src}")
    gpd = _require_geopandas()
    gdf = gpd.read_file(src)
    if crs is not None and gdf.crs is None:
        gdf = gdf.set_crs(_require_pyproj_crs().from_user_input(crs))
    return gdf


def detect_subid_column(polygons: Any) -> int:
    """0-based attribute column index holding SUBIDs."""
    attribute_columns = [col for col in polygons.columns if col != polygons.geometry.name]
    match = _first_existing_column(attribute_columns, SUBID_COLUMNS)
    if match is None:
        cols = ", ".join(str(c) for c in attribute_columns)
        raise ValueError(
            "Could not detect SUBID column in polygon attributes. "
            f"Available columns: {cols}"
        )
    return attribute_columns.index(match)


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for polygon data loading") from exc
    return gpd


def _require_pyproj_crs() -> Any:
    try:
        from pyproj import CRS
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for coordinate reference handling") from exc
    return CRS
