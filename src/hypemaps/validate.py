"""Pre-flight validation of config, input files and the SUBID join."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .classify import breaks_cover_range, resolve_color_spec
from .config import AppConfig
from .errors import HypeMapsError
from .io_hype import detect_subid_column, read_map_output, read_subid_polygons


@dataclass(slots=True)
class ValidationReport:
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


class Validator:
    """Checks that configured inputs can be read and joined by SUBID."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self) -> ValidationReport:
        report = ValidationReport()
        self._validate_config_paths(report)
        self._validate_plot_options(report)
        values = self._validate_map_output(report)
        polygons = self._validate_polygons(report)
        if values is not None and polygons is not None:
            self._validate_join(report, values=values, polygons=polygons)
        return report

    def _validate_config_paths(self, report: ValidationReport) -> None:
        for path in self.cfg.paths.required_input_files:
            self._check_exists(report, path)

    def _validate_plot_options(self, report: ValidationReport) -> None:
        try:
            self.cfg.plot.validate()
            resolve_color_spec(self.cfg.plot.col)
        except HypeMapsError as exc:
            report.add_error(f"Invalid plot options: {exc}")

    def _validate_map_output(self, report: ValidationReport) -> pd.DataFrame | None:
        path = self.cfg.paths.map_output
        if not path.exists():
            return None
        try:
            values = read_map_output(path, column=self.cfg.map.result_column)
        except Exception as exc:
            report.add_error(f"Failed parsing map output file '{path}': {exc}")
            return None
        report.add_info(f"Map output rows: {len(values)} ({values.columns[1]})")
        duplicated = int(values["SUBID"].duplicated().sum())
        if duplicated:
            report.add_error(f"Map output has {duplicated} duplicated SUBIDs")
        missing = int(values.iloc[:, 1].isna().sum())
        if missing:
            report.add_warning(f"Map output has {missing} missing result values")
        breaks = self.cfg.plot.col_breaks
        if breaks is not None and len(breaks) > 1 and not breaks_cover_range(breaks, values.iloc[:, 1]):
            report.add_warning(
                "Configured col_breaks do not cover the result range; uncovered sub-basins stay unfilled."
            )
        return values

    def _validate_polygons(self, report: ValidationReport) -> Any | None:
        path = self.cfg.paths.polygons
        if not path.exists():
            return None
        try:
            polygons = read_subid_polygons(path, crs=self.cfg.map.crs)
        except Exception as exc:
            report.add_error(f"Failed reading polygon file '{path}': {exc}")
            return None
        report.add_info(f"Polygons: {len(polygons)} features, CRS={polygons.crs}")
        if polygons.crs is None:
            report.add_warning("Polygon file has no CRS; map is treated as projected.")
        elif polygons.crs.is_geographic and self.cfg.plot.plot_scale:
            report.add_warning("Scale bar requested on an un-projected map.")
        return polygons

    def _validate_join(self, report: ValidationReport, *, values: pd.DataFrame, polygons: Any) -> None:
        attribute_columns = [col for col in polygons.columns if col != polygons.geometry.name]
        subid_column = self.cfg.map.subid_column
        if subid_column is None:
            try:
                subid_column = detect_subid_column(polygons)
            except ValueError as exc:
                report.add_error(str(exc))
                return
        if subid_column >= len(attribute_columns):
            report.add_error(
                f"map.subid_column {subid_column} out of range for "
                f"{len(attribute_columns)} polygon attribute columns"
            )
            return
        id_col = attribute_columns[subid_column]
        coverage = join_coverage(values["SUBID"], polygons[id_col])
        report.summary = coverage
        report.add_info(
            f"SUBID join on '{id_col}': matched={coverage['matched']}, "
            f"polygons_without_result={coverage['polygons_without_result']}, "
            f"results_without_polygon={coverage['results_without_polygon']}"
        )
        if coverage["matched"] == 0:
            report.add_error("No SUBIDs shared between map output and polygons.")
        if coverage["polygons_without_result"]:
            report.add_warning(
                f"{coverage['polygons_without_result']} polygons have no result and will stay unfilled."
            )

    @staticmethod
    def _check_exists(report: ValidationReport, path: Path) -> None:
        if not path.exists():
            report.add_error(f"Missing required input file: {path}")


def join_coverage(result_ids: Any, polygon_ids: Any) -> dict[str, int]:
    results = set(pd.Series(result_ids).dropna().tolist())
    polygons = set(pd.Series(polygon_ids).dropna().tolist())
    return {
        "matched": len(results & polygons),
        "polygons_without_result": len(polygons - results),
        "results_without_polygon": len(results - polygons),
    }


def format_report_lines(report: ValidationReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation passed.")
    return lines
