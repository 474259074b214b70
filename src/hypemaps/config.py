"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .colors import BUILTIN_RAMPS, color_ramp_palette, get_ramp
from .models import ColorArg, MapOptions


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _float_list(value: Any, field_name: str) -> tuple[float, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    return tuple(_float(item, f"{field_name}[{idx}]") for idx, item in enumerate(value))


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    map_output: Path
    polygons: Path
    output_image: Path
    logs_dir: Path

    @property
    def required_input_files(self) -> tuple[Path, ...]:
        return (self.map_output, self.polygons)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            map_output=_path_from_cfg(raw.get("map_output"), "paths.map_output", root_dir),
            polygons=_path_from_cfg(raw.get("polygons"), "paths.polygons", root_dir),
            output_image=_path_from_cfg(raw.get("output_image"), "paths.output_image", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    subid_column: int | None
    var_name: str | None
    result_column: int | str
    crs: str | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        subid_raw = raw.get("subid_column")
        subid_column = None if subid_raw is None else _int(subid_raw, "map.subid_column")
        if subid_column is not None and subid_column < 0:
            raise ValueError("map.subid_column must be >= 0")

        result_raw = raw.get("result_column", 0)
        result_column: int | str
        if isinstance(result_raw, str):
            result_column = _str(result_raw, "map.result_column")
        else:
            result_column = _int(result_raw, "map.result_column")
            if result_column < 0:
                raise ValueError("map.result_column must be >= 0")

        return cls(
            subid_column=subid_column,
            var_name=_optional_str(raw.get("var_name"), "map.var_name"),
            result_column=result_column,
            crs=_optional_str(raw.get("crs"), "map.crs"),
        )


@dataclass(frozen=True, slots=True)
class FigureConfig:
    width_in: float
    height_in: float
    dpi: int
    format: str
    background: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> FigureConfig:
        width_in = _float(raw.get("width_in", 5.0), "figure.width_in")
        height_in = _float(raw.get("height_in", 8.0), "figure.height_in")
        dpi = _int(raw.get("dpi", 150), "figure.dpi")
        if width_in <= 0 or height_in <= 0:
            raise ValueError("figure.width_in and figure.height_in must be > 0")
        if dpi <= 0:
            raise ValueError("figure.dpi must be > 0")
        return cls(
            width_in=width_in,
            height_in=height_in,
            dpi=dpi,
            format=_str(raw.get("format", "png"), "figure.format"),
            background=_str(raw.get("background", "white"), "figure.background"),
        )


def _color_arg(raw: Mapping[str, Any]) -> ColorArg:
    ramp_colors = raw.get("ramp_colors")
    col = raw.get("col", "auto")
    if ramp_colors is not None:
        if col != "auto":
            raise ValueError("Use only one of 'plot.col' or 'plot.ramp_colors'")
        return color_ramp_palette(_str_list(ramp_colors, "plot.ramp_colors"))
    if isinstance(col, list):
        return _str_list(col, "plot.col")
    name = _str(col, "plot.col")
    if name == "auto":
        return name
    if name.casefold() in BUILTIN_RAMPS:
        return get_ramp(name)
    return name


def plot_options_from_mapping(raw: Mapping[str, Any]) -> MapOptions:
    """Build `MapOptions` from the `plot` section; omitted keys keep their defaults."""
    defaults = MapOptions()
    breaks_raw = raw.get("col_breaks")
    inset_raw = raw.get("legend_inset", list(defaults.legend_inset))
    mar_raw = raw.get("par_mar", list(defaults.par_mar))
    par_mar = _float_list(mar_raw, "plot.par_mar")
    if len(par_mar) != 4:
        raise ValueError("plot.par_mar must have four values")
    title_raw = raw.get("legend_title")
    return MapOptions(
        map_adj=_float(raw.get("map_adj", defaults.map_adj), "plot.map_adj"),
        plot_legend=_bool(raw.get("plot_legend", defaults.plot_legend), "plot.plot_legend"),
        legend_pos=_str(raw.get("legend_pos", defaults.legend_pos), "plot.legend_pos"),
        legend_title=None if title_raw is None else str(title_raw),
        legend_outer=_bool(raw.get("legend_outer", defaults.legend_outer), "plot.legend_outer"),
        legend_inset=_float_list(inset_raw, "plot.legend_inset"),
        col=_color_arg(raw),
        col_breaks=None if breaks_raw is None else _float_list(breaks_raw, "plot.col_breaks"),
        plot_scale=_bool(raw.get("plot_scale", defaults.plot_scale), "plot.plot_scale"),
        plot_arrow=_bool(raw.get("plot_arrow", defaults.plot_arrow), "plot.plot_arrow"),
        par_cex=_float(raw.get("par_cex", defaults.par_cex), "plot.par_cex"),
        par_mar=(par_mar[0], par_mar[1], par_mar[2], par_mar[3]),
        add=_bool(raw.get("add", defaults.add), "plot.add"),
        restore_par=_bool(raw.get("restore_par", defaults.restore_par), "plot.restore_par"),
    )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    map: MapConfig
    figure: FigureConfig
    plot: MapOptions

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            map=MapConfig.from_mapping(_optional_mapping(raw.get("map"), "map")),
            figure=FigureConfig.from_mapping(_optional_mapping(raw.get("figure"), "figure")),
            plot=plot_options_from_mapping(_optional_mapping(raw.get("plot"), "plot")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
