from __future__ import annotations

from pathlib import Path

import pytest

from hypemaps.colors import ColorRamp, col_q
from hypemaps.config import load_config, plot_options_from_mapping
from hypemaps.errors import InvalidArgumentError
from hypemaps.models import MapOptions


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_defaults(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    assert cfg.paths.map_output == (project_dir / "data" / "mapCOUT.txt").resolve()
    assert cfg.paths.logs_dir == (project_dir / "logs").resolve()
    assert cfg.map.subid_column is None
    assert cfg.map.result_column == 0
    assert cfg.figure.dpi == 60
    assert cfg.figure.format == "png"
    assert cfg.plot == MapOptions()


def test_plot_section_parsed(tmp_path) -> None:
    cfg = load_config(
        _write(
            tmp_path,
            "paths:\n"
            "  map_output: mapCCTN.txt\n"
            "  polygons: /data/subbasins.shp\n"
            "  output_image: out.pdf\n"
            "map:\n"
            "  subid_column: 2\n"
            "  result_column: '2010'\n"
            "  crs: EPSG:3006\n"
            "plot:\n"
            "  map_adj: 0.5\n"
            "  legend_pos: bottomleft\n"
            "  legend_inset: [0.05]\n"
            "  col: [yellow, orange, red]\n"
            "  col_breaks: [0, 100, 1000, 5000]\n"
            "  par_cex: 0.8\n"
            "  restore_par: true\n",
        )
    )
    assert cfg.paths.polygons == Path("/data/subbasins.shp")
    assert cfg.map.subid_column == 2
    assert cfg.map.result_column == "2010"
    assert cfg.map.crs == "EPSG:3006"
    assert cfg.plot.map_adj == 0.5
    assert cfg.plot.legend_pos == "bottomleft"
    assert cfg.plot.inset_xy == (0.05, 0.0)
    assert cfg.plot.col == ("yellow", "orange", "red")
    assert cfg.plot.col_breaks == (0.0, 100.0, 1000.0, 5000.0)
    assert cfg.plot.restore_par is True


def test_color_ramps_by_name_and_anchors() -> None:
    assert plot_options_from_mapping({"col": "col_q"}).col is col_q
    assert plot_options_from_mapping({"col": "steelblue"}).col == "steelblue"
    ramp = plot_options_from_mapping({"ramp_colors": ["white", "darkblue"]}).col
    assert isinstance(ramp, ColorRamp)
    assert ramp(2) == ["#ffffff", "#00008b"]
    with pytest.raises(ValueError, match="only one"):
        plot_options_from_mapping({"col": "col_q", "ramp_colors": ["white", "red"]})


@pytest.mark.parametrize(
    "plot_yaml,error",
    [
        ("  par_mar: [1, 1]\n", ValueError),
        ("  plot_scale: 'yes'\n", ValueError),
    ],
)
def test_invalid_plot_options(tmp_path, plot_yaml, error) -> None:
    path = _write(
        tmp_path,
        "paths:\n  map_output: a.txt\n  polygons: b.gpkg\n  output_image: c.png\nplot:\n" + plot_yaml,
    )
    with pytest.raises(error):
        load_config(path)


def test_option_values_checked_by_validator_not_loader(tmp_path) -> None:
    path = _write(
        tmp_path,
        "paths:\n  map_output: a.txt\n  polygons: b.gpkg\n  output_image: c.png\nplot:\n  legend_pos: middle\n",
    )
    cfg = load_config(path)
    assert cfg.plot.legend_pos == "middle"
    with pytest.raises(InvalidArgumentError):
        cfg.plot.validate()


def test_missing_paths_section(tmp_path) -> None:
    with pytest.raises(ValueError, match="paths"):
        load_config(_write(tmp_path, "figure:\n  dpi: 100\n"))


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")
