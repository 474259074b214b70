from __future__ import annotations

import pytest

from hypemaps.colors import (
    BUILTIN_RAMPS,
    col_diff_generic,
    col_nitr,
    color_ramp_palette,
    get_ramp,
    is_color_like,
)


def test_ramp_returns_requested_number_of_hex_colors() -> None:
    colors = col_nitr(7)
    assert len(colors) == 7
    assert all(color.startswith("#") and len(color) == 7 for color in colors)
    assert colors[0] == "#fff5a8"
    assert colors[-1] == "#6b0601"


def test_ramp_edge_counts() -> None:
    assert col_nitr(0) == []
    assert col_diff_generic(1) == ["#ad0fb5"]


def test_builtin_ramps_lookup() -> None:
    assert set(BUILTIN_RAMPS) == {
        "col_nitr",
        "col_phos",
        "col_prec",
        "col_temp",
        "col_q",
        "col_diff_temp",
        "col_diff_generic",
    }
    assert get_ramp("COL_Q").name == "col_q"
    with pytest.raises(ValueError, match="Unknown color ramp"):
        get_ramp("viridis")


def test_color_ramp_palette() -> None:
    ramp = color_ramp_palette(["white", "navy"], name="runoff")
    assert ramp(2) == ["#ffffff", "#000080"]
    with pytest.raises(ValueError):
        color_ramp_palette(["white"])
    with pytest.raises(ValueError, match="Invalid ramp anchor"):
        color_ramp_palette(["white", "nope"])


def test_is_color_like() -> None:
    assert is_color_like("red")
    assert is_color_like("#00ff0080")
    assert not is_color_like("auto")
