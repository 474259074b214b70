"""Color ramp palettes for HYPE result variables."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence


@dataclass(frozen=True, slots=True)
class ColorRamp:
    """Callable ramp: `ramp(n)` returns `n` hex colors interpolated between anchors."""

    name: str
    anchors: tuple[str, ...]

    def __call__(self, n: int) -> list[str]:
        if n < 1:
            return []
        if n == 1:
            return [_to_hex(self.anchors[0])]
        cmap = _linear_cmap(self.name, self.anchors)
        return [_to_hex(cmap(idx / (n - 1))) for idx in range(n)]


# Single-hue ramps go from pale to saturated, difference ramps diverge around a light center.
col_nitr = ColorRamp("col_nitr", ("#fff5a8", "#6b0601"))
col_phos = ColorRamp("col_phos", ("#dcf5e9", "#226633"))
col_prec = ColorRamp("col_prec", ("#e0e7e8", "#00508c"))
col_temp = ColorRamp(
    "col_temp",
    ("#0000ff", "#0080ff", "#80ffff", "#f0f0f0", "#ffff00", "#ff8000", "#ff0000"),
)
col_q = ColorRamp("col_q", ("#ede7ff", "#2300ff"))
col_diff_temp = ColorRamp(
    "col_diff_temp",
    ("#0000ff", "#0080ff", "#80ffff", "#f0f0f0", "#ffff00", "#ff8000", "#ff0000"),
)
col_diff_generic = ColorRamp(
    "col_diff_generic",
    ("#ad0fb5", "#e889e6", "#f5f5f5", "#8ae2ec", "#0c7d92"),
)

BUILTIN_RAMPS: dict[str, ColorRamp] = {
    ramp.name: ramp
    for ramp in (col_nitr, col_phos, col_prec, col_temp, col_q, col_diff_temp, col_diff_generic)
}


def color_ramp_palette(colors: Sequence[str], name: str = "custom") -> ColorRamp:
    """Build a ramp from two or more anchor colors."""
    anchors = tuple(str(color) for color in colors)
    if len(anchors) < 2:
        raise ValueError("A color ramp needs at least two anchor colors")
    for color in anchors:
        if not is_color_like(color):
            raise ValueError(f"Invalid ramp anchor color: '{color}'")
    return ColorRamp(name, anchors)


def get_ramp(name: str) -> ColorRamp:
    key = name.strip().casefold()
    ramp = BUILTIN_RAMPS.get(key)
    if ramp is None:
        raise ValueError(
            f"Unknown color ramp '{name}'. Available: " + ", ".join(sorted(BUILTIN_RAMPS))
        )
    return ramp


def is_color_like(value: Any) -> bool:
    mcolors = _require_mpl_colors()
    return bool(mcolors.is_color_like(value))


@lru_cache(maxsize=32)
def _linear_cmap(name: str, anchors: tuple[str, ...]) -> Any:
    mcolors = _require_mpl_colors()
    return mcolors.LinearSegmentedColormap.from_list(name, list(anchors), N=256)


def _to_hex(color: Any) -> str:
    return str(_require_mpl_colors().to_hex(color))


def _require_mpl_colors() -> Any:
    try:
        import matplotlib.colors as mcolors
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for color ramps") from exc
    return mcolors
