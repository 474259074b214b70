"""Color classification of HYPE map results.

Break points and colors come from one of three sources, resolved once from
the `col` option:

* a ramp callable (`RampColors`), with built-in default breaks keyed on the
  ramp identity,
* the keyword ``"auto"`` (`AutoColors`), with presets for a few common HYPE
  variables,
* an explicit color sequence (`ExplicitColors`).

Classes are right-closed, with the lowest break included in the lowest class.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import numpy as np
import pandas as pd

from .colors import (
    col_diff_generic,
    col_diff_temp,
    col_nitr,
    col_phos,
    col_q,
    col_temp,
    is_color_like,
)
from .errors import CountMismatchError, InvalidArgumentError, TruncationWarning, warn
from .models import Classification, ColorArg


_LOGGER = logging.getLogger("hypemaps.classify")

_DECILES = tuple(idx / 10 for idx in range(11))


@dataclass(frozen=True, slots=True)
class RampColors:
    ramp: Callable[[int], Sequence[str]]


@dataclass(frozen=True, slots=True)
class AutoColors:
    pass


@dataclass(frozen=True, slots=True)
class ExplicitColors:
    colors: tuple[str, ...]


ColorSpec = RampColors | AutoColors | ExplicitColors


@dataclass(frozen=True, slots=True)
class _VariablePreset:
    ramp: Callable[[int], Sequence[str]]
    title: str
    breaks: Callable[[float, float], list[float]]


# Pretty break points and mathtext legend titles for select HYPE variables.
_VARIABLE_PRESETS: dict[str, _VariablePreset] = {
    "CCTN": _VariablePreset(
        ramp=col_nitr,
        title=r"Total N ($\mu$g l$^{-1}$)",
        breaks=lambda lo, hi: [0, 10, 50, 100, 250, 500, 1000, 2500, 5000, hi + 1 if hi > 5000 else 10000],
    ),
    "CCTP": _VariablePreset(
        ramp=col_phos,
        title=r"Total P ($\mu$g l$^{-1}$)",
        breaks=lambda lo, hi: [0, 5, 10, 25, 50, 100, 150, 200, 250, hi + 1 if hi > 250 else 1000],
    ),
    "COUT": _VariablePreset(
        ramp=col_q,
        title=r"Q (m$^{3}$ s$^{-1}$)",
        breaks=lambda lo, hi: [0, 0.5, 1, 5, 10, 50, 100, 500, hi + 1 if hi > 500 else 2000],
    ),
    # The repeated 1 (where -1 would be expected) is kept until confirmed with the model owners.
    "TEMP": _VariablePreset(
        ramp=col_temp,
        title=r"Air Temp. ($\degree$C)",
        breaks=lambda lo, hi: [
            lo - 1 if lo < -7.5 else -30,
            -7.5, -5, -2.5, 1, 0, 1, 2.5, 5, 7.5,
            hi + 1 if hi > 7.5 else 30,
        ],
    ),
}


def resolve_color_spec(col: ColorArg) -> ColorSpec:
    """Dispatch the `col` option into its variant."""
    if callable(col):
        return RampColors(ramp=col)
    if isinstance(col, str):
        if col == "auto":
            return AutoColors()
        if is_color_like(col):
            return ExplicitColors(colors=(col,))
        raise InvalidArgumentError(
            f"Invalid 'col' argument {col!r}: use 'auto', a color ramp function or a color sequence."
        )
    if isinstance(col, (list, tuple, np.ndarray, pd.Series)) and len(col) > 0:
        colors = tuple(str(item) for item in col)
        invalid = [color for color in colors if not is_color_like(color)]
        if invalid:
            raise InvalidArgumentError("Invalid colors in 'col': " + ", ".join(invalid))
        return ExplicitColors(colors=colors)
    raise InvalidArgumentError(
        f"Invalid 'col' argument of type {type(col).__name__}."
    )


def value_range(values: Any) -> tuple[float, float]:
    arr = _as_float_array(values)
    finite = arr[~np.isnan(arr)]
    if finite.size == 0:
        return (math.nan, math.nan)
    return (float(finite.min()), float(finite.max()))


def quantile_breaks(values: Any, probs: Sequence[float]) -> list[float]:
    arr = _as_float_array(values)
    finite = arr[~np.isnan(arr)]
    if finite.size == 0:
        return [0.0]
    return [float(item) for item in np.quantile(finite, list(probs))]


def diff_temp_breaks(lo: float, hi: float) -> list[float]:
    return [
        lo - 1 if lo < -7.5 else -30,
        -7.5, -5, -2.5, -1, 0, 1, 2.5, 5, 7.5,
        hi + 1 if hi > 7.5 else 30,
    ]


def diff_generic_breaks(lo: float, hi: float) -> list[float]:
    """Breaks centered on zero, equally spaced on a log scale of the value magnitude."""
    magnitude = max(abs(lo), abs(hi))
    if math.isnan(magnitude):
        magnitude = 0.0
    upper = np.exp(np.linspace(0.0, math.log(magnitude + 1), 5))
    return [float(item) for item in (-upper[::-1])] + [float(item) for item in upper]


def build_classification(
    values: Any,
    spec: ColorSpec,
    *,
    var_name: str = "",
    col_breaks: Sequence[float] | None = None,
) -> Classification:
    """Resolve break points and colors for `values`.

    `col_breaks` must already be sorted. Raises `CountMismatchError` when an
    explicit color sequence and explicit breaks disagree.
    """
    lo, hi = value_range(values)
    explicit = list(col_breaks) if col_breaks is not None else None
    ramp: Callable[[int], Sequence[str]] | None
    colors: tuple[str, ...] | None = None
    title: str | None = None

    if isinstance(spec, RampColors):
        ramp = spec.ramp
        if explicit is not None:
            breaks = explicit
        elif ramp == col_diff_temp:
            breaks = diff_temp_breaks(lo, hi)
        elif ramp == col_diff_generic:
            breaks = diff_generic_breaks(lo, hi)
        else:
            breaks = quantile_breaks(values, _DECILES)
    elif isinstance(spec, AutoColors):
        preset = _VARIABLE_PRESETS.get(var_name.strip().upper())
        if preset is not None:
            ramp = preset.ramp
            title = preset.title
            breaks = explicit if explicit is not None else preset.breaks(lo, hi)
        else:
            ramp = col_diff_generic
            breaks = explicit if explicit is not None else quantile_breaks(values, _DECILES)
    else:
        ramp = None
        colors = spec.colors
        if explicit is not None:
            breaks = explicit
            if len(colors) != len(breaks) - 1:
                raise CountMismatchError(
                    "If colors are given as a sequence in 'col', the number of colors must be "
                    f"one less than the number of break points in 'col_breaks' "
                    f"(got {len(colors)} colors, {len(breaks)} breaks)."
                )
        else:
            probs = np.linspace(0.0, 1.0, len(colors) + 1)
            breaks = quantile_breaks(values, probs)

    unique_breaks = sorted(set(float(item) for item in breaks))
    if ramp is None and len(unique_breaks) < len(breaks):
        warn(
            "User-defined colors in 'col' truncated because of non-unique values in "
            "quantile-based color breaks. Provide breaks in 'col_breaks' to use all colors.",
            TruncationWarning,
        )
    if len(unique_breaks) == 1:
        unique_breaks = [unique_breaks[0] - 1, unique_breaks[0] + 1]

    n_classes = len(unique_breaks) - 1
    if ramp is None:
        resolved = (colors or ())[:n_classes]
    else:
        resolved = tuple(str(item) for item in ramp(n_classes))
    ramp_name = getattr(ramp, "name", None) if ramp is not None else None
    _LOGGER.debug(
        "Classification: %d classes, breaks=%s, ramp=%s",
        n_classes,
        unique_breaks,
        ramp_name or "explicit",
    )
    return Classification(
        breaks=tuple(unique_breaks),
        colors=tuple(resolved),
        ramp_name=ramp_name,
        legend_title=title,
    )


def assign_classes(values: Any, breaks: Sequence[float]) -> np.ndarray:
    """Return the 0-based class index of each value, -1 where unclassified.

    A value equal to a break falls into the lower class; the lowest break
    belongs to the lowest class.
    """
    arr = _as_float_array(values)
    edges = np.asarray(breaks, dtype=float)
    idx = np.searchsorted(edges, arr, side="left") - 1
    idx[arr == edges[0]] = 0
    outside = np.isnan(arr) | (arr < edges[0]) | (arr > edges[-1])
    idx[outside] = -1
    return idx


def interval_labels(breaks: Sequence[float]) -> list[str]:
    labels: list[str] = []
    for idx in range(len(breaks) - 1):
        left = "[" if idx == 0 else "("
        labels.append(f"{left}{_format_break(breaks[idx])},{_format_break(breaks[idx + 1])}]")
    return labels


def classify_table(values: pd.DataFrame, classification: Classification) -> pd.DataFrame:
    """Append `class` and `color` columns to a two-column result table copy."""
    out = values.copy()
    codes = assign_classes(out.iloc[:, 1], classification.breaks)
    labels = interval_labels(classification.breaks)
    out["class"] = pd.Series(
        [labels[code] if code >= 0 else None for code in codes], index=out.index, dtype=object
    )
    out["color"] = pd.Series(
        [classification.colors[code] if code >= 0 else None for code in codes],
        index=out.index,
        dtype=object,
    )
    return out


def breaks_cover_range(breaks: Sequence[float], values: Any) -> bool:
    lo, hi = value_range(values)
    if math.isnan(lo):
        return True
    return min(breaks) <= lo and max(breaks) >= hi


def signif(value: float, digits: int) -> float:
    """Round to `digits` significant digits."""
    if value == 0 or not math.isfinite(value):
        return value
    magnitude = math.floor(math.log10(abs(value)))
    return round(value, digits - 1 - magnitude)


def format_annotation(value: float) -> str:
    return f"{signif(value, 2):g}"


def _format_break(value: float) -> str:
    return f"{value:g}"


def _as_float_array(values: Any) -> np.ndarray:
    return np.asarray(pd.to_numeric(pd.Series(values), errors="coerce"), dtype=float)
