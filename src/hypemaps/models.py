"""Domain models shared across plotting modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .errors import InvalidArgumentError, InvalidInputError


MAP_ADJ_VALUES = (0.0, 0.5, 1.0)
LEGEND_POSITIONS = ("bottomright", "right", "topright", "topleft", "left", "bottomleft")
RIGHT_POSITIONS = frozenset({"bottomright", "right", "topright"})
BOTTOM_POSITIONS = frozenset({"bottomright", "bottomleft"})
MIDDLE_POSITIONS = frozenset({"right", "left"})

ColorArg = str | Callable[[int], Sequence[str]] | Sequence[str]


@dataclass(frozen=True, slots=True)
class MapOptions:
    """Rendering options for `plot_map_output`.

    `par_mar` holds bottom, left, top, right margins in text lines.
    `legend_inset` takes one or two fractions of the plot region; a missing
    y inset is 0.
    """

    map_adj: float = 0.0
    plot_legend: bool = True
    legend_pos: str = "right"
    legend_title: str | None = None
    legend_outer: bool = False
    legend_inset: tuple[float, ...] = (0.0, 0.0)
    col: ColorArg = "auto"
    col_breaks: Sequence[float] | None = None
    plot_scale: bool = True
    plot_arrow: bool = True
    par_cex: float = 1.0
    par_mar: tuple[float, float, float, float] = (0.1, 0.1, 0.1, 0.1)
    add: bool = False
    restore_par: bool = False

    def validate(self) -> None:
        if self.map_adj not in MAP_ADJ_VALUES:
            raise InvalidArgumentError(
                f"map_adj must be one of 0, 0.5, 1 (got {self.map_adj!r})"
            )
        if self.legend_pos not in LEGEND_POSITIONS:
            raise InvalidArgumentError(
                "legend_pos must be one of: " + ", ".join(LEGEND_POSITIONS)
                + f" (got {self.legend_pos!r})"
            )
        if not 1 <= len(self.legend_inset) <= 2:
            raise InvalidArgumentError("legend_inset takes one or two values")
        if len(self.par_mar) != 4:
            raise InvalidArgumentError("par_mar takes four margin values")
        if self.par_cex <= 0:
            raise InvalidArgumentError("par_cex must be > 0")
        if self.col_breaks is not None:
            if not _all_numeric(self.col_breaks):
                raise InvalidInputError("col_breaks must be a numeric sequence")
            if len(self.col_breaks) == 0:
                raise InvalidInputError("col_breaks must not be empty")

    @property
    def inset_xy(self) -> tuple[float, float]:
        if len(self.legend_inset) == 1:
            return (float(self.legend_inset[0]), 0.0)
        return (float(self.legend_inset[0]), float(self.legend_inset[1]))


@dataclass(frozen=True, slots=True)
class LegendSpec:
    position: str
    title: str
    inset: tuple[float, float]
    outer_labels: bool

    @property
    def on_right(self) -> bool:
        return self.position in RIGHT_POSITIONS

    @property
    def at_bottom(self) -> bool:
        return self.position in BOTTOM_POSITIONS

    @property
    def in_middle(self) -> bool:
        return self.position in MIDDLE_POSITIONS


@dataclass(frozen=True, slots=True)
class Classification:
    """Resolved class boundaries and one color per right-closed interval."""

    breaks: tuple[float, ...]
    colors: tuple[str, ...]
    ramp_name: str | None = None
    legend_title: str | None = None

    @property
    def n_classes(self) -> int:
        return len(self.breaks) - 1


def _all_numeric(values: Any) -> bool:
    if isinstance(values, (str, bytes)):
        return False
    try:
        items = list(values)
    except TypeError:
        return False
    return all(
        isinstance(item, (int, float)) and not isinstance(item, bool)
        or _is_numpy_number(item)
        for item in items
    )


def _is_numpy_number(value: Any) -> bool:
    return hasattr(value, "dtype") and getattr(value.dtype, "kind", "") in ("i", "u", "f")
