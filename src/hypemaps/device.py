"""Scoped handling of the matplotlib state mutated by map plotting."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping


_LOGGER = logging.getLogger("hypemaps.device")

_MARGIN_KEYS = (
    "figure.subplot.left",
    "figure.subplot.bottom",
    "figure.subplot.right",
    "figure.subplot.top",
)
# rcParams touched while plotting: margins, text scale, square line ends, zero axis padding.
_RC_KEYS = _MARGIN_KEYS + ("font.size", "lines.solid_capstyle", "axes.xmargin", "axes.ymargin")


@dataclass(frozen=True, slots=True)
class DeviceState:
    rc: Mapping[str, Any]
    clip_on: bool


class DeviceContext:
    """Explicit plot-device state for one render call.

    `apply` sets margins, axis padding, line caps, clipping and text scaling.
    `scoped(restore=True)` puts the previous state back on every exit path.
    Artists already drawn keep their look; only later plots see the restore.
    """

    def __init__(self, plt: Any) -> None:
        self.plt = plt
        self.clip_on = True
        self.base_font_size = float(plt.rcParamsDefault["font.size"])

    def snapshot(self) -> DeviceState:
        return DeviceState(
            rc={key: self.plt.rcParams[key] for key in _RC_KEYS},
            clip_on=self.clip_on,
        )

    def apply(
        self,
        *,
        cex: float,
        subplot_params: tuple[float, float, float, float] | None = None,
    ) -> None:
        rc = self.plt.rcParams
        rc["font.size"] = self.base_font_size * cex
        rc["lines.solid_capstyle"] = "butt"
        rc["axes.xmargin"] = 0.0
        rc["axes.ymargin"] = 0.0
        if subplot_params is not None:
            for key, value in zip(_MARGIN_KEYS, subplot_params):
                rc[key] = value
        self.clip_on = False

    def restore(self, state: DeviceState) -> None:
        for key, value in state.rc.items():
            self.plt.rcParams[key] = value
        self.clip_on = state.clip_on
        _LOGGER.debug("Restored plot device state")

    @property
    def font_size(self) -> float:
        return float(self.plt.rcParams["font.size"])

    @property
    def subplot_rect(self) -> tuple[float, float, float, float]:
        """Current margins as an `add_axes` rectangle (left, bottom, width, height)."""
        left, bottom, right, top = (float(self.plt.rcParams[key]) for key in _MARGIN_KEYS)
        return (left, bottom, right - left, top - bottom)

    @contextmanager
    def scoped(self, *, restore: bool) -> Iterator[DeviceContext]:
        state = self.snapshot()
        try:
            yield self
        finally:
            if restore:
                self.restore(state)
