from __future__ import annotations

import matplotlib.pyplot as plt
import pytest

from hypemaps.device import DeviceContext


def test_apply_sets_plotting_state() -> None:
    device = DeviceContext(plt)
    device.apply(cex=1.5, subplot_params=(0.1, 0.2, 0.9, 0.8))
    assert device.font_size == pytest.approx(device.base_font_size * 1.5)
    assert plt.rcParams["lines.solid_capstyle"] == "butt"
    assert plt.rcParams["axes.xmargin"] == 0.0
    assert device.subplot_rect == pytest.approx((0.1, 0.2, 0.8, 0.6))
    assert device.clip_on is False


def test_scoped_restore_on_error() -> None:
    device = DeviceContext(plt)
    before = device.snapshot()
    with pytest.raises(RuntimeError):
        with device.scoped(restore=True):
            device.apply(cex=3.0, subplot_params=(0.3, 0.3, 0.7, 0.7))
            raise RuntimeError("boom")
    assert device.snapshot() == before
    assert device.clip_on is True


def test_scoped_without_restore_keeps_state() -> None:
    device = DeviceContext(plt)
    with device.scoped(restore=False):
        device.apply(cex=2.0)
    assert plt.rcParams["font.size"] == pytest.approx(device.base_font_size * 2.0)
    assert device.clip_on is False
