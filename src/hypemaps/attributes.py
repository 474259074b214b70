"""Quick access to HYPE-specific metadata attached to imported objects.

HYPE readers tag their results with a few attributes (time axis, unit, ids,
time step, variable). These helpers are shortcuts for reading and writing
them. Pandas and xarray objects keep them in their `attrs` mapping; other
objects carry them in their instance dictionary.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, TypeVar

T = TypeVar("T")

HYPE_ATTRIBUTES = ("datetime", "hypeunit", "obsid", "outregid", "subid", "timestep", "variable")


def _store(obj: Any) -> MutableMapping[str, Any]:
    attrs = getattr(obj, "attrs", None)
    if isinstance(attrs, MutableMapping):
        return attrs
    try:
        return vars(obj)
    except TypeError as exc:
        raise TypeError(
            f"Cannot attach HYPE attributes to object of type {type(obj).__name__}"
        ) from exc


def get_attr(obj: Any, name: str) -> Any:
    if name not in HYPE_ATTRIBUTES:
        raise KeyError(f"Unknown HYPE attribute '{name}'")
    try:
        return _store(obj).get(name)
    except TypeError:
        return None


def set_attr(obj: T, name: str, value: Any) -> T:
    if name not in HYPE_ATTRIBUTES:
        raise KeyError(f"Unknown HYPE attribute '{name}'")
    _store(obj)[name] = value
    return obj


def datetime(obj: Any) -> Any:
    return get_attr(obj, "datetime")


def set_datetime(obj: T, value: Any) -> T:
    return set_attr(obj, "datetime", value)


def hypeunit(obj: Any) -> Any:
    return get_attr(obj, "hypeunit")


def set_hypeunit(obj: T, value: Any) -> T:
    return set_attr(obj, "hypeunit", value)


def obsid(obj: Any) -> Any:
    return get_attr(obj, "obsid")


def set_obsid(obj: T, value: Any) -> T:
    return set_attr(obj, "obsid", value)


def outregid(obj: Any) -> Any:
    return get_attr(obj, "outregid")


def set_outregid(obj: T, value: Any) -> T:
    return set_attr(obj, "outregid", value)


def subid(obj: Any) -> Any:
    return get_attr(obj, "subid")


def set_subid(obj: T, value: Any) -> T:
    return set_attr(obj, "subid", value)


def timestep(obj: Any) -> Any:
    return get_attr(obj, "timestep")


def set_timestep(obj: T, value: Any) -> T:
    return set_attr(obj, "timestep", value)


def variable(obj: Any) -> Any:
    return get_attr(obj, "variable")


def set_variable(obj: T, value: Any) -> T:
    return set_attr(obj, "variable", value)
