"""Exception and warning taxonomy for map plotting."""

from __future__ import annotations

import logging
import warnings


_LOGGER = logging.getLogger("hypemaps.errors")


class HypeMapsError(ValueError):
    """Base class for fatal plotting input errors."""


class InvalidInputError(HypeMapsError):
    """Malformed input shapes or types (result table, polygons, breaks)."""


class InvalidArgumentError(HypeMapsError):
    """Option value outside the accepted set, or unsupported color spec."""


class CountMismatchError(HypeMapsError):
    """Explicit colors do not match the number of break point intervals."""


class RangeWarning(UserWarning):
    """Break points do not cover the data, or a map element is meaningless."""


class TruncationWarning(UserWarning):
    """User-supplied colors were dropped because classes collapsed."""


def warn(message: str, category: type[Warning] = RangeWarning) -> None:
    _LOGGER.warning(message)
    warnings.warn(message, category, stacklevel=3)
