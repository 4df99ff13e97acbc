"""
Rounding policies applied to averages before they are displayed.

Each report picks its policy explicitly; nothing here is selected by context.
"""

import math
from typing import Any

import numpy as np
import pandas as pd

from ..records import MISSING_DISPLAY
from ._slot_utils import MAX_SCORE, MIN_SCORE


def is_missing(value: Any) -> bool:
    """True for None, NaN and pandas/numpy missing markers."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def round_half_up(value: float, decimal_places: int = 0) -> float:
    """Rounds halves upwards (2.5 -> 3), unlike the built-in banker's `round`."""
    factor = 10**decimal_places
    return math.floor(value * factor + 0.5) / factor


class RoundingPolicy:
    """
    Base class for rounding strategies.

    Subclasses implement `_round`. `apply` returns a number (or None for
    missing input) and `format` returns the display string.
    """

    name = "base"

    def __init__(self, decimal_places: int = 0, missing_label: str = MISSING_DISPLAY):
        if not isinstance(decimal_places, int) or isinstance(decimal_places, bool):
            raise TypeError("decimal_places must be an integer.")
        if decimal_places < 0:
            raise ValueError("decimal_places must be non-negative.")
        if not isinstance(missing_label, str):
            raise TypeError("missing_label must be a string.")
        self.decimal_places = decimal_places
        self.missing_label = missing_label

    def _round(self, value: float) -> float:
        raise NotImplementedError

    def apply(self, value: Any) -> float | None:
        if is_missing(value):
            return None
        return self._round(float(value))

    def format(self, value: Any) -> str:
        rounded = self.apply(value)
        if rounded is None:
            return self.missing_label
        return f"{rounded:.{self.decimal_places}f}"

    def __call__(self, value: Any) -> float | None:
        return self.apply(value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(decimal_places={self.decimal_places}, "
            f"missing_label={self.missing_label!r})"
        )


class StandardRounding(RoundingPolicy):
    """Plain half-up rounding to `decimal_places` digits."""

    name = "standard"

    def _round(self, value: float) -> float:
        return round_half_up(value, self.decimal_places)


class BandedRounding(RoundingPolicy):
    """
    Threshold rounding used by the "heartland" reports.

    Anything below 2 shows as 1, anything below 3 shows as 2, 3.5 and above
    shows as 4, and the 3.0-3.5 band rounds half-up. Results are clamped to
    the rating scale.
    """

    name = "heartland"

    def _round(self, value: float) -> float:
        if value < 2:
            banded = 1.0
        elif value < 3:
            banded = 2.0
        elif value >= 3.5:
            banded = 4.0
        else:
            banded = round_half_up(value)
        return float(np.clip(banded, MIN_SCORE, MAX_SCORE))


ROUNDING_POLICIES: dict[str, type[RoundingPolicy]] = {
    StandardRounding.name: StandardRounding,
    BandedRounding.name: BandedRounding,
}


def get_rounding_policy(name: str, **kwargs) -> RoundingPolicy:
    """
    Instantiates a registered rounding policy by name.

    Args:
        name: 'standard' or 'heartland'.
        **kwargs: Passed to the policy constructor (decimal_places, missing_label).

    Raises:
        TypeError: If name is not a string.
        ValueError: If no policy is registered under `name`.
    """
    if not isinstance(name, str):
        raise TypeError("Policy name must be a string.")
    try:
        policy_cls = ROUNDING_POLICIES[name.strip().lower()]
    except KeyError as e:
        raise ValueError(
            f"Unknown rounding policy '{name}'. Available policies: {list(ROUNDING_POLICIES)}"
        ) from e
    return policy_cls(**kwargs)
