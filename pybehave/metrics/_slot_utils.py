"""
Slot value extraction: turns one slot's raw section values into numeric scores.
"""

import enum
import math
import numbers
from collections.abc import Mapping
from typing import Any

from ..records import (
    LEGACY_STATUS_CODES,
    SECTION_KEYS,
    STATUS_CODES,
    SlotRecord,
    as_slot_record,
    is_blank,
)

MIN_SCORE = 1.0
MAX_SCORE = 4.0


class SlotValueSource(enum.Enum):
    """Where an extracted value came from."""

    CATEGORY = "category"
    LEGACY = "legacy"
    MISSING = "missing"


def parse_score(raw: Any) -> float | None:
    """
    Parses a raw score into a float in [1, 4].

    Status codes ("AB", "NS", legacy "A/B"), blanks, booleans, NaN, values
    outside [1, 4] and unparseable strings all return None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        upper = text.upper()
        if upper in STATUS_CODES or upper in LEGACY_STATUS_CODES:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(value) or not MIN_SCORE <= value <= MAX_SCORE:
        return None
    return value


def extract_slot_value_with_source(
    slot: SlotRecord | Mapping[str, Any] | None,
    category: str,
) -> tuple[float | None, SlotValueSource]:
    """
    Extracts the numeric score for one section of a slot.

    The section field is used whenever the slot carries any section field.
    Only slots in the legacy single-rating shape (no ai/pi/ce at all) fall
    back to the `rating`/`score` value, which then applies to every section.

    Args:
        slot: A SlotRecord, a raw slot mapping, or None.
        category: One of SECTION_KEYS.

    Returns:
        A tuple of (value or None, SlotValueSource).

    Raises:
        ValueError: If `category` is not a known section.
    """
    if category not in SECTION_KEYS:
        raise ValueError(
            f"Unknown section '{category}'. Expected one of {list(SECTION_KEYS)}."
        )
    if slot is None:
        return None, SlotValueSource.MISSING

    record = as_slot_record(slot)
    if record.has_section_values:
        value = parse_score(record.section(category))
        if value is None:
            return None, SlotValueSource.MISSING
        return value, SlotValueSource.CATEGORY

    value = parse_score(record.rating)
    if value is None:
        return None, SlotValueSource.MISSING
    return value, SlotValueSource.LEGACY


def extract_slot_value(
    slot: SlotRecord | Mapping[str, Any] | None, category: str
) -> float | None:
    """Returns the numeric score for `category`, or None when the slot has no usable value."""
    value, _ = extract_slot_value_with_source(slot, category)
    return value


def extract_slot_values(
    slot: SlotRecord | Mapping[str, Any] | None,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> dict[str, float]:
    """Numeric scores for every section of a slot, skipping missing ones."""
    values: dict[str, float] = {}
    for category in categories:
        value = extract_slot_value(slot, category)
        if value is not None:
            values[category] = value
    return values


def is_slot_completed(slot: SlotRecord | Mapping[str, Any] | None) -> bool:
    """
    A slot is complete when every section has a value (score or status code),
    or when it is a legacy slot carrying a single rating.
    """
    if slot is None:
        return False
    record = as_slot_record(slot)
    if all(not is_blank(record.section(key)) for key in SECTION_KEYS):
        return True
    return not record.has_section_values and parse_score(record.rating) is not None


def count_completed_slots(
    time_slots: Mapping[str, SlotRecord | Mapping[str, Any]] | None,
) -> int:
    if not time_slots:
        return 0
    return sum(1 for slot in time_slots.values() if is_slot_completed(slot))
