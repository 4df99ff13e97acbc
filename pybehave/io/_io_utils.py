"""
Internal utilities for IO operations, like validation and value parsing.
"""

import datetime as dt
import json
import logging
import warnings
from collections.abc import Mapping
from typing import Any

import pandas as pd

from ..records import SlotRecord
from ..schedule import Schedule

logger = logging.getLogger(__name__)

# Keys that name the slot inside list-shaped time_slots
_SLOT_KEY_FIELDS = ("time_slot", "slot", "period", "key")


def _validate_columns(
    names: set[str],
    required: dict[str, str | None],
    kind: str,
) -> None:
    """
    Checks that every required field resolved to a column.

    Args:
        names: Column names present in the loaded data.
        required: Field name -> resolved column name (None when not found).
        kind: Record kind for the error message ('evaluation', 'incident', ...).

    Raises:
        ValueError: If a required field has no column.
    """
    missing = {field for field, column in required.items() if column is None}
    if missing:
        raise ValueError(
            f"Missing required {kind} columns in the loaded data: {sorted(missing)}. "
            f"Available columns: {sorted(names)}"
        )


def _is_null(value: Any) -> bool:
    if value is None:
        return True
    # Containers are never null
    if isinstance(value, (Mapping, list, tuple)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _clean_text(value: Any) -> str | None:
    if _is_null(value):
        return None
    text = str(value).strip()
    return text or None


def _parse_id(value: Any, column: str) -> str:
    if _is_null(value):
        raise ValueError(f"Column '{column}' contains a missing id.")
    if isinstance(value, float) and value.is_integer():
        # Integer ids read back as floats when the column has nulls
        return str(int(value))
    return str(value).strip()


def _parse_date(value: Any, column: str) -> dt.date:
    """
    Parses a calendar day from a date, datetime, Timestamp or ISO string.

    Raises:
        ValueError: If the value is missing or cannot be parsed.
    """
    if _is_null(value):
        raise ValueError(f"Column '{column}' contains a missing date.")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise ValueError(f"Column '{column}' has an unparseable date: {value!r}") from e
    try:
        return pd.Timestamp(value).date()
    except (TypeError, ValueError) as e:
        raise ValueError(f"Column '{column}' has an unparseable date: {value!r}") from e


def _parse_datetime(value: Any, column: str) -> dt.datetime | None:
    if _is_null(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    try:
        return pd.Timestamp(value).to_pydatetime()
    except (TypeError, ValueError) as e:
        raise ValueError(f"Column '{column}' has an unparseable timestamp: {value!r}") from e


def _parse_bool(value: Any, default: bool = True) -> bool:
    if _is_null(value):
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "yes", "y", "1")
    return bool(value)


def _warn(message: str, verbosity: int) -> None:
    if verbosity <= 0:
        warnings.warn(message, UserWarning, stacklevel=3)
    else:
        logger.debug(message)


def _parse_time_slots(
    raw: Any,
    schedule: Schedule,
    context: str,
    verbosity: int = 0,
) -> dict[str, SlotRecord]:
    """
    Normalizes a stored time_slots value into slot key -> SlotRecord.

    Accepts a mapping, a JSON string holding a mapping, or a list of slot
    dicts that carry their key in a 'time_slot'/'slot'/'period' field. Legacy
    `period_N` keys are mapped onto the schedule. Unparseable values and
    slot entries that are not mappings are dropped with a UserWarning.

    Args:
        raw: The stored value.
        schedule: Schedule used for legacy key mapping and unknown-key checks.
        context: Description of the row, used in warnings.
        verbosity: `<= 0` emits warnings, `>= 1` suppresses them.

    Returns:
        A dict of slot key -> SlotRecord, in schedule order.
    """
    if _is_null(raw):
        return {}

    if isinstance(raw, (bytes, str)):
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if not text.strip():
            return {}
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            _warn(f"Unparseable time_slots JSON for {context}; treating as empty.", verbosity)
            return {}

    if isinstance(raw, list):
        as_mapping: dict[str, Any] = {}
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            key = next((item[f] for f in _SLOT_KEY_FIELDS if not _is_null(item.get(f))), None)
            if key is not None:
                as_mapping[str(key)] = item
        raw = as_mapping

    if not isinstance(raw, Mapping):
        _warn(
            f"time_slots for {context} is a {type(raw).__name__}, not a mapping; treating as empty.",
            verbosity,
        )
        return {}

    remapped = schedule.remap_legacy_keys({str(k): v for k, v in raw.items()})

    slots: dict[str, SlotRecord] = {}
    for key in schedule.order(remapped):
        value = remapped[key]
        if isinstance(value, SlotRecord):
            slots[key] = value
        elif isinstance(value, Mapping):
            slots[key] = SlotRecord.from_mapping(value)
        elif not _is_null(value):
            _warn(f"Slot '{key}' for {context} is not a mapping; dropped.", verbosity)

    unknown = [key for key in slots if key not in schedule]
    if unknown:
        _warn(f"Slot keys outside the schedule for {context}: {unknown}", verbosity)
    return slots


EXPORT_FORMATS = ("dataframe", "csv", "parquet")


def _validate_export_target(format: str, output_path: str | None) -> None:
    """
    Raises:
        ValueError: If `format` is unknown, or a file format has no output_path.
    """
    if format not in EXPORT_FORMATS:
        raise ValueError(f"Invalid format '{format}'. Must be one of {list(EXPORT_FORMATS)}")
    if format != "dataframe" and output_path is None:
        raise ValueError(f"output_path is required when exporting as '{format}'")
