"""
Descriptive statistics over evaluation records: rating distribution,
per-time-slot averages and low-score flags.

All functions deduplicate records per (student, date) before counting.
"""

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pyarrow as pa

from ..records import SECTION_KEYS, EvaluationRecord, SectionAverage, as_slot_record
from ..schedule import DEFAULT_SCHEDULE, Schedule
from ._daily_process import _validate_categories
from ._resolver import resolve_records
from ._slot_utils import MAX_SCORE, extract_slot_value, extract_slot_values
from .rounding import round_half_up

RATING_LEVELS: tuple[int, ...] = (1, 2, 3, 4)
LOW_SCORE_THRESHOLD = 2

DISTRIBUTION_SCHEMA = pa.schema(
    [
        pa.field("rating", pa.int64()),
        pa.field("count", pa.int64()),
        pa.field("percentage", pa.int64()),
    ]
)


def rating_distribution(
    records: Iterable[EvaluationRecord],
    categories: tuple[str, ...] = SECTION_KEYS,
) -> pa.Table:
    """
    Counts how often each rating 1-4 was given.

    Every numeric section value of every slot counts once; fractional values
    are bucketed by half-up rounding. Status codes and missing values are not
    counted.

    Args:
        records: Evaluation records (duplicates are resolved first).
        categories: Sections to count.

    Returns:
        A PyArrow Table with columns rating, count and percentage (integer
        percent of all counted values, 0 when nothing was counted).
    """
    _validate_categories(categories)
    buckets = []
    for record in resolve_records(records):
        for slot in record.time_slots.values():
            for value in extract_slot_values(slot, categories).values():
                buckets.append(int(round_half_up(value)))

    counts = np.bincount(np.asarray(buckets, dtype=np.int64), minlength=int(MAX_SCORE) + 1)
    total = int(counts[1:].sum())
    rows = [
        {
            "rating": level,
            "count": int(counts[level]),
            "percentage": int(round_half_up(counts[level] / total * 100)) if total else 0,
        }
        for level in RATING_LEVELS
    ]
    return pa.Table.from_pylist(rows, schema=DISTRIBUTION_SCHEMA)


def time_slot_analysis(
    records: Iterable[EvaluationRecord],
    schedule: Schedule = DEFAULT_SCHEDULE,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> dict[str, SectionAverage]:
    """
    Pools every numeric score per slot key across all records.

    Returns:
        slot key -> SectionAverage, in schedule order. Every scheduled key is
        present (count 0 when never scored); unscheduled keys found in the
        records follow in first-seen order.
    """
    _validate_categories(categories)
    values: dict[str, list[float]] = {key: [] for key in schedule.keys}
    for record in resolve_records(records, schedule=schedule):
        for key, slot in record.time_slots.items():
            values.setdefault(key, []).extend(extract_slot_values(slot, categories).values())
    return {key: SectionAverage.from_values(values[key]) for key in schedule.order(values)}


@dataclass(frozen=True)
class LowScoreFlag:
    """A time slot where at least one section scored at or below the threshold."""

    student_id: str
    date: dt.date
    slot_key: str
    label: str
    categories: tuple[str, ...]
    lowest_score: float
    comment: str | None = None


def low_score_flags(
    records: Iterable[EvaluationRecord],
    threshold: float = LOW_SCORE_THRESHOLD,
    schedule: Schedule = DEFAULT_SCHEDULE,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> list[LowScoreFlag]:
    """
    Lists every (student, date, slot) with a section score <= `threshold`.

    One flag per slot, however many of its sections scored low. Flags are
    ordered by student, date and schedule position.

    Raises:
        TypeError: If threshold is not a number.
    """
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise TypeError("threshold must be a number.")
    _validate_categories(categories)

    flags = []
    for record in resolve_records(records, schedule=schedule):
        for key in schedule.order(record.time_slots):
            slot = as_slot_record(record.time_slots[key])
            low = {}
            for category in categories:
                value = extract_slot_value(slot, category)
                if value is not None and value <= threshold:
                    low[category] = value
            if not low:
                continue
            flags.append(
                LowScoreFlag(
                    student_id=record.student_id,
                    date=record.date,
                    slot_key=key,
                    label=schedule.label(key),
                    categories=tuple(low),
                    lowest_score=min(low.values()),
                    comment=slot.comment,
                )
            )
    return flags
