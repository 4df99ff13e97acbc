"""
Per-day section averaging.
"""

from collections.abc import Mapping
from typing import Any

from ..records import (
    SECTION_KEYS,
    DailyAggregate,
    EvaluationRecord,
    SectionAverage,
    SlotRecord,
)
from ._slot_utils import count_completed_slots, extract_slot_value

SlotMap = Mapping[str, SlotRecord | Mapping[str, Any]]


def _validate_categories(categories: tuple[str, ...]) -> None:
    unknown = [c for c in categories if c not in SECTION_KEYS]
    if unknown:
        raise ValueError(
            f"Unknown section(s) {unknown}. Expected a subset of {list(SECTION_KEYS)}."
        )


def calculate_section_averages(
    time_slots: SlotMap | None,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> dict[str, SectionAverage]:
    """
    Sums the numeric scores of each section across all slots of one day.

    Args:
        time_slots: Mapping of slot key to slot (SlotRecord or raw dict).
        categories: Sections to average. Defaults to all three.

    Returns:
        A dict of section -> SectionAverage. Sections with no numeric value
        have count 0 and average None.
    """
    _validate_categories(categories)
    values: dict[str, list[float]] = {category: [] for category in categories}
    for slot in (time_slots or {}).values():
        for category in categories:
            value = extract_slot_value(slot, category)
            if value is not None:
                values[category].append(value)
    return {
        category: SectionAverage.from_values(section_values)
        for category, section_values in values.items()
    }


def calculate_overall_average(
    time_slots: SlotMap | None,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> SectionAverage:
    """
    Pools every numeric score of every section into one average.

    This is not the mean of the section averages: a section with more scored
    slots carries proportionally more weight.
    """
    sections = calculate_section_averages(time_slots, categories)
    return SectionAverage(
        sum=sum(s.sum for s in sections.values()),
        count=sum(s.count for s in sections.values()),
    )


def calculate_daily_aggregate(
    record: EvaluationRecord,
    categories: tuple[str, ...] = SECTION_KEYS,
) -> DailyAggregate:
    """Builds the DailyAggregate for one (already resolved) evaluation record."""
    sections = calculate_section_averages(record.time_slots, categories)
    overall = SectionAverage(
        sum=sum(s.sum for s in sections.values()),
        count=sum(s.count for s in sections.values()),
    )
    return DailyAggregate(
        student_id=record.student_id,
        date=record.date,
        sections=sections,
        overall=overall,
        slot_count=len(record.time_slots or {}),
        completed_slots=count_completed_slots(record.time_slots),
    )


def empty_daily_aggregate(
    student_id: str, day, categories: tuple[str, ...] = SECTION_KEYS
) -> DailyAggregate:
    return DailyAggregate(
        student_id=student_id,
        date=day,
        sections={category: SectionAverage() for category in categories},
        overall=SectionAverage(),
    )
