"""
Folding of per-day aggregates for one student over a list of report dates.
"""

import datetime as dt
from collections.abc import Sequence

from ..records import (
    OVERALL_KEY,
    DailyAggregate,
    EvaluationRecord,
    SectionAverage,
    StudentRangeAggregate,
    fold_section_averages,
)
from ..schedule import Schedule
from ._daily_process import calculate_daily_aggregate
from ._resolver import resolve_records

WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def weekday_name(day: dt.date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def _process_single_student(
    student_id: str,
    records: Sequence[EvaluationRecord],
    dates: Sequence[dt.date],
    categories: tuple[str, ...],
    comment_mode: str,
    schedule: Schedule,
) -> StudentRangeAggregate:
    """
    Resolves, averages and folds one student's records over `dates`.

    Records dated outside `dates` are ignored. Multi-day values are
    count-weighted: a section's range average is the sum of all its daily
    sums over the sum of all its daily counts.
    """
    date_set = set(dates)
    resolved = resolve_records(
        (r for r in records if r.date in date_set),
        comment_mode=comment_mode,
        schedule=schedule,
    )
    daily: dict[dt.date, DailyAggregate] = {
        record.date: calculate_daily_aggregate(record, categories) for record in resolved
    }

    sections = {
        category: fold_section_averages(d.sections[category] for d in daily.values())
        for category in categories
    }
    overall = fold_section_averages(d.overall for d in daily.values())

    weekdays: dict[str, dict[str, SectionAverage]] = {}
    for day in dates:
        name = weekday_name(day)
        stats = weekdays.setdefault(
            name,
            {key: SectionAverage() for key in (*categories, OVERALL_KEY)},
        )
        aggregate = daily.get(day)
        if aggregate is None:
            continue
        for category in categories:
            stats[category] = stats[category] + aggregate.sections[category]
        stats[OVERALL_KEY] = stats[OVERALL_KEY] + aggregate.overall

    return StudentRangeAggregate(
        student_id=student_id,
        daily=dict(sorted(daily.items())),
        sections=sections,
        overall=overall,
        weekdays=weekdays,
    )


def _student_worker(
    item: tuple[str, list[EvaluationRecord]],
    dates: tuple[dt.date, ...],
    categories: tuple[str, ...],
    comment_mode: str,
    schedule: Schedule,
) -> tuple[str, StudentRangeAggregate]:
    student_id, records = item
    return student_id, _process_single_student(
        student_id, records, dates, categories, comment_mode, schedule
    )
