"""
Aggregation module: daily, weekly and range behavior averages per student.
"""

import datetime as dt
import logging
from collections.abc import Iterable, Sequence

from ..records import (
    OVERALL_KEY,
    SECTION_KEYS,
    DailyAggregate,
    EvaluationRecord,
    RangeAggregate,
    SectionAverage,
    StudentRangeAggregate,
    fold_section_averages,
)
from ..schedule import DEFAULT_SCHEDULE, Schedule
from ._daily_process import (
    _validate_categories,
    calculate_daily_aggregate,
    empty_daily_aggregate,
)
from ._range_process import _process_single_student, weekday_name
from ._range_process_parallel import aggregate_students_parallel, resolve_worker_count
from ._resolver import COMMENT_MODES, resolve_daily_records

logger = logging.getLogger(__name__)


def _as_date(value: dt.date, name: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    raise TypeError(f"Input '{name}' must be a datetime.date, got {type(value).__name__}.")


def iter_report_dates(
    start: dt.date,
    end: dt.date,
    include_weekends: bool = False,
) -> list[dt.date]:
    """
    Lists the dates a report iterates over.

    Args:
        start: First day of the range (inclusive).
        end: Last day of the range (inclusive).
        include_weekends: If False (default), Saturdays and Sundays are left
                          out entirely.

    Returns:
        Dates in ascending order.

    Raises:
        TypeError: If start or end is not a date.
        ValueError: If start is after end.
    """
    start = _as_date(start, "start")
    end = _as_date(end, "end")
    if start > end:
        raise ValueError(f"start ({start}) must not be after end ({end}).")

    dates = []
    day = start
    while day <= end:
        if include_weekends or day.weekday() < 5:
            dates.append(day)
        day += dt.timedelta(days=1)
    return dates


def _group_by_student(
    records: Iterable[EvaluationRecord],
    student_ids: Sequence[str] | None,
) -> dict[str, list[EvaluationRecord]]:
    grouped: dict[str, list[EvaluationRecord]] = {}
    if student_ids is not None:
        for student_id in student_ids:
            grouped.setdefault(student_id, [])
    for record in records:
        if not isinstance(record, EvaluationRecord):
            raise TypeError(
                f"Expected EvaluationRecord items, got {type(record).__name__}."
            )
        if student_ids is not None and record.student_id not in grouped:
            continue
        grouped.setdefault(record.student_id, []).append(record)
    return grouped


def aggregate_day(
    records: Iterable[EvaluationRecord],
    day: dt.date,
    student_ids: Sequence[str] | None = None,
    categories: tuple[str, ...] = SECTION_KEYS,
    comment_mode: str = "latest",
    schedule: Schedule = DEFAULT_SCHEDULE,
) -> dict[str, DailyAggregate]:
    """
    Aggregates a single date for each student.

    Any day of the week may be requested here; the weekday filter only applies
    to ranges.

    Returns:
        student_id -> DailyAggregate. Students without records for `day` get
        an aggregate with count 0 in every section.
    """
    day = _as_date(day, "day")
    _validate_categories(categories)
    grouped = _group_by_student(records, student_ids)

    results: dict[str, DailyAggregate] = {}
    for student_id, student_records in grouped.items():
        resolved = resolve_daily_records(
            [r for r in student_records if r.date == day],
            comment_mode=comment_mode,
            schedule=schedule,
        )
        if resolved is None:
            results[student_id] = empty_daily_aggregate(student_id, day, categories)
        else:
            results[student_id] = calculate_daily_aggregate(resolved, categories)
    return results


# This is the public API function
def aggregate_range(
    records: Iterable[EvaluationRecord],
    start: dt.date,
    end: dt.date,
    student_ids: Sequence[str] | None = None,
    include_weekends: bool = False,
    categories: tuple[str, ...] = SECTION_KEYS,
    comment_mode: str = "latest",
    schedule: Schedule = DEFAULT_SCHEDULE,
    n_workers: int | None = None,
    verbosity: int = 0,
) -> RangeAggregate:
    """
    Aggregates behavior ratings for a set of students over a date range.

    For every (student, date) in the range the duplicate records are resolved,
    section averages are computed, and the per-day values are folded into
    range, per-weekday and cross-student values. All multi-day values are
    count-weighted (sum of daily sums over sum of daily counts), so a day with
    more scored slots carries more weight than a sparse day.

    Args:
        records: Evaluation records already fetched for the window. Records
                 outside the range (or for unlisted students) are ignored.
        start: First day of the range (inclusive).
        end: Last day of the range (inclusive).
        student_ids: Students to include, in display order. Listed students
                     without records get count 0 aggregates. If None, every
                     student found in `records` is included in first-seen order.
        include_weekends: If False (default), Saturday and Sunday are not
                          iterated at all.
        categories: Sections to aggregate. Defaults to ('ai', 'pi', 'ce').
        comment_mode: General comment resolution mode for duplicate records
                      ('latest' or 'combine').
        schedule: Slot ordering used by the resolved records.
        n_workers: Worker processes for per-student aggregation. None or 1
                   runs serially, -1 uses one process per CPU.
        verbosity: `<= -1` logs INFO messages; otherwise quiet.

    Returns:
        A RangeAggregate.

    Raises:
        TypeError: If inputs have the wrong types.
        ValueError: If start is after end, categories are unknown,
                    comment_mode is unsupported or n_workers is invalid.
    """
    #####################
    # 1. Validate Inputs #
    #####################
    _validate_categories(categories)
    if comment_mode not in COMMENT_MODES:
        raise ValueError(
            f"Unsupported comment_mode '{comment_mode}'. Supported modes are: {list(COMMENT_MODES)}"
        )
    if not isinstance(include_weekends, bool):
        raise TypeError("Input 'include_weekends' must be a boolean.")
    if student_ids is not None and isinstance(student_ids, str):
        raise TypeError("Input 'student_ids' must be a sequence of ids, not a string.")

    dates = tuple(iter_report_dates(start, end, include_weekends=include_weekends))
    grouped = _group_by_student(records, student_ids)
    workers = resolve_worker_count(n_workers, len(grouped))

    ###########################
    # 2. Aggregate per student #
    ###########################
    if workers > 1:
        students = aggregate_students_parallel(
            grouped,
            dates=dates,
            categories=categories,
            comment_mode=comment_mode,
            schedule=schedule,
            n_workers=workers,
            verbosity=verbosity,
        )
    else:
        students = {
            student_id: _process_single_student(
                student_id, student_records, dates, categories, comment_mode, schedule
            )
            for student_id, student_records in grouped.items()
        }

    for student_id, student in students.items():
        logger.debug(
            "Student %s: %d aggregated days, overall count %d",
            student_id,
            student.aggregated_days,
            student.overall.count,
        )

    ############################
    # 3. Cross-student columns #
    ############################
    column_sections = {
        category: fold_section_averages(s.sections[category] for s in students.values())
        for category in categories
    }
    column_overall = fold_section_averages(s.overall for s in students.values())
    column_weekdays = _fold_weekday_columns(students.values(), dates)

    return RangeAggregate(
        start=_as_date(start, "start"),
        end=_as_date(end, "end"),
        dates=dates,
        students=students,
        column_sections=column_sections,
        column_overall=column_overall,
        column_weekdays=column_weekdays,
    )


def _fold_weekday_columns(
    students: Iterable[StudentRangeAggregate],
    dates: Sequence[dt.date],
) -> dict[str, SectionAverage]:
    names: list[str] = []
    for day in dates:
        name = weekday_name(day)
        if name not in names:
            names.append(name)

    columns = {name: SectionAverage() for name in names}
    for student in students:
        for name in names:
            stats = student.weekdays.get(name)
            if stats is not None:
                columns[name] = columns[name] + stats[OVERALL_KEY]
    return columns
