"""
Deduplication of evaluation records stored more than once for the same
student and date (retried saves, auto-saves racing each other).
"""

import datetime as dt
import logging
from collections.abc import Callable, Iterable
from typing import Any

from ..records import EvaluationRecord, is_blank
from ..schedule import DEFAULT_SCHEDULE, Schedule

logger = logging.getLogger(__name__)

COMMENT_SEPARATOR = " • "
COMMENT_MODES = ("latest", "combine")


def _as_naive_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


def record_timestamp(record: EvaluationRecord) -> dt.datetime:
    """
    The moment a record was last written.

    Uses `updated_at`, falling back to `created_at`, falling back to the
    start of the evaluation `date`. Aware datetimes are compared in UTC.
    """
    for value in (record.updated_at, record.created_at):
        if isinstance(value, dt.datetime):
            return _as_naive_utc(value)
        if isinstance(value, dt.date):
            return dt.datetime.combine(value, dt.time.min)
    return dt.datetime.combine(record.date, dt.time.min)


def group_records(
    records: Iterable[EvaluationRecord],
) -> dict[tuple[str, dt.date], list[EvaluationRecord]]:
    """Groups records by (student_id, date), keeping input order within each group."""
    groups: dict[tuple[str, dt.date], list[EvaluationRecord]] = {}
    for record in records:
        groups.setdefault((record.student_id, record.date), []).append(record)
    return groups


def resolve_daily_records(
    records: Iterable[EvaluationRecord],
    timestamp_func: Callable[[EvaluationRecord], Any] = record_timestamp,
    comment_mode: str = "latest",
    schedule: Schedule = DEFAULT_SCHEDULE,
) -> EvaluationRecord | None:
    """
    Merges all records of one (student_id, date) into a single logical record.

    Slot keys are the union over all records. When a slot key appears in more
    than one record, the whole slot is taken from the most recent record;
    fields of one slot are never mixed between records. Records with equal
    timestamps are ordered by their position in `records`, the later one
    winning.

    Args:
        records: Records sharing the same student_id and date. Not modified.
        timestamp_func: Returns a sortable "last written" value for a record.
                        Defaults to `record_timestamp`.
        comment_mode: 'latest' keeps the general comment of the most recent
                      record that has one. 'combine' joins every non-empty
                      general comment with COMMENT_SEPARATOR, oldest first.
        schedule: Orders the slot keys of the resolved record.

    Returns:
        The resolved EvaluationRecord, or None if `records` is empty.

    Raises:
        ValueError: If records belong to different students or dates, or if
                    `comment_mode` is unknown.
    """
    if comment_mode not in COMMENT_MODES:
        raise ValueError(
            f"Unsupported comment_mode '{comment_mode}'. Supported modes are: {list(COMMENT_MODES)}"
        )
    records = list(records)
    if not records:
        return None

    keys = {(r.student_id, r.date) for r in records}
    if len(keys) > 1:
        raise ValueError(
            f"resolve_daily_records expects records for a single student and date, got {sorted(keys, key=str)}"
        )

    if len(records) == 1:
        only = records[0]
        ordered = {key: only.time_slots[key] for key in schedule.order(only.time_slots)}
        return EvaluationRecord(
            student_id=only.student_id,
            date=only.date,
            time_slots=ordered,
            general_comment=(only.general_comment or "").strip(),
            updated_at=only.updated_at,
            created_at=only.created_at,
            id=only.id,
        )

    logger.debug(
        "Resolving %d records for student %s on %s",
        len(records),
        records[0].student_id,
        records[0].date,
    )

    # Oldest first; later entries overwrite earlier ones
    ordered_records = [
        record
        for _, record in sorted(
            enumerate(records), key=lambda item: (timestamp_func(item[1]), item[0])
        )
    ]

    merged_slots: dict[str, Any] = {}
    for record in ordered_records:
        for key, slot in (record.time_slots or {}).items():
            merged_slots[key] = slot

    comments = [
        r.general_comment.strip()
        for r in ordered_records
        if not is_blank(r.general_comment)
    ]
    if comment_mode == "combine":
        general_comment = COMMENT_SEPARATOR.join(comments)
    else:
        general_comment = comments[-1] if comments else ""

    latest = ordered_records[-1]
    created = [r.created_at for r in records if r.created_at is not None]
    return EvaluationRecord(
        student_id=latest.student_id,
        date=latest.date,
        time_slots={key: merged_slots[key] for key in schedule.order(merged_slots)},
        general_comment=general_comment,
        updated_at=latest.updated_at,
        created_at=min(created, key=_sortable_datetime) if created else None,
        id=latest.id,
    )


def _sortable_datetime(value: dt.datetime) -> dt.datetime:
    return _as_naive_utc(value) if isinstance(value, dt.datetime) else value


def resolve_records(
    records: Iterable[EvaluationRecord],
    timestamp_func: Callable[[EvaluationRecord], Any] = record_timestamp,
    comment_mode: str = "latest",
    schedule: Schedule = DEFAULT_SCHEDULE,
) -> list[EvaluationRecord]:
    """
    Resolves every (student_id, date) group of `records`.

    Returns:
        One record per (student_id, date), sorted by student_id then date.
    """
    groups = group_records(records)
    resolved = [
        resolve_daily_records(
            group,
            timestamp_func=timestamp_func,
            comment_mode=comment_mode,
            schedule=schedule,
        )
        for group in groups.values()
    ]
    return sorted(
        (r for r in resolved if r is not None),
        key=lambda r: (str(r.student_id), r.date),
    )
