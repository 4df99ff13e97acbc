"""
Storage collaborator contract and report builders.

The aggregation engine performs no I/O. Callers fetch records through an
`EvaluationStore` and pass them in; `build_range_report` and
`build_comment_input` do exactly that for the common cases. Errors raised by a
store propagate unchanged.
"""

import datetime as dt
import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from ..metrics.aggregation import aggregate_range
from ..metrics.comments import CommentEntry, collect_comments
from ..records import (
    SECTION_KEYS,
    ContactRecord,
    EvaluationRecord,
    IncidentRecord,
    RangeAggregate,
    Student,
)
from ..schedule import DEFAULT_SCHEDULE, Schedule
from .io import (
    Source,
    load_contact_records,
    load_evaluation_records,
    load_incident_records,
    load_students,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class EvaluationStore(Protocol):
    """Read access to stored records. Any backend providing these methods works."""

    def list_evaluations(
        self,
        student_id: str | None = None,
        date: dt.date | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[EvaluationRecord]: ...

    def list_students(self, active: bool | None = None) -> list[Student]: ...

    def list_incidents(
        self,
        student_id: str | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[IncidentRecord]: ...

    def list_contacts(
        self,
        student_id: str | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[ContactRecord]: ...


def _between(day: dt.date, date_from: dt.date | None, date_to: dt.date | None) -> bool:
    if date_from is not None and day < date_from:
        return False
    return date_to is None or day <= date_to


class TableStore:
    """
    In-memory EvaluationStore over already-loaded tables.

    Each source can be anything the loaders accept (DataFrame, PyArrow Table,
    list of dicts, CSV/Parquet path). Sources are loaded once, on construction.
    """

    def __init__(
        self,
        evaluations: Source | None = None,
        students: Source | None = None,
        incidents: Source | None = None,
        contacts: Source | None = None,
        schedule: Schedule = DEFAULT_SCHEDULE,
        verbosity: int = 0,
        **load_kwargs: Any,
    ):
        self._evaluations = (
            load_evaluation_records(
                evaluations, schedule=schedule, verbosity=verbosity, **load_kwargs
            )
            if evaluations is not None
            else []
        )
        self._students = load_students(students) if students is not None else []
        self._incidents = load_incident_records(incidents) if incidents is not None else []
        self._contacts = load_contact_records(contacts) if contacts is not None else []
        logger.debug(
            "TableStore loaded %d evaluations, %d students, %d incidents, %d contacts",
            len(self._evaluations),
            len(self._students),
            len(self._incidents),
            len(self._contacts),
        )

    def list_evaluations(
        self,
        student_id: str | None = None,
        date: dt.date | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[EvaluationRecord]:
        return [
            r
            for r in self._evaluations
            if (student_id is None or r.student_id == student_id)
            and (date is None or r.date == date)
            and _between(r.date, date_from, date_to)
        ]

    def list_students(self, active: bool | None = None) -> list[Student]:
        return [s for s in self._students if active is None or s.active == active]

    def list_incidents(
        self,
        student_id: str | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[IncidentRecord]:
        return [
            r
            for r in self._incidents
            if (student_id is None or r.student_id == student_id)
            and _between(r.incident_date, date_from, date_to)
        ]

    def list_contacts(
        self,
        student_id: str | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[ContactRecord]:
        return [
            r
            for r in self._contacts
            if (student_id is None or r.student_id == student_id)
            and _between(r.contact_date, date_from, date_to)
        ]


def build_range_report(
    store: EvaluationStore,
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
    Fetches evaluations for the window and aggregates them.

    Args:
        store: Any EvaluationStore.
        start: First day (inclusive).
        end: Last day (inclusive).
        student_ids: Students to report on. If None, the store's active
                     students are used; if the store lists no students, every
                     student with records in the window is reported.
        Remaining arguments are passed to `aggregate_range`.

    Returns:
        The RangeAggregate for the window.

    Raises:
        TypeError: If `store` does not implement EvaluationStore.
        Any exception raised by the store.
    """
    if not isinstance(store, EvaluationStore):
        raise TypeError(f"store must implement EvaluationStore, got {type(store).__name__}.")

    if student_ids is None:
        student_ids = [s.id for s in store.list_students(active=True)] or None

    records = store.list_evaluations(date_from=start, date_to=end)
    return aggregate_range(
        records,
        start,
        end,
        student_ids=student_ids,
        include_weekends=include_weekends,
        categories=categories,
        comment_mode=comment_mode,
        schedule=schedule,
        n_workers=n_workers,
        verbosity=verbosity,
    )


def build_comment_input(
    store: EvaluationStore,
    student_id: str,
    start: dt.date,
    end: dt.date,
    schedule: Schedule = DEFAULT_SCHEDULE,
    include_incidents: bool = True,
    include_contacts: bool = True,
) -> list[CommentEntry]:
    """
    Gathers one student's comments, incidents and contacts for a window.

    The result is the structured input for narrative summaries; a single-day
    window marks incidents and contacts as supplementary.

    Raises:
        TypeError: If `store` does not implement EvaluationStore.
        ValueError: If start is after end.
        Any exception raised by the store.
    """
    if not isinstance(store, EvaluationStore):
        raise TypeError(f"store must implement EvaluationStore, got {type(store).__name__}.")
    if start > end:
        raise ValueError(f"start ({start}) must not be after end ({end}).")

    records = store.list_evaluations(student_id=student_id, date_from=start, date_to=end)
    incidents = (
        store.list_incidents(student_id=student_id, date_from=start, date_to=end)
        if include_incidents
        else []
    )
    contacts = (
        store.list_contacts(student_id=student_id, date_from=start, date_to=end)
        if include_contacts
        else []
    )
    return collect_comments(
        records,
        incidents=incidents,
        contacts=contacts,
        start=start,
        end=end,
        schedule=schedule,
    )
