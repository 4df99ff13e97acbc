"""
Comment collection for narrative summaries.

Gathers slot comments, general comments, incident descriptions and contact
notes into one ordered list that keeps track of where every piece of text came
from.
"""

import datetime as dt
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

import pyarrow as pa

from ..records import (
    ContactRecord,
    EvaluationRecord,
    IncidentRecord,
    as_slot_record,
    is_blank,
)
from ..schedule import DEFAULT_SCHEDULE, Schedule
from ._resolver import resolve_records
from ._slot_utils import extract_slot_values

logger = logging.getLogger(__name__)


class CommentSource(enum.Enum):
    SLOT = "slot"
    GENERAL = "general"
    INCIDENT = "incident"
    CONTACT = "contact"


# Order of sources within one day
_SOURCE_ORDER = {
    CommentSource.SLOT: 0,
    CommentSource.GENERAL: 1,
    CommentSource.INCIDENT: 2,
    CommentSource.CONTACT: 3,
}


@dataclass(frozen=True)
class CommentEntry:
    """
    One piece of free text with its provenance.

    `label` is the slot label for slot comments, "General" for general
    comments, the incident type or the contact category otherwise. `rating` is
    the mean of the slot's numeric section scores, None for everything else.
    `supplementary` marks incident/contact text in a single-day collection.
    """

    student_id: str
    date: dt.date
    source: CommentSource
    label: str
    text: str
    rating: float | None = None
    supplementary: bool = False


COMMENT_TABLE_SCHEMA = pa.schema(
    [
        pa.field("student_id", pa.string()),
        pa.field("date", pa.date32()),
        pa.field("source", pa.string()),
        pa.field("label", pa.string()),
        pa.field("text", pa.string()),
        pa.field("rating", pa.float64()),
        pa.field("supplementary", pa.bool_()),
    ]
)


def _in_window(day: dt.date, start: dt.date | None, end: dt.date | None) -> bool:
    if start is not None and day < start:
        return False
    return end is None or day <= end


def _evaluation_entries(
    record: EvaluationRecord, schedule: Schedule
) -> list[CommentEntry]:
    entries = []
    for key in schedule.order(record.time_slots):
        slot = as_slot_record(record.time_slots[key])
        if is_blank(slot.comment):
            continue
        values = extract_slot_values(slot)
        rating = sum(values.values()) / len(values) if values else None
        entries.append(
            CommentEntry(
                student_id=record.student_id,
                date=record.date,
                source=CommentSource.SLOT,
                label=schedule.label(key),
                text=slot.comment.strip(),
                rating=rating,
            )
        )
    if not is_blank(record.general_comment):
        entries.append(
            CommentEntry(
                student_id=record.student_id,
                date=record.date,
                source=CommentSource.GENERAL,
                label="General",
                text=record.general_comment.strip(),
            )
        )
    return entries


def _incident_text(incident: IncidentRecord) -> str:
    parts = [
        part.strip()
        for part in (incident.description, incident.action_taken, incident.follow_up_notes)
        if not is_blank(part)
    ]
    return " ".join(parts)


def collect_comments(
    records: Iterable[EvaluationRecord],
    incidents: Iterable[IncidentRecord] = (),
    contacts: Iterable[ContactRecord] = (),
    start: dt.date | None = None,
    end: dt.date | None = None,
    schedule: Schedule = DEFAULT_SCHEDULE,
    comment_mode: str = "latest",
) -> list[CommentEntry]:
    """
    Collects every non-empty comment in chronological order.

    Evaluation records are deduplicated first, so a comment overwritten by a
    later save is not reported. Within one day, slot comments come first in
    schedule order, then the general comment, then incidents, then contacts.

    When `start` and `end` are the same day, the daily observations are the
    primary content: slot and general entries come first, and incident and
    contact entries follow them with `supplementary=True`. For wider windows
    all sources are merged chronologically with equal weight.

    Args:
        records: Evaluation records for one or more students.
        incidents: Incident reports to include.
        contacts: Contact log entries to include.
        start: Optional first day (inclusive).
        end: Optional last day (inclusive).
        schedule: Slot ordering and labels.
        comment_mode: General comment resolution for duplicate records.

    Returns:
        A list of CommentEntry.

    Raises:
        ValueError: If start is after end.
    """
    if start is not None and end is not None and start > end:
        raise ValueError(f"start ({start}) must not be after end ({end}).")
    single_day = start is not None and start == end

    entries: list[CommentEntry] = []
    resolved = resolve_records(
        (r for r in records if _in_window(r.date, start, end)),
        comment_mode=comment_mode,
        schedule=schedule,
    )
    for record in resolved:
        entries.extend(_evaluation_entries(record, schedule))

    for incident in incidents:
        if not _in_window(incident.incident_date, start, end):
            continue
        text = _incident_text(incident)
        if not text:
            continue
        entries.append(
            CommentEntry(
                student_id=incident.student_id,
                date=incident.incident_date,
                source=CommentSource.INCIDENT,
                label=incident.incident_type or "Incident",
                text=text,
                supplementary=single_day,
            )
        )

    for contact in contacts:
        if not _in_window(contact.contact_date, start, end):
            continue
        if is_blank(contact.purpose_of_contact):
            continue
        entries.append(
            CommentEntry(
                student_id=contact.student_id,
                date=contact.contact_date,
                source=CommentSource.CONTACT,
                label=contact.contact_category or "Contact",
                text=contact.purpose_of_contact.strip(),
                supplementary=single_day,
            )
        )

    # sorted() is stable, so slot entries keep their schedule order
    if single_day:
        entries = sorted(entries, key=lambda e: e.supplementary)
    else:
        # One student's entries for a day stay together, students in first-seen order
        student_order = {sid: i for i, sid in enumerate(dict.fromkeys(e.student_id for e in entries))}
        entries = sorted(
            entries,
            key=lambda e: (e.date, student_order[e.student_id], _SOURCE_ORDER[e.source]),
        )

    logger.debug("Collected %d comment entries", len(entries))
    return entries


def comments_to_table(entries: Iterable[CommentEntry]) -> pa.Table:
    """Exports comment entries to a PyArrow Table (one row per entry)."""
    rows = [
        {
            "student_id": str(entry.student_id),
            "date": entry.date,
            "source": entry.source.value,
            "label": entry.label,
            "text": entry.text,
            "rating": entry.rating,
            "supplementary": entry.supplementary,
        }
        for entry in entries
    ]
    return pa.Table.from_pylist(rows, schema=COMMENT_TABLE_SCHEMA)
