"""
Record and aggregate types shared by the io and metrics packages.
"""

import datetime as dt
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pyarrow as pa

# Behavior sections scored per time slot
SECTION_KEYS: tuple[str, ...] = ("ai", "pi", "ce")
SECTION_LABELS: dict[str, str] = {
    "ai": "Adult Interaction (AI)",
    "pi": "Peer Interaction (PI)",
    "ce": "Classroom Expectations (CE)",
}
OVERALL_KEY = "overall"

# Non-numeric status codes (AB = absent, NS = not scored)
STATUS_CODES: tuple[str, ...] = ("AB", "NS")
LEGACY_STATUS_CODES: dict[str, str] = {"A/B": "AB"}

MISSING_DISPLAY = "--"

# Accepted field aliases, first match wins
_SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "ai": ("ai", "adultInteraction", "adult_interaction"),
    "pi": ("pi", "peerInteraction", "peer_interaction"),
    "ce": ("ce", "classroomExpectations", "classroom_expectations"),
}
_RATING_ALIASES: tuple[str, ...] = ("rating", "score", "value", "total")
_COMMENT_ALIASES: tuple[str, ...] = (
    "comment",
    "comments",
    "note",
    "notes",
    "observations",
    "summary",
    "detail",
)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def normalize_score(value: Any) -> Any:
    """
    Cleans a raw section score without interpreting it.

    Strips strings, maps legacy status codes ("A/B" -> "AB") and turns blank
    values into None. Numbers are passed through untouched.
    """
    if is_blank(value):
        return None
    if isinstance(value, str):
        text = value.strip()
        return LEGACY_STATUS_CODES.get(text.upper(), text)
    return value


def _first_present(raw: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = raw.get(name)
        if not is_blank(value):
            return value
    return None


@dataclass(frozen=True)
class SlotRecord:
    """
    Ratings for one time slot.

    Each section holds an integer 1-4, a status code ("AB", "NS"), or None.
    `rating` carries the single score stored by legacy records.
    """

    ai: Any = None
    pi: Any = None
    ce: Any = None
    rating: Any = None
    comment: str | None = None

    def section(self, category: str) -> Any:
        if category not in SECTION_KEYS:
            raise ValueError(
                f"Unknown section '{category}'. Expected one of {list(SECTION_KEYS)}."
            )
        return getattr(self, category)

    @property
    def has_section_values(self) -> bool:
        return any(not is_blank(getattr(self, key)) for key in SECTION_KEYS)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "SlotRecord":
        """Builds a slot from a raw dict, accepting the legacy field aliases."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise TypeError(f"Slot data must be a mapping, got {type(raw).__name__}.")
        sections = {
            key: normalize_score(_first_present(raw, aliases))
            for key, aliases in _SECTION_ALIASES.items()
        }
        comment = _first_present(raw, _COMMENT_ALIASES)
        return cls(
            **sections,
            rating=normalize_score(_first_present(raw, _RATING_ALIASES)),
            comment=str(comment).strip() if comment is not None else None,
        )


def as_slot_record(slot: "SlotRecord | Mapping[str, Any] | None") -> SlotRecord:
    if isinstance(slot, SlotRecord):
        return slot
    return SlotRecord.from_mapping(slot)


@dataclass(frozen=True)
class EvaluationRecord:
    """One stored daily evaluation for a student. Duplicates per (student_id, date) may exist."""

    student_id: str
    date: dt.date
    time_slots: Mapping[str, SlotRecord] = field(default_factory=dict)
    general_comment: str = ""
    updated_at: dt.datetime | None = None
    created_at: dt.datetime | None = None
    id: str | None = None


@dataclass(frozen=True)
class IncidentRecord:
    student_id: str
    incident_date: dt.date
    incident_type: str | None = None
    description: str | None = None
    incident_time: str | None = None
    action_taken: str | None = None
    follow_up_notes: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class ContactRecord:
    student_id: str
    contact_date: dt.date
    contact_category: str | None = None
    contact_person_name: str | None = None
    purpose_of_contact: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class Student:
    id: str
    student_name: str = ""
    active: bool = True


@dataclass(frozen=True)
class SectionAverage:
    """
    Sum and count of numeric scores. `average` is None when nothing was scored.

    Adding two SectionAverages pools their values, so folding days together
    weights each day by how many scores it contributed.
    """

    sum: float = 0.0
    count: int = 0

    @property
    def average(self) -> float | None:
        if self.count == 0:
            return None
        return self.sum / self.count

    def __add__(self, other: "SectionAverage") -> "SectionAverage":
        if not isinstance(other, SectionAverage):
            return NotImplemented
        return SectionAverage(sum=self.sum + other.sum, count=self.count + other.count)

    @classmethod
    def from_values(cls, values) -> "SectionAverage":
        values = list(values)
        return cls(sum=float(sum(values)), count=len(values))


def fold_section_averages(items) -> SectionAverage:
    total = SectionAverage()
    for item in items:
        total = total + item
    return total


@dataclass(frozen=True)
class DailyAggregate:
    """Per-student, per-date section averages plus the pooled overall average."""

    student_id: str
    date: dt.date
    sections: Mapping[str, SectionAverage]
    overall: SectionAverage
    slot_count: int = 0
    completed_slots: int = 0

    @property
    def has_data(self) -> bool:
        return self.overall.count > 0


@dataclass(frozen=True)
class StudentRangeAggregate:
    """
    Folded results for one student over a date range.

    `daily` only holds the iterated dates that had at least one record.
    `weekdays` maps a weekday name to {section or "overall": SectionAverage},
    pooled over every selected week.
    """

    student_id: str
    daily: Mapping[dt.date, DailyAggregate]
    sections: Mapping[str, SectionAverage]
    overall: SectionAverage
    weekdays: Mapping[str, Mapping[str, SectionAverage]]

    @property
    def aggregated_days(self) -> int:
        return len(self.daily)


@dataclass(frozen=True)
class RangeAggregate:
    """
    Aggregates for a set of students over an inclusive date range.

    Column values combine every student with the same count-weighted rule
    used for weekly averages.
    """

    start: dt.date
    end: dt.date
    dates: tuple[dt.date, ...]
    students: Mapping[str, StudentRangeAggregate]
    column_sections: Mapping[str, SectionAverage]
    column_overall: SectionAverage
    column_weekdays: Mapping[str, SectionAverage]

    @property
    def aggregated_days(self) -> int:
        """Number of distinct iterated dates with data for any student."""
        return len({day for student in self.students.values() for day in student.daily})

    def to_table(self) -> pa.Table:
        """
        Exports the aggregate in long format.

        Returns:
            A PyArrow Table with one row per (student, scope, key, category).
            `scope` is 'day' (key = ISO date), 'weekday' (key = weekday name)
            or 'range' (key = 'all'). Rows with a null `student_id` hold the
            column (cross-student) values. `average` is null when `count` is 0.
        """
        rows: list[dict[str, Any]] = []

        def _add(student_id, scope, key, category, section: SectionAverage):
            rows.append(
                {
                    "student_id": None if student_id is None else str(student_id),
                    "scope": scope,
                    "key": key,
                    "category": category,
                    "sum": float(section.sum),
                    "count": int(section.count),
                    "average": section.average,
                }
            )

        for student_id, student in self.students.items():
            for day, daily in sorted(student.daily.items()):
                for category, section in daily.sections.items():
                    _add(student_id, "day", day.isoformat(), category, section)
                _add(student_id, "day", day.isoformat(), OVERALL_KEY, daily.overall)
            for weekday, stats in student.weekdays.items():
                for category, section in stats.items():
                    _add(student_id, "weekday", weekday, category, section)
            for category, section in student.sections.items():
                _add(student_id, "range", "all", category, section)
            _add(student_id, "range", "all", OVERALL_KEY, student.overall)

        for weekday, section in self.column_weekdays.items():
            _add(None, "weekday", weekday, OVERALL_KEY, section)
        for category, section in self.column_sections.items():
            _add(None, "range", "all", category, section)
        _add(None, "range", "all", OVERALL_KEY, self.column_overall)

        return pa.Table.from_pylist(rows, schema=AGGREGATE_TABLE_SCHEMA)


AGGREGATE_TABLE_SCHEMA = pa.schema(
    [
        pa.field("student_id", pa.string()),
        pa.field("scope", pa.string()),
        pa.field("key", pa.string()),
        pa.field("category", pa.string()),
        pa.field("sum", pa.float64()),
        pa.field("count", pa.int64()),
        pa.field("average", pa.float64()),
    ]
)
