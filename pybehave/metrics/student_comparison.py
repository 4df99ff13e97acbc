"""
Student comparison utilities: the cross-student matrix of a range report.
"""

import warnings

import pyarrow as pa

from ..records import OVERALL_KEY, SECTION_KEYS, RangeAggregate

COLUMN_AVERAGE_LABEL = "Column Average"

COMPARISON_SCHEMA = pa.schema(
    [
        pa.field("student_id", pa.string()),
        pa.field("student", pa.string()),
        pa.field("category", pa.string()),
        pa.field("sum", pa.float64()),
        pa.field("count", pa.int64()),
        pa.field("average", pa.float64()),
        pa.field("aggregated_days", pa.int64()),
    ]
)


def compare_students(
    range_aggregate: RangeAggregate,
    student_labels: dict[str, str] | None = None,
    include: tuple[str, ...] | list[str] = (*SECTION_KEYS, OVERALL_KEY),
    include_column_average: bool = True,
    verbosity: int = 0,
) -> pa.Table:
    """
    Builds the student-by-category comparison matrix in long format.

    Args:
        range_aggregate: Result of `aggregate_range`.
        student_labels: Optional mapping of student_id -> display name. Ids
                        without a label are shown as the id itself.
        include: Categories to report, any of 'ai', 'pi', 'ce', 'overall'.
                 Each must have been aggregated in `range_aggregate`.
        include_column_average: If True (default), appends a
                                "Column Average" row per category, combining
                                every student count-weighted.
        verbosity: Controls warning verbosity. 0 shows warnings, >0 suppresses them.

    Returns:
        PyArrow Table with columns:
        - student_id: Student identifier (null for the column average rows)
        - student: Display label
        - category: 'ai', 'pi', 'ce' or 'overall'
        - sum, count: Pooled score sum and number of scores
        - average: sum / count, null when count is 0
        - aggregated_days: Days with data for the student (or any student)

        Students appear in the order of `range_aggregate.students`.

    Raises:
        TypeError: If input types are incorrect.
        ValueError: If a requested category was not aggregated.
    """
    # Input validation
    if not isinstance(range_aggregate, RangeAggregate):
        raise TypeError("range_aggregate must be a RangeAggregate.")

    if student_labels is not None:
        if not isinstance(student_labels, dict):
            raise TypeError("student_labels must be a dict of student_id -> label or None.")
        for student_id, label in student_labels.items():
            if not isinstance(label, str):
                raise TypeError(f"student_labels[{student_id!r}] must be a string.")
    else:
        student_labels = {}

    if isinstance(include, str) or not isinstance(include, (list, tuple)):
        raise TypeError("include must be a list or tuple of category names.")
    if len(include) == 0:
        raise ValueError("include must name at least one category.")
    available = [*range_aggregate.column_sections, OVERALL_KEY]
    missing = [c for c in include if c not in available]
    if missing:
        raise ValueError(
            f"Requested categories not aggregated: {missing}. Available: {available}"
        )

    if not isinstance(include_column_average, bool):
        raise TypeError("include_column_average must be a boolean.")

    # Students without any scored slot
    empty = [sid for sid, s in range_aggregate.students.items() if s.overall.count == 0]
    if empty and verbosity <= 0:
        warnings.warn(
            f"{len(empty)} student(s) have no numeric scores in the selected range: {empty}",
            UserWarning,
            stacklevel=2,
        )

    rows = []
    for student_id, student in range_aggregate.students.items():
        for category in include:
            section = student.overall if category == OVERALL_KEY else student.sections[category]
            rows.append(
                {
                    "student_id": str(student_id),
                    "student": student_labels.get(student_id, str(student_id)),
                    "category": category,
                    "sum": float(section.sum),
                    "count": int(section.count),
                    "average": section.average,
                    "aggregated_days": student.aggregated_days,
                }
            )

    if include_column_average:
        for category in include:
            section = (
                range_aggregate.column_overall
                if category == OVERALL_KEY
                else range_aggregate.column_sections[category]
            )
            rows.append(
                {
                    "student_id": None,
                    "student": COLUMN_AVERAGE_LABEL,
                    "category": category,
                    "sum": float(section.sum),
                    "count": int(section.count),
                    "average": section.average,
                    "aggregated_days": range_aggregate.aggregated_days,
                }
            )

    return pa.Table.from_pylist(rows, schema=COMPARISON_SCHEMA)
