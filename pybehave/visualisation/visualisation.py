"""
Visualisation and display helpers
"""

from collections import Counter

import pandas as pd
import pyarrow as pa
from pandas.io.formats.style import Styler

from ..metrics.rounding import RoundingPolicy, StandardRounding
from ..metrics.student_comparison import COLUMN_AVERAGE_LABEL
from ..records import (
    OVERALL_KEY,
    SECTION_KEYS,
    SECTION_LABELS,
    RangeAggregate,
    SectionAverage,
    fold_section_averages,
)

# Columns of exported tables holding averages
DEFAULT_AVERAGE_COLS = ["average", "Average"]

WEEK_AVERAGE_LABEL = "Week Average"

CATEGORY_DISPLAY_LABELS = {**SECTION_LABELS, OVERALL_KEY: "Overall"}


def _unique_labels(student_ids: list, student_labels: dict[str, str]) -> list[str]:
    """
    Display labels for `student_ids`, in the same order.

    Labels shared by several students, or equal to the column average label,
    get the student id appended: "Alex (s2)".
    """
    labels = [student_labels.get(sid, str(sid)) for sid in student_ids]
    counts = Counter(labels)
    return [
        f"{label} ({sid})" if counts[label] > 1 or label == COLUMN_AVERAGE_LABEL else label
        for sid, label in zip(student_ids, labels)
    ]


def _check_policy(policy: RoundingPolicy | None) -> RoundingPolicy:
    if policy is None:
        return StandardRounding(decimal_places=1)
    if not isinstance(policy, RoundingPolicy):
        raise TypeError("'policy' must be a RoundingPolicy or None.")
    return policy


def format_aggregate_table(
    table: pa.Table,
    policy: RoundingPolicy | None = None,
    average_columns: list[str] | None = None,
    order_by: str | list[str] | None = None,
) -> Styler:
    """
    Converts an aggregate PyArrow Table to a styled Pandas DataFrame.

    Average columns are rounded through `policy`; missing averages show the
    policy's sentinel ("--" by default), never 0.

    Args:
        table: An aggregate, comparison or distribution table.
        policy: Rounding policy for the average columns. Defaults to
                StandardRounding with one decimal place.
        average_columns: Columns to format. If None, any of DEFAULT_AVERAGE_COLS
                         present in the table.
        order_by: Column name(s) to sort by before styling. If None, the table
                  order is kept.

    Returns:
        A pandas Styler object ready for display in environments like Jupyter.

    Raises:
        TypeError: If 'table' is not a PyArrow Table, 'policy' is not a
                   RoundingPolicy, or 'order_by' is not a string/list.
        ValueError: If 'order_by' or 'average_columns' name unknown columns.
        RuntimeError: If DataFrame conversion fails.
    """
    if not isinstance(table, pa.Table):
        raise TypeError("Input 'table' must be a PyArrow Table.")
    policy = _check_policy(policy)

    try:
        df = table.to_pandas()
    except Exception as e:
        raise RuntimeError(
            f"Failed to convert PyArrow Table to Pandas DataFrame: {e}"
        ) from e

    if order_by is not None:
        if isinstance(order_by, str):
            order_by = [order_by]
        elif not isinstance(order_by, list):
            raise TypeError("'order_by' must be a string, list of strings, or None.")
        missing_cols = [col for col in order_by if col not in df.columns]
        if missing_cols:
            raise ValueError(
                f"Columns {missing_cols} not found in table. Available columns: {df.columns.tolist()}"
            )
        df = df.sort_values(by=order_by, kind="stable").reset_index(drop=True)

    if average_columns is None:
        average_columns = [col for col in DEFAULT_AVERAGE_COLS if col in df.columns]
    else:
        missing_cols = [col for col in average_columns if col not in df.columns]
        if missing_cols:
            raise ValueError(
                f"Columns {missing_cols} not found in table. Available columns: {df.columns.tolist()}"
            )

    styler = df.style
    if average_columns:
        styler = styler.format(
            policy.format, subset=average_columns, na_rep=policy.missing_label
        )
    return styler


def format_comparison_matrix(
    comparison: pa.Table,
    policy: RoundingPolicy | None = None,
    use_display_labels: bool = True,
) -> Styler:
    """
    Pivots a `compare_students` table into a student x category matrix.

    Rows follow the student order of the comparison table, with the
    "Column Average" row last. Columns follow the category order of the table.
    Students sharing a display label are told apart by their id.

    Raises:
        TypeError: If 'comparison' is not a PyArrow Table.
        ValueError: If required comparison columns are missing.
    """
    if not isinstance(comparison, pa.Table):
        raise TypeError("Input 'comparison' must be a PyArrow Table.")
    policy = _check_policy(policy)

    required = {"student", "category", "average"}
    missing_cols = required - set(comparison.column_names)
    if missing_cols:
        raise ValueError(f"Comparison table missing required columns: {missing_cols}")

    df = comparison.to_pandas()
    categories = list(dict.fromkeys(df["category"]))
    # Column average rows carry a null student_id
    if "student_id" in df.columns:
        is_column = df["student_id"].isna()
    else:
        is_column = df["student"] == COLUMN_AVERAGE_LABEL
        df = df.assign(student_id=df["student"])

    students = df[~is_column]
    student_ids = list(dict.fromkeys(students["student_id"]))
    labels = dict(zip(students["student_id"], students["student"]))

    frames = []
    if student_ids:
        student_rows = students.pivot(index="student_id", columns="category", values="average")
        student_rows = student_rows.reindex(index=student_ids, columns=categories)
        student_rows.index = _unique_labels(student_ids, labels)
        frames.append(student_rows)
    if is_column.any():
        column_row = df[is_column].set_index("category")["average"].reindex(categories)
        frames.append(column_row.to_frame(COLUMN_AVERAGE_LABEL).T)
    if frames:
        matrix = pd.concat(frames).astype(float)
    else:
        matrix = pd.DataFrame(columns=categories, dtype=float)
    if use_display_labels:
        matrix = matrix.rename(columns=CATEGORY_DISPLAY_LABELS)
    matrix.columns.name = None
    matrix.index.name = None

    return matrix.style.format(policy.format, na_rep=policy.missing_label)


def _weekday_section(stats, category: str) -> SectionAverage:
    if stats is None:
        return SectionAverage()
    return stats.get(category, SectionAverage())


def weekly_matrix_frame(
    range_aggregate: RangeAggregate,
    category: str = OVERALL_KEY,
    student_labels: dict[str, str] | None = None,
) -> pd.DataFrame:
    """
    Unformatted student x weekday matrix of averages for one category.

    Columns are the iterated weekday names followed by "Week Average" (the
    count-weighted range value). The last row is the "Column Average".
    Missing values are NaN. Students sharing a display label are told apart
    by their id.
    """
    if not isinstance(range_aggregate, RangeAggregate):
        raise TypeError("range_aggregate must be a RangeAggregate.")
    if category != OVERALL_KEY and category not in range_aggregate.column_sections:
        raise ValueError(
            f"Category '{category}' was not aggregated. Expected one of "
            f"{[*range_aggregate.column_sections, OVERALL_KEY]}."
        )
    student_labels = student_labels or {}
    weekdays = list(range_aggregate.column_weekdays)

    def _range_value(student) -> SectionAverage:
        return student.overall if category == OVERALL_KEY else student.sections[category]

    rows = []
    for student in range_aggregate.students.values():
        row = {
            name: _weekday_section(student.weekdays.get(name), category).average
            for name in weekdays
        }
        row[WEEK_AVERAGE_LABEL] = _range_value(student).average
        rows.append(row)

    students = list(range_aggregate.students.values())
    column_row = {
        name: fold_section_averages(
            _weekday_section(s.weekdays.get(name), category) for s in students
        ).average
        for name in weekdays
    }
    column_row[WEEK_AVERAGE_LABEL] = fold_section_averages(
        _range_value(s) for s in students
    ).average
    index = [*_unique_labels(list(range_aggregate.students), student_labels), COLUMN_AVERAGE_LABEL]
    df = pd.DataFrame([*rows, column_row], index=index, columns=[*weekdays, WEEK_AVERAGE_LABEL])
    return df.astype(float)


def format_weekly_matrix(
    range_aggregate: RangeAggregate,
    policy: RoundingPolicy | None = None,
    category: str = OVERALL_KEY,
    student_labels: dict[str, str] | None = None,
) -> Styler:
    """
    Student x weekday matrix for one category, rounded through `policy`.

    Days without data show the policy's sentinel.

    Args:
        range_aggregate: Result of `aggregate_range`.
        policy: Rounding policy. Defaults to StandardRounding with one decimal.
        category: 'ai', 'pi', 'ce' or 'overall' (default).
        student_labels: Optional student_id -> display name.

    Returns:
        A pandas Styler.

    Raises:
        TypeError: If inputs have the wrong types.
        ValueError: If `category` was not aggregated.
    """
    policy = _check_policy(policy)
    if category not in (*SECTION_KEYS, OVERALL_KEY):
        raise ValueError(
            f"Unknown category '{category}'. Expected one of {[*SECTION_KEYS, OVERALL_KEY]}."
        )
    df = weekly_matrix_frame(range_aggregate, category=category, student_labels=student_labels)
    return df.style.format(policy.format, na_rep=policy.missing_label)
