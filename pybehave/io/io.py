from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.csv as pv
import pyarrow.parquet as pq
from pandas.io.formats.style import Styler

from ..records import (
    ContactRecord,
    EvaluationRecord,
    IncidentRecord,
    RangeAggregate,
    Student,
)
from ..schedule import DEFAULT_SCHEDULE, Schedule
from ._io_core import _column_names, _load_rows, _resolve_column
from ._io_utils import (
    _clean_text,
    _parse_bool,
    _parse_date,
    _parse_datetime,
    _parse_id,
    _parse_time_slots,
    _validate_columns,
    _validate_export_target,
)

# Column aliases accepted by the loaders, first match wins
EVALUATION_DATE_ALIASES = ("date", "evaluation_date")
GENERAL_COMMENT_ALIASES = ("general_comments", "general_comment", "comments", "notes")

Source = str | pd.DataFrame | pa.Table | list[dict[str, Any]]


def load_evaluation_records(
    source: Source,
    student_id_col: str = "student_id",
    date_col: str | None = None,
    time_slots_col: str = "time_slots",
    comment_col: str | None = None,
    schedule: Schedule = DEFAULT_SCHEDULE,
    source_type: str | None = None,
    read_options: dict[str, Any] | None = None,
    verbosity: int = 0,
) -> list[EvaluationRecord]:
    """
    Loads and normalizes daily evaluation records from various sources.

    Each row becomes one EvaluationRecord; duplicates per (student, date) are
    kept as they are and resolved later by the aggregation functions.

    Args:
        source: Path to a CSV/Parquet file, a Pandas DataFrame, a PyArrow
                Table or a list of dicts.
        student_id_col: Name of the student id column.
        date_col: Name of the evaluation date column. If None, 'date' or
                  'evaluation_date' is used.
        time_slots_col: Name of the column holding the slot map (a dict, a
                        JSON string or a list of slot dicts).
        comment_col: Name of the general comment column. If None, the first
                     of 'general_comments', 'general_comment', 'comments',
                     'notes' present is used; the comment is empty otherwise.
        schedule: Schedule used to map legacy period keys and order slots.
        source_type: Optional hint for the source type ('csv', 'parquet',
                     'pandas', 'arrow', 'records'). If None, inferred.
        read_options: Optional dictionary of PyArrow reader options keyed by
                      'csv' or 'parquet'.
        verbosity: `<= 0` shows warnings for malformed slot data, `>= 1`
                   suppresses them.

    Returns:
        A list of EvaluationRecord, in source row order.

    Raises:
        FileNotFoundError: If the source path does not exist.
        ValueError: If required columns are missing, a date or id is missing
                    or unparseable, or the file cannot be read.
        TypeError: If the source type is unsupported or cannot be inferred.
    """
    if read_options is None:
        read_options = {}

    #####################################
    # 1. Detect Source Type & Load Rows #
    #####################################
    rows, _ = _load_rows(source, source_type, read_options)
    if not rows:
        return []

    ########################
    # 2. Validate Columns #
    ########################
    names = _column_names(rows)
    columns = {
        "student_id": _resolve_column(names, student_id_col, ()),
        "date": _resolve_column(names, date_col, EVALUATION_DATE_ALIASES),
        "time_slots": _resolve_column(names, time_slots_col, ()),
    }
    _validate_columns(names, columns, "evaluation")
    comment_column = _resolve_column(names, comment_col, GENERAL_COMMENT_ALIASES)

    #######################
    # 3. Normalize Rows #
    #######################
    records = []
    for i, row in enumerate(rows):
        student_id = _parse_id(row.get(columns["student_id"]), columns["student_id"])
        day = _parse_date(row.get(columns["date"]), columns["date"])
        time_slots = _parse_time_slots(
            row.get(columns["time_slots"]),
            schedule=schedule,
            context=f"row {i} (student {student_id}, {day})",
            verbosity=verbosity,
        )
        comment = _clean_text(row.get(comment_column)) if comment_column else None
        records.append(
            EvaluationRecord(
                student_id=student_id,
                date=day,
                time_slots=time_slots,
                general_comment=comment or "",
                updated_at=_parse_datetime(row.get("updated_at"), "updated_at"),
                created_at=_parse_datetime(row.get("created_at"), "created_at"),
                id=_clean_text(row.get("id")),
            )
        )
    return records


def load_incident_records(
    source: Source,
    source_type: str | None = None,
    read_options: dict[str, Any] | None = None,
) -> list[IncidentRecord]:
    """
    Loads incident reports. Requires 'student_id' and 'incident_date' columns;
    'incident_type', 'description', 'incident_time', 'action_taken' and
    'follow_up_notes' are optional.
    """
    rows, _ = _load_rows(source, source_type, read_options or {})
    if not rows:
        return []
    names = _column_names(rows)
    _validate_columns(
        names,
        {
            "student_id": _resolve_column(names, None, ("student_id",)),
            "incident_date": _resolve_column(names, None, ("incident_date", "date")),
        },
        "incident",
    )
    date_column = _resolve_column(names, None, ("incident_date", "date"))
    return [
        IncidentRecord(
            student_id=_parse_id(row.get("student_id"), "student_id"),
            incident_date=_parse_date(row.get(date_column), date_column),
            incident_type=_clean_text(row.get("incident_type")),
            description=_clean_text(row.get("description")),
            incident_time=_clean_text(row.get("incident_time")),
            action_taken=_clean_text(row.get("action_taken")),
            follow_up_notes=_clean_text(row.get("follow_up_notes")),
            id=_clean_text(row.get("id")),
        )
        for row in rows
    ]


def load_contact_records(
    source: Source,
    source_type: str | None = None,
    read_options: dict[str, Any] | None = None,
) -> list[ContactRecord]:
    """
    Loads contact log entries. Requires 'student_id' and 'contact_date' columns.
    """
    rows, _ = _load_rows(source, source_type, read_options or {})
    if not rows:
        return []
    names = _column_names(rows)
    _validate_columns(
        names,
        {
            "student_id": _resolve_column(names, None, ("student_id",)),
            "contact_date": _resolve_column(names, None, ("contact_date", "date")),
        },
        "contact",
    )
    date_column = _resolve_column(names, None, ("contact_date", "date"))
    return [
        ContactRecord(
            student_id=_parse_id(row.get("student_id"), "student_id"),
            contact_date=_parse_date(row.get(date_column), date_column),
            contact_category=_clean_text(row.get("contact_category")),
            contact_person_name=_clean_text(row.get("contact_person_name")),
            purpose_of_contact=_clean_text(row.get("purpose_of_contact")),
            id=_clean_text(row.get("id")),
        )
        for row in rows
    ]


def load_students(
    source: Source,
    source_type: str | None = None,
    read_options: dict[str, Any] | None = None,
) -> list[Student]:
    """
    Loads the student list. Requires an 'id' (or 'student_id') column;
    'student_name' and 'active' (default True) are optional.
    """
    rows, _ = _load_rows(source, source_type, read_options or {})
    if not rows:
        return []
    names = _column_names(rows)
    id_column = _resolve_column(names, None, ("id", "student_id"))
    _validate_columns(names, {"id": id_column}, "student")
    return [
        Student(
            id=_parse_id(row.get(id_column), id_column),
            student_name=_clean_text(row.get("student_name")) or "",
            active=_parse_bool(row.get("active"), default=True),
        )
        for row in rows
    ]


def export_aggregate_results(
    results: pa.Table | RangeAggregate,
    output_path: str | None = None,
    format: str = "dataframe",
    **kwargs: Any,
) -> pd.DataFrame | None:
    """
    Writes an aggregate export to CSV or Parquet, or hands it back as a DataFrame.

    A RangeAggregate is flattened with `RangeAggregate.to_table()` first. Files
    are written with the PyArrow writers, so null averages stay null.

    Args:
        results: Any table produced by the library (aggregate, comparison,
                 comments, distribution) or a RangeAggregate.
        output_path: Destination file. Needed for 'csv' and 'parquet'.
        format: 'dataframe' (default), 'csv' or 'parquet'.
        **kwargs: Forwarded to `Table.to_pandas`, `pyarrow.csv.write_csv` (a
                  `write_options` dict becomes `pyarrow.csv.WriteOptions`) or
                  `pyarrow.parquet.write_table`.

    Returns:
        The DataFrame for 'dataframe', None after writing a file.

    Raises:
        TypeError: If `results` is neither a PyArrow Table nor a RangeAggregate.
        ValueError: If `format` is unknown or `output_path` is missing.
    """
    if isinstance(results, RangeAggregate):
        results = results.to_table()
    if not isinstance(results, pa.Table):
        raise TypeError(
            f"Expected results to be a pyarrow.Table or RangeAggregate, got {type(results).__name__}"
        )

    _validate_export_target(format, output_path)

    if format == "dataframe":
        return results.to_pandas(**kwargs)
    elif format == "csv":
        write_options = pv.WriteOptions(**kwargs.pop("write_options", {}))
        pv.write_csv(results, output_path, write_options=write_options, **kwargs)
        return None
    else:
        pq.write_table(results, output_path, **kwargs)
        return None


def export_formatted_results(
    styler: Styler,
    output_path: str | None = None,
    format: str = "dataframe",
    **kwargs: Any,
) -> pd.DataFrame | None:
    """
    Exports the data behind a formatted view.

    Only the underlying data is exported to CSV or Parquet; display formatting
    such as rounding and missing-value sentinels is not carried over.

    Args:
        styler: The Pandas Styler returned by the visualisation helpers.
        output_path: Destination file. Needed for 'csv' and 'parquet'.
        format: 'csv', 'parquet' or 'dataframe' (default).
        **kwargs: Passed to DataFrame.to_csv / DataFrame.to_parquet.

    Returns:
        The underlying DataFrame for 'dataframe', otherwise None.

    Raises:
        TypeError: If `styler` is not a Pandas Styler object.
        ValueError: If `format` is invalid or `output_path` is missing.
    """
    if not isinstance(styler, Styler):
        raise TypeError(
            f"styler must be a pandas Styler, got {type(styler).__name__}"
        )

    _validate_export_target(format, output_path)

    df = styler.data

    if format == "dataframe":
        return df
    elif format == "csv":
        df.to_csv(output_path, **kwargs)
        return None
    else:
        df.to_parquet(output_path, **kwargs)
        return None
