"""
Internal core IO operations: loading raw rows from tables and files.
"""

import os
from collections.abc import Mapping
from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.csv as pv
import pyarrow.parquet as pq

SUPPORTED_SOURCE_TYPES = ("pandas", "records", "arrow", "csv", "parquet")


def _load_rows(
    source: str | pd.DataFrame | pa.Table | list[Mapping[str, Any]],
    resolved_source_type: str | None,
    read_options: dict[str, Any],
) -> tuple[list[dict[str, Any]], str]:
    """
    Loads raw rows from various sources into a list of dicts.

    Nested slot data is kept as Python objects: DataFrames and lists of dicts
    are not routed through PyArrow, since slot maps mix numbers and status
    codes. CSV and Parquet files are read with the PyArrow readers, where
    nested slot maps are stored as JSON strings.

    Args:
        source: Path to a CSV/Parquet file, a Pandas DataFrame, a PyArrow Table
                or a list of dicts.
        resolved_source_type: Explicit source type ('csv', 'parquet', 'pandas',
                              'arrow', 'records') or None.
        read_options: Dictionary containing specific read options for PyArrow
                      readers, keyed by 'csv' or 'parquet'.

    Returns:
        A tuple containing:
            - The loaded rows.
            - The resolved source type string.

    Raises:
        FileNotFoundError: If the source path does not exist.
        ValueError: If source type is invalid or reading fails.
        TypeError: If the source type is unsupported or cannot be inferred.
    """
    if resolved_source_type is not None and resolved_source_type not in SUPPORTED_SOURCE_TYPES:
        raise ValueError(
            f"Invalid source_type '{resolved_source_type}'. Must be one of {list(SUPPORTED_SOURCE_TYPES)}"
        )

    if isinstance(source, pd.DataFrame):
        if resolved_source_type not in (None, "pandas"):
            raise ValueError(
                f"Source is a DataFrame, but source_type is '{resolved_source_type}'"
            )
        return source.to_dict(orient="records"), "pandas"

    if isinstance(source, pa.Table):
        if resolved_source_type not in (None, "arrow"):
            raise ValueError(
                f"Source is a PyArrow Table, but source_type is '{resolved_source_type}'"
            )
        return source.to_pylist(), "arrow"

    if isinstance(source, list):
        if resolved_source_type not in (None, "records"):
            raise ValueError(
                f"Source is a list of records, but source_type is '{resolved_source_type}'"
            )
        for i, row in enumerate(source):
            if not isinstance(row, Mapping):
                raise TypeError(
                    f"source[{i}] must be a mapping, got {type(row).__name__}."
                )
        return [dict(row) for row in source], "records"

    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Source file not found: {path}")

        if resolved_source_type is None:
            _, ext = os.path.splitext(path)
            ext = ext.lower()
            if ext == ".csv":
                resolved_source_type = "csv"
            elif ext == ".parquet":
                resolved_source_type = "parquet"
            else:
                raise TypeError(
                    f"Cannot infer source type from file extension: {ext}. Please specify source_type."
                )

        if resolved_source_type == "csv":
            try:
                table = pv.read_csv(path, **read_options.get("csv", {}))
            except Exception as e:
                raise ValueError(
                    f"Failed to read CSV file '{path}' with PyArrow: {e}"
                ) from e
        elif resolved_source_type == "parquet":
            try:
                table = pq.read_table(path, **read_options.get("parquet", {}))
            except Exception as e:
                raise ValueError(
                    f"Failed to read Parquet file '{path}' with PyArrow: {e}"
                ) from e
        else:
            raise TypeError(
                f"Unsupported source_type for file path: '{resolved_source_type}'"
            )
        return table.to_pylist(), resolved_source_type

    raise TypeError(
        f"Unsupported source type: {type(source)}. Must be a file path, Pandas DataFrame, "
        "PyArrow Table or list of dicts."
    )


def _column_names(rows: list[dict[str, Any]]) -> set[str]:
    names: set[str] = set()
    for row in rows:
        names.update(row)
    return names


def _resolve_column(
    names: set[str],
    requested: str | None,
    aliases: tuple[str, ...],
) -> str | None:
    """
    Picks the column to read a field from.

    An explicitly requested column must exist; otherwise the first alias
    present wins, or None when no alias is present.

    Raises:
        ValueError: If `requested` is given but not among `names`.
    """
    if requested is not None:
        if requested not in names:
            raise ValueError(f"Column '{requested}' not found in the loaded data.")
        return requested
    for alias in aliases:
        if alias in names:
            return alias
    return None
