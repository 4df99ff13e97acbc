"""
Pandera schemas for pybehave test data validation.

This module defines schemas using pandera for validating the tables the
library exports and the raw evaluation frames the loaders accept.
"""

import pandas as pd
import pandera as pa

_SCOPES = ["day", "weekday", "range"]
_CATEGORIES = ["ai", "pi", "ce", "overall"]

# String columns are checked per element so object and string dtypes both pass
_is_text = pa.Check(lambda v: isinstance(v, str), element_wise=True)


# Raw evaluation rows as a caller would hand them to the loaders
evaluation_input_schema = pa.DataFrameSchema(
    {
        "student_id": pa.Column(checks=_is_text, nullable=False),
        "date": pa.Column("datetime64[ns]", nullable=False, coerce=True),
        "time_slots": pa.Column(nullable=True),
        "general_comments": pa.Column(checks=_is_text, nullable=True, required=False),
        "updated_at": pa.Column("datetime64[ns]", nullable=True, required=False, coerce=True),
        "created_at": pa.Column("datetime64[ns]", nullable=True, required=False, coerce=True),
    },
    strict=False,
)


aggregate_table_schema = pa.DataFrameSchema(
    {
        "student_id": pa.Column(checks=_is_text, nullable=True),
        "scope": pa.Column(checks=pa.Check.isin(_SCOPES), nullable=False),
        "key": pa.Column(checks=_is_text, nullable=False),
        "category": pa.Column(checks=pa.Check.isin(_CATEGORIES), nullable=False),
        "sum": pa.Column(float, pa.Check.greater_than_or_equal_to(0.0), nullable=False),
        "count": pa.Column(int, pa.Check.greater_than_or_equal_to(0), nullable=False),
        "average": pa.Column(float, pa.Check.in_range(1.0, 4.0), nullable=True),
    },
    checks=[
        # average is null exactly when nothing was scored
        pa.Check(
            lambda df: df["average"].isna() == (df["count"] == 0),
            element_wise=False,
        ),
    ],
    strict=True,
)
aggregate_table_schema.__doc__ = """
Schema for `RangeAggregate.to_table()` exports.

Columns:
    student_id: Student identifier, null for cross-student column rows
    scope: 'day', 'weekday' or 'range'
    key: ISO date, weekday name or 'all'
    category: 'ai', 'pi', 'ce' or 'overall'
    sum: Sum of the numeric scores
    count: Number of numeric scores
    average: sum / count in [1, 4], null when count is 0
"""


comparison_table_schema = pa.DataFrameSchema(
    {
        "student_id": pa.Column(checks=_is_text, nullable=True),
        "student": pa.Column(checks=_is_text, nullable=False),
        "category": pa.Column(checks=pa.Check.isin(_CATEGORIES), nullable=False),
        "sum": pa.Column(float, pa.Check.greater_than_or_equal_to(0.0), nullable=False),
        "count": pa.Column(int, pa.Check.greater_than_or_equal_to(0), nullable=False),
        "average": pa.Column(float, pa.Check.in_range(1.0, 4.0), nullable=True),
        "aggregated_days": pa.Column(int, pa.Check.greater_than_or_equal_to(0), nullable=False),
    },
    strict=True,
)


comment_table_schema = pa.DataFrameSchema(
    {
        "student_id": pa.Column(checks=_is_text, nullable=False),
        "date": pa.Column(nullable=False),
        "source": pa.Column(
            checks=pa.Check.isin(["slot", "general", "incident", "contact"]), nullable=False
        ),
        "label": pa.Column(checks=_is_text, nullable=False),
        "text": pa.Column(checks=[_is_text, pa.Check(lambda v: bool(v.strip()), element_wise=True)], nullable=False),
        "rating": pa.Column(float, pa.Check.in_range(1.0, 4.0), nullable=True),
        "supplementary": pa.Column(bool, nullable=False),
    },
    strict=True,
)


rating_distribution_schema = pa.DataFrameSchema(
    {
        "rating": pa.Column(int, pa.Check.isin([1, 2, 3, 4]), nullable=False),
        "count": pa.Column(int, pa.Check.greater_than_or_equal_to(0), nullable=False),
        "percentage": pa.Column(int, pa.Check.in_range(0, 100), nullable=False),
    },
    strict=True,
)


def make_evaluation_frame(rows: list[dict]) -> pd.DataFrame:
    """Builds an evaluation input frame and validates it against the input schema."""
    df = pd.DataFrame(rows)
    return evaluation_input_schema.validate(df)
