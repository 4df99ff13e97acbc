from .visualisation import (
    format_aggregate_table,
    format_comparison_matrix,
    format_weekly_matrix,
    weekly_matrix_frame,
)

__all__ = [
    "format_aggregate_table",
    "format_comparison_matrix",
    "format_weekly_matrix",
    "weekly_matrix_frame",
]
