from .io import (
    export_aggregate_results,
    export_formatted_results,
    load_contact_records,
    load_evaluation_records,
    load_incident_records,
    load_students,
)
from .store import EvaluationStore, TableStore, build_comment_input, build_range_report

__all__ = [
    "load_evaluation_records",
    "load_incident_records",
    "load_contact_records",
    "load_students",
    "export_aggregate_results",
    "export_formatted_results",
    "EvaluationStore",
    "TableStore",
    "build_range_report",
    "build_comment_input",
]
