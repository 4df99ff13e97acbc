from ._daily_process import (
    calculate_daily_aggregate,
    calculate_overall_average,
    calculate_section_averages,
)
from ._resolver import (
    COMMENT_SEPARATOR,
    group_records,
    record_timestamp,
    resolve_daily_records,
    resolve_records,
)
from ._slot_utils import (
    SlotValueSource,
    count_completed_slots,
    extract_slot_value,
    extract_slot_value_with_source,
    is_slot_completed,
)
from .aggregation import aggregate_day, aggregate_range, iter_report_dates
from .comments import CommentEntry, CommentSource, collect_comments, comments_to_table
from .distribution import LowScoreFlag, low_score_flags, rating_distribution, time_slot_analysis
from .rounding import (
    ROUNDING_POLICIES,
    BandedRounding,
    RoundingPolicy,
    StandardRounding,
    get_rounding_policy,
)
from .student_comparison import COLUMN_AVERAGE_LABEL, compare_students

__all__ = [
    "aggregate_range",
    "aggregate_day",
    "iter_report_dates",
    "calculate_section_averages",
    "calculate_overall_average",
    "calculate_daily_aggregate",
    "extract_slot_value",
    "extract_slot_value_with_source",
    "SlotValueSource",
    "is_slot_completed",
    "count_completed_slots",
    "resolve_daily_records",
    "resolve_records",
    "group_records",
    "record_timestamp",
    "COMMENT_SEPARATOR",
    "collect_comments",
    "comments_to_table",
    "CommentEntry",
    "CommentSource",
    "rating_distribution",
    "time_slot_analysis",
    "low_score_flags",
    "LowScoreFlag",
    "RoundingPolicy",
    "StandardRounding",
    "BandedRounding",
    "ROUNDING_POLICIES",
    "get_rounding_policy",
    "compare_students",
    "COLUMN_AVERAGE_LABEL",
]
