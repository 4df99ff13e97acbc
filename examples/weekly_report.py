import datetime as dt
import sys

sys.path.insert(0, '..')

import pandas as pd

from pybehave import io as io
from pybehave import visualisation as vis
from pybehave.metrics import (
    collect_comments,
    compare_students,
    get_rounding_policy,
    low_score_flags,
    rating_distribution,
)

monday = dt.date(2025, 3, 3)
friday = dt.date(2025, 3, 7)

# A week of evaluations for two students, one of them saved twice on Monday
evaluations = pd.DataFrame(
    [
        {
            "student_id": "s1",
            "date": "2025-03-03",
            "time_slots": {"8:30": {"ai": 3, "pi": 3, "ce": 2}},
            "general_comments": "Slow start",
            "updated_at": "2025-03-03 09:00",
        },
        {
            "student_id": "s1",
            "date": "2025-03-03",
            "time_slots": {
                "8:30": {"ai": 4, "pi": 4, "ce": 4, "comment": "Settled quickly"},
                "9:15": {"ai": 3, "pi": 2, "ce": "A/B"},
            },
            "general_comments": "Good day overall",
            "updated_at": "2025-03-03 15:00",
        },
        {
            "student_id": "s1",
            "date": "2025-03-05",
            "time_slots": '{"period_1": {"rating": 2}, "period_2": {"rating": 3}}',
        },
        {
            "student_id": "s2",
            "date": "2025-03-04",
            "time_slots": {"10:00": {"ai": 1, "pi": 2, "ce": 1, "comment": "Left the room"}},
        },
    ]
)
students = [
    {"id": "s1", "student_name": "Alex", "active": True},
    {"id": "s2", "student_name": "Sam", "active": True},
]
incidents = [
    {
        "student_id": "s2",
        "incident_date": "2025-03-04",
        "incident_type": "Elopement",
        "description": "Left class without permission",
        "action_taken": "Returned with staff",
    }
]

store = io.TableStore(evaluations, students=students, incidents=incidents)
labels = {s.id: s.student_name for s in store.list_students()}

report = io.build_range_report(store, monday, friday)
print(f"Aggregated days: {report.aggregated_days}")

# Long-format export
print(io.export_aggregate_results(report).head(10))

# Weekly matrix with the banded display rounding
policy = get_rounding_policy("heartland")
print(vis.weekly_matrix_frame(report, student_labels=labels))
print(vis.format_weekly_matrix(report, policy=policy, student_labels=labels).to_string())

# Student comparison
comparison = compare_students(report, student_labels=labels)
print(vis.format_comparison_matrix(comparison).to_string())

# Distribution and low scores
records = store.list_evaluations(date_from=monday, date_to=friday)
print(rating_distribution(records).to_pandas())
for flag in low_score_flags(records, threshold=2):
    print(flag)

# Comment input for a narrative summary
for entry in collect_comments(records, incidents=store.list_incidents(), start=monday, end=friday):
    print(entry.date, entry.source.value, entry.label, entry.text)
