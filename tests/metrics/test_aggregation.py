"""
Tests for range and day aggregation.
"""

import datetime as dt
import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pybehave.metrics import aggregate_day, aggregate_range, iter_report_dates
from pybehave.metrics._range_process_parallel import resolve_worker_count
from pybehave.records import EvaluationRecord, RangeAggregate, SlotRecord
from tests.schemas import aggregate_table_schema

MONDAY = dt.date(2025, 3, 3)
WEDNESDAY = dt.date(2025, 3, 5)
FRIDAY = dt.date(2025, 3, 7)
SATURDAY = dt.date(2025, 3, 8)
SUNDAY = dt.date(2025, 3, 9)


def _record(student, day, slots, updated=None, comment=""):
    return EvaluationRecord(
        student_id=student,
        date=day,
        time_slots={k: SlotRecord.from_mapping(v) for k, v in slots.items()},
        general_comment=comment,
        updated_at=updated,
    )


@pytest.fixture
def week_records():
    """Monday ai=[4,4] pi=[3] ce=[]; Wednesday ai=[2] pi=[2,2] ce=[1]."""
    return [
        _record(
            "s1",
            MONDAY,
            {
                "8:30": {"ai": 4, "pi": 3, "ce": "AB"},
                "9:15": {"ai": 4, "pi": "NS", "ce": "AB"},
            },
        ),
        _record(
            "s1",
            WEDNESDAY,
            {
                "8:30": {"ai": 2, "pi": 2, "ce": 1},
                "9:15": {"ai": "AB", "pi": 2, "ce": "NS"},
            },
        ),
    ]


class TestIterReportDates:
    def test_weekdays_only_by_default(self):
        dates = iter_report_dates(MONDAY, SUNDAY)
        assert dates == [MONDAY + dt.timedelta(days=i) for i in range(5)]

    def test_include_weekends(self):
        assert len(iter_report_dates(MONDAY, SUNDAY, include_weekends=True)) == 7

    def test_single_day(self):
        assert iter_report_dates(WEDNESDAY, WEDNESDAY) == [WEDNESDAY]

    def test_start_after_end_raises(self):
        with pytest.raises(ValueError):
            iter_report_dates(FRIDAY, MONDAY)

    def test_non_date_raises(self):
        with pytest.raises(TypeError):
            iter_report_dates("2025-03-03", FRIDAY)

    def test_datetimes_are_truncated(self):
        dates = iter_report_dates(dt.datetime(2025, 3, 3, 12), dt.datetime(2025, 3, 4, 8))
        assert dates == [MONDAY, MONDAY + dt.timedelta(days=1)]


class TestAggregateRange:
    def test_end_to_end_week(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY)
        student = result.students["s1"]

        assert student.sections["ai"].average == pytest.approx(10 / 3)
        assert student.sections["pi"].average == pytest.approx(7 / 3)
        assert student.sections["ce"].average == pytest.approx(1.0)
        assert student.overall.average == pytest.approx(18 / 7)
        assert round(student.overall.average, 2) == 2.57
        assert student.aggregated_days == 2
        assert set(student.daily) == {MONDAY, WEDNESDAY}

    def test_ce_absent_all_monday(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY)
        monday = result.students["s1"].daily[MONDAY]
        assert monday.sections["ce"].count == 0
        assert monday.sections["ce"].average is None

    def test_weekly_is_count_weighted(self):
        records = [
            _record("s1", MONDAY, {"8:30": {"ai": 4}}),
            _record(
                "s1",
                WEDNESDAY,
                {"8:30": {"ai": 2}, "9:15": {"ai": 2}, "10:00": {"ai": 2}},
            ),
        ]
        result = aggregate_range(records, MONDAY, FRIDAY)
        assert result.students["s1"].overall.average == pytest.approx(2.5)
        assert result.students["s1"].sections["ai"].average == pytest.approx(2.5)

    def test_weekend_only_data_is_not_iterated(self):
        records = [
            _record("s1", SATURDAY, {"8:30": {"ai": 4, "pi": 4, "ce": 4}}),
            _record("s1", SUNDAY, {"8:30": {"ai": 1, "pi": 1, "ce": 1}}),
        ]
        result = aggregate_range(records, MONDAY, SUNDAY)
        assert result.aggregated_days == 0
        assert result.students["s1"].overall.average is None
        assert SATURDAY not in result.dates

    def test_weekends_included_on_request(self):
        records = [_record("s1", SATURDAY, {"8:30": {"ai": 4, "pi": 4, "ce": 4}})]
        result = aggregate_range(records, MONDAY, SUNDAY, include_weekends=True)
        assert result.aggregated_days == 1
        assert result.students["s1"].overall.average == pytest.approx(4.0)
        assert "Saturday" in result.column_weekdays

    def test_duplicates_resolved_before_averaging(self):
        records = [
            _record("s1", MONDAY, {"8:30": {"ai": 1, "pi": 1, "ce": 1}}, updated=dt.datetime(2025, 3, 3, 9)),
            _record("s1", MONDAY, {"8:30": {"ai": 4, "pi": 4, "ce": 4}}, updated=dt.datetime(2025, 3, 3, 10)),
        ]
        result = aggregate_range(records, MONDAY, MONDAY)
        assert result.students["s1"].overall == result.students["s1"].daily[MONDAY].overall
        assert result.students["s1"].overall.count == 3
        assert result.students["s1"].overall.average == pytest.approx(4.0)

    def test_listed_student_without_records(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY, student_ids=["s1", "s9"])
        assert list(result.students) == ["s1", "s9"]
        empty = result.students["s9"]
        assert empty.aggregated_days == 0
        assert empty.overall.count == 0
        assert empty.overall.average is None
        assert all(s.average is None for s in empty.sections.values())

    def test_unlisted_students_are_ignored(self, week_records):
        extra = _record("s2", MONDAY, {"8:30": {"ai": 1}})
        result = aggregate_range([*week_records, extra], MONDAY, FRIDAY, student_ids=["s1"])
        assert list(result.students) == ["s1"]

    def test_records_outside_range_ignored(self, week_records):
        result = aggregate_range(week_records, WEDNESDAY, FRIDAY)
        assert set(result.students["s1"].daily) == {WEDNESDAY}

    def test_column_averages_are_count_weighted(self):
        records = [
            _record("s1", MONDAY, {"8:30": {"ai": 4, "pi": 4, "ce": 4}}),
            _record("s2", MONDAY, {"8:30": {"ai": 1}}),
        ]
        result = aggregate_range(records, MONDAY, FRIDAY)
        assert result.column_overall.count == 4
        assert result.column_overall.average == pytest.approx(13 / 4)
        assert result.column_sections["ai"].average == pytest.approx(2.5)
        assert result.column_sections["pi"].average == pytest.approx(4.0)
        assert result.column_weekdays["Monday"].average == pytest.approx(13 / 4)
        assert result.column_weekdays["Tuesday"].average is None

    def test_weekday_structure(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY)
        weekdays = result.students["s1"].weekdays
        assert list(weekdays) == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
        assert weekdays["Monday"]["ai"].average == pytest.approx(4.0)
        assert weekdays["Tuesday"]["overall"].average is None
        assert weekdays["Wednesday"]["ce"].average == pytest.approx(1.0)

    def test_weekday_pools_over_multiple_weeks(self):
        next_monday = MONDAY + dt.timedelta(days=7)
        records = [
            _record("s1", MONDAY, {"8:30": {"ai": 4}}),
            _record("s1", next_monday, {"8:30": {"ai": 2}, "9:15": {"ai": 2}}),
        ]
        result = aggregate_range(records, MONDAY, next_monday)
        monday = result.students["s1"].weekdays["Monday"]["overall"]
        assert monday.count == 3
        assert monday.average == pytest.approx(8 / 3)

    def test_category_subset(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY, categories=("ce",))
        assert list(result.students["s1"].sections) == ["ce"]
        assert result.students["s1"].overall.average == pytest.approx(1.0)

    def test_empty_records(self):
        result = aggregate_range([], MONDAY, FRIDAY)
        assert isinstance(result, RangeAggregate)
        assert result.students == {}
        assert result.column_overall.average is None
        assert result.aggregated_days == 0

    def test_start_after_end_raises(self, week_records):
        with pytest.raises(ValueError):
            aggregate_range(week_records, FRIDAY, MONDAY)

    @pytest.mark.parametrize(
        "kwargs, error",
        [
            ({"categories": ("ai", "bogus")}, ValueError),
            ({"comment_mode": "newest"}, ValueError),
            ({"include_weekends": "yes"}, TypeError),
            ({"student_ids": "s1"}, TypeError),
            ({"n_workers": 0}, ValueError),
            ({"n_workers": "2"}, TypeError),
        ],
    )
    def test_invalid_arguments(self, week_records, kwargs, error):
        with pytest.raises(error):
            aggregate_range(week_records, MONDAY, FRIDAY, **kwargs)

    def test_non_record_items_raise(self):
        with pytest.raises(TypeError):
            aggregate_range([{"student_id": "s1"}], MONDAY, FRIDAY)

    def test_inputs_not_mutated(self, week_records):
        before = list(week_records)
        aggregate_range(week_records, MONDAY, FRIDAY)
        assert week_records == before

    def test_parallel_matches_serial(self, week_records):
        records = week_records + [
            _record("s2", MONDAY, {"8:30": {"ai": 3, "pi": 3, "ce": 2}}),
            _record("s3", FRIDAY, {"8:30": {"rating": 2}}),
        ]
        serial = aggregate_range(records, MONDAY, FRIDAY)
        parallel = aggregate_range(records, MONDAY, FRIDAY, n_workers=2)
        assert list(parallel.students) == list(serial.students)
        assert parallel.to_table().equals(serial.to_table())

    def test_debug_logging(self, week_records, caplog):
        with caplog.at_level(logging.DEBUG, logger="pybehave.metrics"):
            aggregate_range(week_records, MONDAY, FRIDAY)
        assert any("s1" in message for message in caplog.messages)

    @given(
        daily_values=st.lists(
            st.lists(st.integers(min_value=1, max_value=4), min_size=0, max_size=7),
            min_size=5,
            max_size=5,
        )
    )
    @settings(max_examples=30, deadline=None)
    def test_range_equals_pooled_values(self, daily_values):
        keys = ["8:30", "9:15", "10:00", "10:45", "11:30", "1:00", "1:45"]
        records = [
            _record("s1", MONDAY + dt.timedelta(days=i), {keys[j]: {"ai": v} for j, v in enumerate(values)})
            for i, values in enumerate(daily_values)
        ]
        result = aggregate_range(records, MONDAY, FRIDAY)
        flat = [v for values in daily_values for v in values]
        overall = result.students["s1"].overall
        assert overall.count == len(flat)
        if flat:
            assert overall.average == pytest.approx(sum(flat) / len(flat))
        else:
            assert overall.average is None


class TestRangeTable:
    def test_table_validates_against_schema(self, week_records):
        result = aggregate_range(week_records, MONDAY, FRIDAY, student_ids=["s1", "s2"])
        df = result.to_table().to_pandas()
        aggregate_table_schema.validate(df)

    def test_column_rows_have_null_student(self, week_records):
        df = aggregate_range(week_records, MONDAY, FRIDAY).to_table().to_pandas()
        column_rows = df[df["student_id"].isna()]
        assert set(column_rows["scope"]) == {"weekday", "range"}
        overall = column_rows[(column_rows["scope"] == "range") & (column_rows["category"] == "overall")]
        assert overall["average"].iloc[0] == pytest.approx(18 / 7)

    def test_integer_student_ids_are_exported_as_strings(self):
        records = [_record(7, MONDAY, {"8:30": {"ai": 3}})]
        table = aggregate_range(records, MONDAY, FRIDAY).to_table()
        assert "7" in table.column("student_id").to_pylist()


class TestAggregateDay:
    def test_single_day(self, week_records):
        result = aggregate_day(week_records, WEDNESDAY)
        assert result["s1"].overall.count == 4
        assert result["s1"].sections["pi"].average == pytest.approx(2.0)

    def test_weekend_day_allowed(self):
        records = [_record("s1", SATURDAY, {"8:30": {"ai": 3}})]
        assert aggregate_day(records, SATURDAY)["s1"].sections["ai"].average == pytest.approx(3.0)

    def test_student_without_record_that_day(self, week_records):
        result = aggregate_day(week_records, dt.date(2025, 3, 4), student_ids=["s1"])
        assert not result["s1"].has_data
        assert result["s1"].overall.average is None


class TestResolveWorkerCount:
    def test_none_is_serial(self):
        assert resolve_worker_count(None, 10) == 1

    def test_capped_by_tasks(self):
        assert resolve_worker_count(8, 1) == 1

    def test_all_cpus(self):
        assert resolve_worker_count(-1, 1000) >= 1

    def test_invalid(self):
        with pytest.raises(ValueError):
            resolve_worker_count(-2, 3)
        with pytest.raises(TypeError):
            resolve_worker_count(True, 3)
