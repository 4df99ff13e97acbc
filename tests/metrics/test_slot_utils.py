"""
Tests for slot value extraction and slot completion.
"""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pybehave.metrics import (
    SlotValueSource,
    count_completed_slots,
    extract_slot_value,
    extract_slot_value_with_source,
    is_slot_completed,
)
from pybehave.metrics._slot_utils import extract_slot_values, parse_score
from pybehave.records import SlotRecord


class TestParseScore:
    @pytest.mark.parametrize("raw, expected", [(1, 1.0), (4, 4.0), ("3", 3.0), (" 2 ", 2.0), (2.5, 2.5)])
    def test_valid_scores(self, raw, expected):
        assert parse_score(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["AB", "NS", "A/B", "ab", "", "   ", None, True, False, float("nan"), float("inf"), 0, 5, -1, "abc", [3]],
    )
    def test_non_numeric_values_are_missing(self, raw):
        assert parse_score(raw) is None


class TestExtractSlotValue:
    def test_category_value_from_dict(self):
        slot = {"ai": 3, "pi": "AB", "ce": None}
        assert extract_slot_value(slot, "ai") == 3.0
        assert extract_slot_value(slot, "pi") is None
        assert extract_slot_value(slot, "ce") is None

    def test_category_value_from_slot_record(self):
        slot = SlotRecord(ai=2, pi=4, ce="NS")
        assert extract_slot_value(slot, "pi") == 4.0
        assert extract_slot_value(slot, "ce") is None

    def test_aliases_are_accepted(self):
        slot = {"adultInteraction": 4, "peer_interaction": "2", "classroomExpectations": 1}
        assert extract_slot_values(slot) == {"ai": 4.0, "pi": 2.0, "ce": 1.0}

    def test_legacy_rating_applies_to_every_category(self):
        slot = {"rating": 3}
        for category in ("ai", "pi", "ce"):
            value, source = extract_slot_value_with_source(slot, category)
            assert value == 3.0
            assert source is SlotValueSource.LEGACY

    def test_legacy_score_alias(self):
        assert extract_slot_value({"score": "2"}, "ce") == 2.0

    def test_legacy_rating_ignored_when_sections_present(self):
        slot = {"ai": 4, "rating": 1}
        assert extract_slot_value_with_source(slot, "ai") == (4.0, SlotValueSource.CATEGORY)
        assert extract_slot_value_with_source(slot, "pi") == (None, SlotValueSource.MISSING)

    def test_missing_slot(self):
        assert extract_slot_value_with_source(None, "ai") == (None, SlotValueSource.MISSING)
        assert extract_slot_value({}, "ai") is None

    def test_legacy_absent_code_normalised(self):
        slot = SlotRecord.from_mapping({"ai": "A/B", "pi": 3})
        assert slot.ai == "AB"
        assert extract_slot_value(slot, "ai") is None

    def test_unknown_category_raises(self):
        with pytest.raises(ValueError, match="Unknown section"):
            extract_slot_value({"ai": 3}, "xx")

    def test_input_not_modified(self):
        slot = {"ai": " 3 ", "pi": "A/B"}
        extract_slot_values(slot)
        assert slot == {"ai": " 3 ", "pi": "A/B"}

    @given(
        value=st.one_of(
            st.integers(min_value=-10, max_value=10),
            st.floats(allow_nan=True, allow_infinity=True),
            st.sampled_from(["AB", "NS", "A/B", "", " ", "x", "1", "4", "2.5"]),
            st.none(),
        )
    )
    @settings(max_examples=100, deadline=None)
    def test_extracted_value_is_none_or_in_range(self, value):
        result = extract_slot_value({"ai": value, "pi": 1}, "ai")
        assert result is None or (1.0 <= result <= 4.0 and not math.isnan(result))


class TestSlotCompletion:
    def test_all_sections_scored(self):
        assert is_slot_completed({"ai": 1, "pi": 2, "ce": 3})

    def test_status_codes_count_as_completed(self):
        assert is_slot_completed({"ai": "AB", "pi": "AB", "ce": "AB"})

    def test_partially_scored_is_not_completed(self):
        assert not is_slot_completed({"ai": 1, "pi": 2})

    def test_legacy_rating_is_completed(self):
        assert is_slot_completed({"rating": 4})

    def test_empty_and_missing(self):
        assert not is_slot_completed({})
        assert not is_slot_completed(None)

    def test_count_completed_slots(self):
        slots = {
            "8:30": {"ai": 1, "pi": 2, "ce": 3},
            "9:15": {"ai": 1},
            "10:00": {"rating": 2},
        }
        assert count_completed_slots(slots) == 2
        assert count_completed_slots({}) == 0
        assert count_completed_slots(None) == 0
