"""
Delivery Planner
Tests — planner date synchronisation (pure functions, no DB).
"""

from datetime import date

import pytest

from app.services.planning_dates import (
    MAX_DURATION_DAYS,
    add_days,
    calculate_duration_days,
    coerce_duration,
    get_date_sync_updates,
    normalise_dates,
    to_iso,
)


class TestHelpers:
    def test_duration_is_inclusive(self):
        assert calculate_duration_days("2024-01-10", "2024-01-10") == 1
        assert calculate_duration_days("2024-01-10", "2024-01-15") == 6

    def test_duration_missing_date(self):
        assert calculate_duration_days(None, "2024-01-15") is None
        assert calculate_duration_days("garbage", "2024-01-15") is None

    def test_add_days(self):
        assert add_days("2024-02-28", 1) == "2024-02-29"
        assert add_days(date(2024, 12, 31), 1) == "2025-01-01"
        assert add_days("", 3) is None
        assert add_days("9999-12-31", 1) is None

    def test_to_iso_accepts_european_format(self):
        assert to_iso("15.03.2024") == "2024-03-15"
        assert to_iso("2024-03-15T10:00:00") == "2024-03-15"
        assert to_iso("not a date") is None

    @pytest.mark.parametrize("raw,expected", [
        (5, 5), ("7", 7), (0, 1), (-4, 1), ("abc", 1), (None, 1), ("", 1), (True, 1), (2.9, 2),
        ("inf", 1), (10**30, MAX_DURATION_DAYS),
    ])
    def test_coerce_duration(self, raw, expected):
        assert coerce_duration(raw) == expected


class TestStartDateChanged:
    def test_start_before_end_recomputes_duration(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15", "duration_days": 6}
        assert get_date_sync_updates("start_date", "2024-01-12", item) == {
            "start_date": "2024-01-12",
            "duration_days": 4,
        }

    def test_start_after_end_pulls_end_forward(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        assert get_date_sync_updates("start_date", "2024-01-20", item) == {
            "start_date": "2024-01-20",
            "end_date": "2024-01-20",
            "duration_days": 1,
        }

    def test_start_without_end_sets_single_day(self):
        assert get_date_sync_updates("start_date", "2024-05-01", {}) == {
            "start_date": "2024-05-01",
            "end_date": "2024-05-01",
            "duration_days": 1,
        }

    def test_clearing_start_keeps_end(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        updates = get_date_sync_updates("start_date", "", item)
        assert updates == {"start_date": None, "duration_days": None}
        assert "end_date" not in updates

    def test_invalid_start_is_treated_as_empty(self):
        updates = get_date_sync_updates("start_date", "31/31/2024", {"end_date": "2024-01-15"})
        assert updates == {"start_date": None, "duration_days": None}


class TestEndDateChanged:
    def test_end_after_start_recomputes_duration(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        assert get_date_sync_updates("end_date", "2024-01-19", item) == {
            "end_date": "2024-01-19",
            "duration_days": 10,
        }

    def test_end_before_start_is_clamped(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        assert get_date_sync_updates("end_date", "2024-01-05", item) == {
            "end_date": "2024-01-10",
            "duration_days": 1,
        }

    def test_end_without_start_only_sets_end(self):
        assert get_date_sync_updates("end_date", "2024-01-05", {"start_date": None}) == {
            "end_date": "2024-01-05",
        }

    def test_clearing_end(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        assert get_date_sync_updates("end_date", None, item) == {
            "end_date": None,
            "duration_days": None,
        }


class TestDurationChanged:
    def test_duration_moves_end(self):
        item = {"start_date": "2024-01-10", "end_date": "2024-01-15"}
        assert get_date_sync_updates("duration_days", 3, item) == {
            "duration_days": 3,
            "end_date": "2024-01-12",
        }

    def test_duration_coerced_to_one(self):
        item = {"start_date": "2024-01-10"}
        assert get_date_sync_updates("duration_days", 0, item) == {
            "duration_days": 1,
            "end_date": "2024-01-10",
        }

    def test_duration_without_start(self):
        assert get_date_sync_updates("duration_days", "4", {}) == {"duration_days": 4}

    def test_round_trip_through_end(self):
        """Editing duration then end must agree on the same triple."""
        item = {"start_date": "2024-03-01", "end_date": "2024-03-01"}
        first = get_date_sync_updates("duration_days", 10, item)
        item.update(first)
        second = get_date_sync_updates("end_date", item["end_date"], item)
        assert second["duration_days"] == 10


class TestOtherFields:
    def test_non_date_field_passes_through(self):
        assert get_date_sync_updates("name", "Renamed", {}) == {"name": "Renamed"}

    def test_accepts_model_like_objects(self):
        class Row:
            start_date = date(2024, 1, 1)
            end_date = date(2024, 1, 31)

        assert get_date_sync_updates("start_date", "2024-01-11", Row())["duration_days"] == 21


class TestNormaliseDates:
    def test_start_and_end(self):
        assert normalise_dates("2024-01-01", "2024-01-05") == {
            "start_date": date(2024, 1, 1),
            "end_date": date(2024, 1, 5),
            "duration_days": 5,
        }

    def test_start_and_duration(self):
        assert normalise_dates("2024-01-01", None, 3)["end_date"] == date(2024, 1, 3)

    def test_reversed_dates_clamp_end(self):
        out = normalise_dates("2024-01-10", "2024-01-01")
        assert out["end_date"] == date(2024, 1, 10)
        assert out["duration_days"] == 1

    def test_nothing_given(self):
        assert normalise_dates(None, None) == {
            "start_date": None, "end_date": None, "duration_days": None,
        }


class TestCalendarLimits:
    @pytest.mark.parametrize("start, duration", [
        ("2026-01-01", 10_000_000),
        ("9999-12-30", 5),
    ])
    def test_duration_past_last_date_clamps(self, start, duration):
        out = get_date_sync_updates("duration_days", duration, {"start_date": start})
        assert out["end_date"] == "9999-12-31"
        assert out["duration_days"] == calculate_duration_days(start, "9999-12-31")

    def test_normalise_clamps_end(self):
        out = normalise_dates("9999-12-01", None, 400)
        assert out["end_date"] == date(9999, 12, 31)
        assert out["duration_days"] == 31
