"""Tests for chart series extraction and toilet counting."""

from __future__ import annotations

from pawlog.core.storage.models import ToiletRecord
from pawlog.domains.pet_health.domain_logic.series import build_chart_series
from pawlog.domains.pet_health.domain_logic.toilet_counts import (
    ToiletCounts,
    count_toilet_events,
    sort_by_time,
)


def _entry(day: str, daily=None, toilet=None, **extra):
    return {"date": day, "daily": daily, "toiletCount": toilet or {"urine": 0, "feces": 0}, **extra}


class TestChartSeries:
    def test_labels_and_alignment(self):
        series = build_chart_series([
            _entry("2025-11-09", {"weight": 4.1}),
            _entry("2025-11-10"),
            _entry("2025-11-11", {"weight": "4.3"}),
        ])
        assert series["dates"] == ["2025-11-09", "2025-11-10", "2025-11-11"]
        assert series["labels"] == ["11/9", "11/10", "11/11"]
        assert series["weight"] == [4.1, None, 4.3]

    def test_zero_and_missing_are_gaps(self):
        series = build_chart_series([_entry("2025-11-09", {"water": 0, "dryFood": "", "wetFood": 40})])
        assert series["water"] == [None]
        assert series["dry_food"] == [None]
        assert series["wet_food"] == [40.0]

    def test_counts_prefer_toilet_log(self):
        series = build_chart_series([
            _entry("2025-11-09", {"urineCount": 5, "fecesCount": 2}, {"urine": 3, "feces": 0}),
        ])
        assert series["urine"] == [3.0]
        assert series["feces"] == [2.0]

    def test_drip_from_daily_or_visits(self):
        series = build_chart_series([
            _entry("2025-11-09", {"drip": 100}),
            _entry("2025-11-10", None, drip=150.0),
            _entry("2025-11-11"),
        ])
        assert series["drip"] == [100.0, 150.0, None]

    def test_lab_series(self):
        series = build_chart_series([
            _entry("2025-11-09", labtest={"creatinine": 2.4, "bun": "38", "urineProtein": "negative"}),
            _entry("2025-11-10"),
        ])
        assert series["creatinine"] == [2.4, None]
        assert series["bun"] == [38.0, None]
        assert series["urine_protein"] == [None, None]

    def test_medicine_timelines(self):
        series = build_chart_series(
            [
                _entry("2025-11-09", medicine={"rapros": True}),
                _entry("2025-11-10", medicine={"rapros": True, "uroact": True}),
                _entry("2025-11-11"),
            ],
            medicine_keys=["rapros", "uroact"],
        )
        assert series["medicines"] == {
            "rapros": [True, True, False],
            "uroact": [False, True, False],
        }

    def test_entries_without_date_skipped(self):
        series = build_chart_series([{"daily": {"weight": 4}}, "junk", _entry("2025-11-09")])
        assert series["dates"] == ["2025-11-09"]

    def test_unparseable_date_label(self):
        assert build_chart_series([_entry("Nov 9")])["labels"] == ["Nov 9"]


class TestToiletCounts:
    def test_count_dicts_and_records(self):
        counts = count_toilet_events([
            {"type": "urine"},
            {"type": "both"},
            ToiletRecord(type="feces"),
            {"type": "unknown"},
        ])
        assert counts == ToiletCounts(urine=2, feces=2)
        assert counts.to_dict() == {"urine": 2, "feces": 2}

    def test_empty(self):
        assert count_toilet_events([]) == ToiletCounts()

    def test_sort_by_time(self):
        rows = [{"time": "21:00"}, {"time": "07:30"}, {"time": ""}, {"time": "08:00"}]
        assert [r["time"] for r in sort_by_time(rows)] == ["", "07:30", "08:00", "21:00"]
