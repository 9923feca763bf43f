"""Tests for CSV / JSON exports."""

from __future__ import annotations

from pawlog.core.storage.models import COLLECTIONS
from pawlog.domains.pet_health.domain_logic.export import (
    DAILY_CSV_HEADERS,
    export_all_data,
    export_daily_csv,
)


class TestDailyCsv:
    def test_header_only_when_empty(self, memory_store, catalog):
        csv_text = export_daily_csv(memory_store, catalog, "lucky")
        assert csv_text == ",".join(f'"{h}"' for h in DAILY_CSV_HEADERS)

    def test_rows_sorted_and_quoted(self, memory_store, catalog):
        memory_store.put("daily", "lucky_2025-11-21", {
            "cat": "lucky", "date": "2025-11-21", "weight": 4.25, "churu": 2,
        })
        memory_store.put("daily", "lucky_2025-11-20", {
            "cat": "lucky", "date": "2025-11-20", "weight": 4.0, "energy": "high",
            "urineCount": 0, "memo": 'said "meow", twice',
        })
        memory_store.put("daily", "mi_2025-11-20", {"cat": "mi", "date": "2025-11-20"})

        lines = export_daily_csv(memory_store, catalog, "lucky").split("\n")

        assert len(lines) == 3
        assert lines[1] == (
            '"2025-11-20","ラッキー","4","high","","","","","","","","","",'
            '"said ""meow"", twice"'
        )
        assert lines[2].startswith('"2025-11-21","ラッキー","4.25"')
        assert '"2",""' in lines[2]

    def test_zero_values_export_blank(self, memory_store, catalog):
        memory_store.put("daily", "mi_2025-11-22", {
            "cat": "mi", "date": "2025-11-22", "water": 0, "urineCount": 0, "fecesCount": 2,
        })
        row = export_daily_csv(memory_store, catalog, "mi").split("\n")[1]
        assert '"0"' not in row
        assert '"2"' in row

    def test_headers(self):
        assert len(DAILY_CSV_HEADERS) == 14
        assert DAILY_CSV_HEADERS[0] == "日付"
        assert DAILY_CSV_HEADERS[-1] == "メモ"


class TestAllData:
    def test_every_collection_present(self, memory_store):
        memory_store.put("toilet", "lucky_2025-11-20", [{"time": "08:00", "type": "urine"}])
        data = export_all_data(memory_store)
        for name in COLLECTIONS:
            assert name in data
        assert data["toilet"] == {"lucky_2025-11-20": [{"time": "08:00", "type": "urine"}]}
        assert data["daily"] == {}
        assert data["exportedAt"]

