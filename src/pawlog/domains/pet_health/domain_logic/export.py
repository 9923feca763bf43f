"""CSV and JSON exports of the local store."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any

from pawlog.core.storage.local_store import LocalStore
from pawlog.core.storage.models import COLLECTIONS, DAILY, DailyRecord
from pawlog.domains.pet_health.catalog import Catalog

DAILY_CSV_HEADERS = [
    "日付", "猫", "体重(kg)", "元気度", "食欲",
    "飲水量(cc)", "カリカリ(g)", "ウェット(g)", "チュール(本)", "おやつ(袋)",
    "尿回数", "便回数", "便の状態", "メモ",
]


def _cell(value: Any) -> str:
    """Spreadsheet cell text; zero and missing values both export blank."""
    if not value:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_daily_csv(store: LocalStore, catalog: Catalog, cat: str) -> str:
    """Daily records of one subject as CSV, oldest first, every cell quoted."""
    records = sorted(
        (
            DailyRecord.from_dict(value)
            for value in store.values(DAILY)
            if value.get("cat") == cat
        ),
        key=lambda r: r.date,
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(DAILY_CSV_HEADERS)
    for r in records:
        writer.writerow([
            r.date,
            catalog.subject_name(r.cat),
            _cell(r.weight),
            r.energy,
            r.appetite,
            _cell(r.water),
            _cell(r.dry_food),
            _cell(r.wet_food),
            _cell(r.churu),
            _cell(r.treats),
            _cell(r.urine_count),
            _cell(r.feces_count),
            r.feces_condition,
            r.memo,
        ])
    return buffer.getvalue().rstrip("\n")


def export_all_data(store: LocalStore) -> dict[str, Any]:
    """Every collection as stored, plus the export timestamp."""
    snapshot = store.snapshot()
    result: dict[str, Any] = {name: snapshot.get(name, {}) for name in COLLECTIONS}
    result["exportedAt"] = datetime.now(timezone.utc).isoformat()
    return result
