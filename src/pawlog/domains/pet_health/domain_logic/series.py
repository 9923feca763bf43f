"""Chart series extracted from period data.

Turns the per-day entries returned by a period read (remote aggregate or
local reconstruction, same shape) into aligned value lists, one per metric,
with ``None`` for days that have nothing to plot.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable

from pawlog.core.storage.models import to_float

logger = logging.getLogger(__name__)

LAB_SERIES = {
    "creatinine": "creatinine",
    "bun": "bun",
    "urine_protein": "urineProtein",
    "urine_blood": "urineBlood",
    "urine_sg": "urineSg",
}


def _label(day: str) -> str:
    try:
        d = date.fromisoformat(day[:10])
    except ValueError:
        return day
    return f"{d.month}/{d.day}"


def _positive(value: Any) -> float | None:
    number = to_float(value)
    return number if number is not None and number > 0 else None


def _daily(entry: dict[str, Any]) -> dict[str, Any]:
    return entry.get("daily") or {}


def _count(entry: dict[str, Any], kind: str, daily_field: str) -> float | None:
    """Toilet-log count when it has any events, else the daily form count."""
    toilet = entry.get("toiletCount") or {}
    derived = _positive(toilet.get(kind))
    if derived is not None:
        return derived
    return _positive(_daily(entry).get(daily_field))


def build_chart_series(
    period: Iterable[dict[str, Any]],
    *,
    medicine_keys: Iterable[str] = (),
) -> dict[str, Any]:
    """Build per-metric series from period entries.

    Args:
        period: Entries with ``date``, ``daily``, ``toiletCount`` and
            optionally ``medicine``, ``labtest``, ``drip``.
        medicine_keys: Medicines to build day-by-day timelines for.

    Returns:
        Dict with ``labels`` and one list per metric, plus a ``medicines``
        dict of key → list[bool].
    """
    entries = [e for e in period if isinstance(e, dict) and e.get("date")]
    keys = list(medicine_keys)

    series: dict[str, Any] = {
        "dates": [str(e["date"])[:10] for e in entries],
        "labels": [_label(str(e["date"])) for e in entries],
        "weight": [_positive(_daily(e).get("weight")) for e in entries],
        "urine": [_count(e, "urine", "urineCount") for e in entries],
        "feces": [_count(e, "feces", "fecesCount") for e in entries],
        "water": [_positive(_daily(e).get("water")) for e in entries],
        "dry_food": [_positive(_daily(e).get("dryFood")) for e in entries],
        "wet_food": [_positive(_daily(e).get("wetFood")) for e in entries],
        "churu": [_positive(_daily(e).get("churu")) for e in entries],
        "drip": [
            _positive(_daily(e).get("drip")) or _positive(e.get("drip"))
            for e in entries
        ],
    }
    for name, wire in LAB_SERIES.items():
        series[name] = [to_float((e.get("labtest") or {}).get(wire)) for e in entries]

    series["medicines"] = {
        key: [bool((e.get("medicine") or {}).get(key)) for e in entries]
        for key in keys
    }
    logger.debug("Built chart series for %d days", len(entries))
    return series
