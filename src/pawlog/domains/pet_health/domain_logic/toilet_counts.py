"""Urine/feces counts derived from the toilet log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pawlog.core.storage.models import FECES_TYPES, URINE_TYPES, ToiletRecord


@dataclass(frozen=True)
class ToiletCounts:
    urine: int = 0
    feces: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"urine": self.urine, "feces": self.feces}


def count_toilet_events(records: Iterable[ToiletRecord | Mapping[str, Any]]) -> ToiletCounts:
    """Count events; a 'both' event counts once for urine and once for feces."""
    urine = feces = 0
    for record in records:
        kind = record.type if isinstance(record, ToiletRecord) else record.get("type")
        if kind in URINE_TYPES:
            urine += 1
        if kind in FECES_TYPES:
            feces += 1
    return ToiletCounts(urine=urine, feces=feces)


def sort_by_time(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order toilet rows by HH:MM ascending (stable for equal times)."""
    return sorted(records, key=lambda r: str(r.get("time") or ""))
