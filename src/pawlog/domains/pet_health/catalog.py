"""Catalog loader — reads the subject/medicine vocabulary from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.yaml"


class CatalogError(Exception):
    """Raised when the catalog file is missing or malformed."""


@dataclass
class Subject:
    id: str
    name: str
    icon: str = ""


@dataclass
class Medicine:
    key: str
    name: str
    kind: str  # 'prescription' | 'supplement'


@dataclass
class Catalog:
    """The enumerated vocabulary used by the tools and exports."""

    subjects: dict[str, Subject]
    medicines: list[Medicine] = field(default_factory=list)
    medicine_timings: list[str] = field(default_factory=list)
    treatments: list[str] = field(default_factory=list)
    energy_levels: list[str] = field(default_factory=list)
    appetite_levels: list[str] = field(default_factory=list)
    feces_conditions: list[str] = field(default_factory=list)
    toilet_types: list[str] = field(default_factory=list)
    toilet_amounts: list[str] = field(default_factory=list)

    def has_subject(self, subject_id: str) -> bool:
        return subject_id in self.subjects

    def subject_name(self, subject_id: str) -> str:
        """Display name for a subject, falling back to the raw id."""
        subject = self.subjects.get(subject_id)
        return subject.name if subject else subject_id

    def medicine_keys(self) -> list[str]:
        return [m.key for m in self.medicines]

    def options(self) -> dict[str, Any]:
        """The choices a form offers for each enumerated field."""
        return {
            "subjects": [
                {"id": s.id, "name": s.name, "icon": s.icon} for s in self.subjects.values()
            ],
            "medicines": [
                {"key": m.key, "name": m.name, "kind": m.kind} for m in self.medicines
            ],
            "medicine_timings": list(self.medicine_timings),
            "treatments": list(self.treatments),
            "energy_levels": list(self.energy_levels),
            "appetite_levels": list(self.appetite_levels),
            "feces_conditions": list(self.feces_conditions),
            "toilet_types": list(self.toilet_types),
            "toilet_amounts": list(self.toilet_amounts),
        }


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Parse a catalog YAML file (the packaged one when ``path`` is empty)."""
    path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise CatalogError(f"Cannot read catalog {path}: {exc}") from exc

    raw_subjects = data.get("subjects") or {}
    if not isinstance(raw_subjects, dict) or not raw_subjects:
        raise CatalogError(f"Catalog {path} defines no subjects")

    subjects = {
        str(sid): Subject(
            id=str(sid),
            name=str((info or {}).get("name", sid)),
            icon=str((info or {}).get("icon", "")),
        )
        for sid, info in raw_subjects.items()
    }

    try:
        medicines = [
            Medicine(key=str(item["key"]), name=str(item.get("name", item["key"])), kind=kind)
            for kind, items in (data.get("medicines") or {}).items()
            for item in items or []
        ]
    except (KeyError, TypeError, AttributeError) as exc:
        raise CatalogError(f"Malformed medicines section in {path}: {exc}") from exc

    catalog = Catalog(
        subjects=subjects,
        medicines=medicines,
        medicine_timings=list(data.get("medicine_timings") or []),
        treatments=list(data.get("treatments") or []),
        energy_levels=list(data.get("energy_levels") or []),
        appetite_levels=list(data.get("appetite_levels") or []),
        feces_conditions=list(data.get("feces_conditions") or []),
        toilet_types=list(data.get("toilet_types") or []),
        toilet_amounts=list(data.get("toilet_amounts") or []),
    )
    logger.info("Loaded catalog from %s (%d subjects)", path, len(subjects))
    return catalog
