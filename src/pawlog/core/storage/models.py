"""Record models for the pawlog local store.

Records are stored and mirrored with the camelCase field names used by the
remote spreadsheet (``dryFood``, ``urineCount`` ...). ``from_dict`` accepts
either those names or the Python attribute names, and applies the basic
type coercion the forms rely on: numeric strings become numbers, empty or
non-numeric values become ``None``.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Mapping

# Collection names (also the suffix of the namespaced storage key)
DAILY = "daily"
TOILET = "toilet"
MEDICINE = "medicine"
HOSPITAL = "hospital"
LABTEST = "labtest"

COLLECTIONS = (DAILY, TOILET, MEDICINE, HOSPITAL, LABTEST)

URINE_TYPES = frozenset({"urine", "both"})
FECES_TYPES = frozenset({"feces", "both"})


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def to_float(value: Any) -> float | None:
    """Coerce a form/sheet value to float, or None when absent or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> int | None:
    number = to_float(value)
    return int(number) if number is not None else None


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def to_list(value: Any) -> list[str]:
    """Coerce a list or a comma-separated sheet cell to a list of ids."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value if item not in (None, "")]
    return [str(value)]


_COERCERS = {
    "float": to_float,
    "int": to_int,
    "text": to_text,
    "list": to_list,
}


def _wire(name: str, kind: str = "text", **kwargs: Any) -> Any:
    """Declare a record field with its wire name and coercion kind."""
    if "default" not in kwargs and "default_factory" not in kwargs:
        if kind == "list":
            kwargs["default_factory"] = list
        elif kind == "text":
            kwargs["default"] = ""
        else:
            kwargs["default"] = None
    return field(metadata={"wire": name, "kind": kind}, **kwargs)


# ---------------------------------------------------------------------------
# Base record behaviour
# ---------------------------------------------------------------------------

class WireRecord:
    """Mixin providing wire-format conversion for record dataclasses."""

    collection: ClassVar[str] = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        kwargs: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            wire = f.metadata.get("wire", f.name)
            if wire in data:
                raw = data[wire]
            elif f.name in data:
                raw = data[f.name]
            else:
                continue
            kwargs[f.name] = _COERCERS[f.metadata.get("kind", "text")](raw)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            f.metadata.get("wire", f.name): _copy(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
        }

    def merged(self, incoming: Mapping[str, Any]):
        """Return a new record with ``incoming`` fields laid over this one."""
        data = self.to_dict()
        data.update(normalize_keys(type(self), incoming))
        return type(self).from_dict(data)


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


def normalize_keys(record_cls: type, incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Map attribute-name keys in ``incoming`` to wire names.

    Keys that are neither a wire name nor an attribute name are dropped.
    """
    by_attr = {f.name: f.metadata.get("wire", f.name) for f in fields(record_cls)}
    wire_names = set(by_attr.values())
    result: dict[str, Any] = {}
    for key, value in incoming.items():
        if key in wire_names:
            result[key] = value
        elif key in by_attr:
            result[by_attr[key]] = value
    return result


def wire_names(record_cls: type) -> list[str]:
    return [f.metadata.get("wire", f.name) for f in fields(record_cls)]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class DailyRecord(WireRecord):
    """One day of wellness metrics for one subject.

    ``urine_count``/``feces_count`` are overwritten from the toilet log
    whenever the derivation runs.
    """

    collection: ClassVar[str] = DAILY

    cat: str = _wire("cat")
    date: str = _wire("date")
    weight: float | None = _wire("weight", "float")
    energy: str = _wire("energy")
    appetite: str = _wire("appetite")
    water: float | None = _wire("water", "float")
    dry_food: float | None = _wire("dryFood", "float")
    wet_food: float | None = _wire("wetFood", "float")
    churu: int | None = _wire("churu", "int")  # treat sticks
    treats: int | None = _wire("treats", "int")  # treat bags
    urine_count: int | None = _wire("urineCount", "int")
    feces_count: int | None = _wire("fecesCount", "int")
    feces_condition: str = _wire("fecesCondition")
    memo: str = _wire("memo")
    drip: float | None = _wire("drip", "float")
    updated_at: str = _wire("updatedAt")


@dataclass
class ToiletRecord(WireRecord):
    """A single elimination event."""

    collection: ClassVar[str] = TOILET

    id: str = _wire("id")
    cat: str = _wire("cat")
    date: str = _wire("date")
    time: str = _wire("time")  # HH:MM
    type: str = _wire("type")  # urine | feces | both
    amount: str = _wire("amount", default="normal")  # normal | more | less | drops
    memo: str = _wire("memo")
    created_at: str = _wire("createdAt")

    @property
    def is_urine(self) -> bool:
        return self.type in URINE_TYPES

    @property
    def is_feces(self) -> bool:
        return self.type in FECES_TYPES


@dataclass
class MedicineRecord(WireRecord):
    """Medicines given in one dosing window of one day."""

    collection: ClassVar[str] = MEDICINE

    cat: str = _wire("cat")
    date: str = _wire("date")
    timing: str = _wire("timing")
    medicines: list[str] = _wire("medicines", "list")
    memo: str = _wire("memo")
    updated_at: str = _wire("updatedAt")


@dataclass
class HospitalRecord(WireRecord):
    """A clinic visit. Keyed by id, several visits may share a date."""

    collection: ClassVar[str] = HOSPITAL

    id: str = _wire("id")
    cat: str = _wire("cat")
    datetime: str = _wire("datetime")
    weight: float | None = _wire("weight", "float")
    treatments: list[str] = _wire("treatments", "list")
    drip_amount: float | None = _wire("dripAmount", "float")
    diagnosis: str = _wire("diagnosis")
    prescription: str = _wire("prescription")
    created_at: str = _wire("createdAt")

    def __post_init__(self) -> None:
        if "drip" not in self.treatments:
            self.drip_amount = None

    @property
    def date(self) -> str:
        return self.datetime[:10]


# Quantitative urinalysis fields that older records stored as text
# ("negative", "+", ...). Those values load as absent.
URINE_PAIRS = (
    ("urineGlucoseQual", "urineGlucose"),
    ("urineProteinQual", "urineProtein"),
    ("urineBilirubinQual", "urineBilirubin"),
    ("urineBloodQual", "urineBlood"),
    ("urineKetoneQual", "urineKetone"),
)


@dataclass
class LabTestRecord(WireRecord):
    """Blood panel and urinalysis results for one day."""

    collection: ClassVar[str] = LABTEST

    cat: str = _wire("cat")
    date: str = _wire("date")
    # CBC
    wbc: float | None = _wire("wbc", "float")
    hct: float | None = _wire("hct", "float")
    plt: float | None = _wire("plt", "float")
    # Chemistry
    glucose: float | None = _wire("glucose", "float")
    tp: float | None = _wire("tp", "float")
    alb: float | None = _wire("alb", "float")
    bun: float | None = _wire("bun", "float")
    creatinine: float | None = _wire("creatinine", "float")
    tbil: float | None = _wire("tbil", "float")
    ast: float | None = _wire("ast", "float")
    alt: float | None = _wire("alt", "float")
    alp: float | None = _wire("alp", "float")
    lipase: float | None = _wire("lipase", "float")
    cpk: float | None = _wire("cpk", "float")
    calcium: float | None = _wire("calcium", "float")
    phosphorus: float | None = _wire("phosphorus", "float")
    sodium: float | None = _wire("sodium", "float")
    potassium: float | None = _wire("potassium", "float")
    chloride: float | None = _wire("chloride", "float")
    # Urinalysis (qualitative + quantitative)
    urine_glucose_qual: str = _wire("urineGlucoseQual")
    urine_glucose: float | None = _wire("urineGlucose", "float")
    urine_protein_qual: str = _wire("urineProteinQual")
    urine_protein: float | None = _wire("urineProtein", "float")
    urine_bilirubin_qual: str = _wire("urineBilirubinQual")
    urine_bilirubin: float | None = _wire("urineBilirubin", "float")
    urine_ph: float | None = _wire("urinePh", "float")
    urine_sg: float | None = _wire("urineSg", "float")
    urine_blood_qual: str = _wire("urineBloodQual")
    urine_blood: float | None = _wire("urineBlood", "float")
    urine_ketone_qual: str = _wire("urineKetoneQual")
    urine_ketone: float | None = _wire("urineKetone", "float")
    urine_nitrite: str = _wire("urineNitrite")
    urine_wbc: str = _wire("urineWbc")
    memo: str = _wire("memo")
    updated_at: str = _wire("updatedAt")
