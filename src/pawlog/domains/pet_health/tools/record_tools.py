"""MCP tools for recording and reading pet-health records.

Each tool names its subject explicitly (``cat``) and returns a JSON string.
Dates default to today. Fields left as ``None`` keep whatever the stored
record already holds.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from pawlog.domains.pet_health.catalog import Catalog
    from pawlog.domains.pet_health.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


def _error(message: str, **extra: Any) -> str:
    return _dumps({"status": "error", "message": message, **extra})


def _provided(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _today() -> str:
    return date.today().isoformat()


def register_record_tools(
    mcp: FastMCP,
    engine: ReconciliationEngine,
    catalog: Catalog,
) -> None:
    """Register record entry and lookup tools on the MCP server."""

    def unknown_subject(cat: str) -> str | None:
        if catalog.has_subject(cat):
            return None
        return _error(f"Unknown cat: {cat!r}", known=sorted(catalog.subjects))

    @mcp.tool
    async def get_catalog(ctx: Context) -> str:
        """List the cats, medicines and the choices for every form field.

        Use this to find valid values for energy, appetite, stool condition,
        toilet type/amount, dosing timing and clinic treatments.
        """
        return _dumps({"status": "ok", **catalog.options()})

    # ------------------------------------------------------------------
    # Daily
    # ------------------------------------------------------------------

    @mcp.tool
    async def save_daily_record(
        ctx: Context,
        cat: str,
        record_date: str = "",
        weight: float | None = None,
        energy: str | None = None,
        appetite: str | None = None,
        water: float | None = None,
        dry_food: float | None = None,
        wet_food: float | None = None,
        churu: int | None = None,
        treats: int | None = None,
        urine_count: int | None = None,
        feces_count: int | None = None,
        feces_condition: str | None = None,
        memo: str | None = None,
    ) -> str:
        """Save the day's wellness record for a cat.

        Urine/feces counts are replaced by the toilet log's counts whenever
        the day has toilet entries.

        Args:
            cat: Cat id (e.g. 'lucky').
            record_date: Day (YYYY-MM-DD). Defaults to today.
            weight: Body weight in kg.
            energy: Energy level (e.g. 'high', 'normal', 'low').
            appetite: Appetite level.
            water: Water intake in cc.
            dry_food: Dry food in grams.
            wet_food: Wet food in grams.
            churu: Treat sticks given.
            treats: Treat bags given.
            urine_count: Urination count (ignored when toilet entries exist).
            feces_count: Defecation count (ignored when toilet entries exist).
            feces_condition: Stool condition.
            memo: Free text.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        record = await engine.save_daily_record(
            cat,
            record_date or _today(),
            _provided(
                weight=weight,
                energy=energy,
                appetite=appetite,
                water=water,
                dryFood=dry_food,
                wetFood=wet_food,
                churu=churu,
                treats=treats,
                urineCount=urine_count,
                fecesCount=feces_count,
                fecesCondition=feces_condition,
                memo=memo,
            ),
        )
        return _dumps({"status": "saved", "record": record.to_dict()})

    @mcp.tool
    async def get_daily_record(ctx: Context, cat: str, record_date: str = "") -> str:
        """Load a cat's daily record (local first, then the spreadsheet).

        Args:
            cat: Cat id.
            record_date: Day (YYYY-MM-DD). Defaults to today.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        day = record_date or _today()
        record = await engine.get_daily_record(cat, day)
        if record is None:
            return _dumps({"status": "not_found", "cat": cat, "date": day})
        return _dumps({"status": "ok", "record": record.to_dict()})

    # ------------------------------------------------------------------
    # Toilet
    # ------------------------------------------------------------------

    @mcp.tool
    async def add_toilet_record(
        ctx: Context,
        cat: str,
        time: str,
        type: str,
        record_date: str = "",
        amount: str = "normal",
        memo: str = "",
    ) -> str:
        """Log a toilet event and refresh the day's urine/feces counts.

        Args:
            cat: Cat id.
            time: Time of day (HH:MM).
            type: 'urine', 'feces' or 'both'.
            record_date: Day (YYYY-MM-DD). Defaults to today.
            amount: 'normal', 'more', 'less' or 'drops'.
            memo: Free text.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        if not time or not type:
            return _error("Both time and type are required")
        record = await engine.add_toilet_record(
            cat,
            record_date or _today(),
            {"time": time, "type": type, "amount": amount, "memo": memo},
        )
        return _dumps({"status": "saved", "record": record.to_dict()})

    @mcp.tool
    async def list_toilet_records(ctx: Context, cat: str, record_date: str = "") -> str:
        """List a day's toilet events, oldest first.

        Args:
            cat: Cat id.
            record_date: Day (YYYY-MM-DD). Defaults to today.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        day = record_date or _today()
        records = await engine.get_toilet_records(cat, day)
        return _dumps({
            "status": "ok",
            "cat": cat,
            "date": day,
            "records": [r.to_dict() for r in records],
        })

    @mcp.tool
    async def delete_toilet_record(
        ctx: Context,
        cat: str,
        record_id: str,
        record_date: str = "",
    ) -> str:
        """Delete a toilet event by id and refresh the day's counts.

        Args:
            cat: Cat id.
            record_id: Id returned when the event was added.
            record_date: Day of the event (YYYY-MM-DD). Defaults to today.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        day = record_date or _today()
        if await engine.delete_toilet_record(cat, day, record_id):
            return _dumps({"status": "deleted", "record_id": record_id, "date": day})
        return _dumps({
            "status": "not_found",
            "record_id": record_id,
            "message": "No toilet record with that id on that date.",
        })

    # ------------------------------------------------------------------
    # Medicine / hospital / lab tests
    # ------------------------------------------------------------------

    @mcp.tool
    async def save_medicine_record(
        ctx: Context,
        cat: str,
        timing: str,
        medicines: list[str] | None = None,
        record_date: str = "",
        memo: str = "",
    ) -> str:
        """Record the medicines given in one dosing window.

        Args:
            cat: Cat id.
            timing: Dosing window (e.g. 'morning', 'evening').
            medicines: Medicine ids given (see the catalog).
            record_date: Day (YYYY-MM-DD). Defaults to today.
            memo: Free text.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        if not timing:
            return _error("timing is required", timings=catalog.medicine_timings)
        record = await engine.save_medicine_record(
            cat,
            record_date or _today(),
            timing,
            {"medicines": medicines or [], "memo": memo},
        )
        return _dumps({"status": "saved", "record": record.to_dict()})

    @mcp.tool
    async def save_hospital_record(
        ctx: Context,
        cat: str,
        visit_datetime: str,
        weight: float | None = None,
        treatments: list[str] | None = None,
        drip_amount: float | None = None,
        diagnosis: str = "",
        prescription: str = "",
        record_id: str = "",
    ) -> str:
        """Record a clinic visit.

        Args:
            cat: Cat id.
            visit_datetime: Visit date and time (YYYY-MM-DDTHH:MM).
            weight: Weight measured at the clinic, in kg.
            treatments: Treatments given (e.g. 'drip', 'injection').
            drip_amount: Drip volume in cc; kept only when 'drip' is listed.
            diagnosis: Diagnosis text.
            prescription: Prescription text.
            record_id: Existing visit id to overwrite; empty creates a new visit.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        record = await engine.save_hospital_record(
            cat,
            visit_datetime,
            {
                "treatments": treatments or [],
                "diagnosis": diagnosis,
                "prescription": prescription,
                **_provided(weight=weight, dripAmount=drip_amount),
            },
            record_id=record_id or None,
        )
        return _dumps({"status": "saved", "record": record.to_dict()})

    @mcp.tool
    async def save_labtest_record(
        ctx: Context,
        cat: str,
        results: dict[str, Any],
        record_date: str = "",
        memo: str | None = None,
    ) -> str:
        """Record blood panel / urinalysis results for a day.

        Args:
            cat: Cat id.
            results: Field → value, e.g. {"creatinine": 2.1, "bun": 35,
                "urineProteinQual": "+", "urineProtein": 30}.
            record_date: Day (YYYY-MM-DD). Defaults to today.
            memo: Free text.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        fields = dict(results)
        if memo is not None:
            fields["memo"] = memo
        record = await engine.save_labtest_record(cat, record_date or _today(), fields)
        return _dumps({"status": "saved", "record": record.to_dict()})

    @mcp.tool
    async def get_labtest_record(ctx: Context, cat: str, record_date: str = "") -> str:
        """Load lab results for a day.

        Args:
            cat: Cat id.
            record_date: Day (YYYY-MM-DD). Defaults to today.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        day = record_date or _today()
        record = engine.get_labtest_record(cat, day)
        if record is None:
            return _dumps({"status": "not_found", "cat": cat, "date": day})
        return _dumps({"status": "ok", "record": record.to_dict()})
