"""MCP tools for period data, chart series and exports."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from pawlog.domains.pet_health.domain_logic import export
from pawlog.domains.pet_health.domain_logic.series import build_chart_series

if TYPE_CHECKING:
    from pawlog.domains.pet_health.catalog import Catalog
    from pawlog.domains.pet_health.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


def register_report_tools(
    mcp: FastMCP,
    engine: ReconciliationEngine,
    catalog: Catalog,
) -> None:
    """Register period, chart and export tools on the MCP server."""

    def unknown_subject(cat: str) -> str | None:
        if catalog.has_subject(cat):
            return None
        return json.dumps({
            "status": "error",
            "message": f"Unknown cat: {cat!r}",
            "known": sorted(catalog.subjects),
        })

    @mcp.tool
    async def get_period_data(ctx: Context, cat: str, start_date: str, end_date: str) -> str:
        """Per-day records for a date range (inclusive), for charts.

        Served from a 5-minute cache when possible, otherwise from the
        spreadsheet, otherwise rebuilt from local records.

        Args:
            cat: Cat id.
            start_date: First day (YYYY-MM-DD).
            end_date: Last day (YYYY-MM-DD).
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        try:
            data = await engine.get_period_data(cat, start_date, end_date)
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "ok", "days": data}, ensure_ascii=False)

    @mcp.tool
    async def get_chart_series(ctx: Context, cat: str, start_date: str, end_date: str) -> str:
        """Chart-ready series (weight, toilet counts, food, water, labs, medicines).

        Args:
            cat: Cat id.
            start_date: First day (YYYY-MM-DD).
            end_date: Last day (YYYY-MM-DD).
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        try:
            data = await engine.get_period_data(cat, start_date, end_date)
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        series = build_chart_series(data, medicine_keys=catalog.medicine_keys())
        return json.dumps({"status": "ok", "series": series}, ensure_ascii=False)

    @mcp.tool
    async def export_daily_csv(ctx: Context, cat: str) -> str:
        """Export a cat's daily records as CSV (oldest first).

        Args:
            cat: Cat id.
        """
        if (err := unknown_subject(cat)) is not None:
            return err
        csv_text = export.export_daily_csv(engine.store, catalog, cat)
        logger.info("Exported daily CSV for %s", cat)
        return json.dumps({"status": "ok", "csv": csv_text}, ensure_ascii=False)

    @mcp.tool
    async def export_all_data(ctx: Context) -> str:
        """Export every local collection as JSON."""
        return json.dumps({"status": "ok", "data": export.export_all_data(engine.store)}, ensure_ascii=False)
