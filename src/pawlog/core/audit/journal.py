"""Sync journal: diagnostic trail of remote mirror writes and reads.

Remote writes are fire-and-forget, so a record can exist locally and never
reach the spreadsheet. The journal records every attempt and its outcome so
that gap is at least visible. Nothing here retries.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pawlog.core.storage.database import PawlogDatabase

logger = logging.getLogger(__name__)


@dataclass
class SyncEvent:
    """A single journal entry."""

    direction: str                       # 'push' | 'pull'
    action: str                          # remote action name, e.g. 'saveDailyRecord'
    cat: str | None = None
    record_date: str | None = None
    status: str = "success"              # 'success' | 'failure' | 'empty'
    error_type: str | None = None
    duration_ms: float | None = None


class SyncJournal:
    """Records :class:`SyncEvent` rows in the ``sync_log`` table.

    Usage::

        journal = SyncJournal(db)
        journal.record(SyncEvent(direction="push", action="saveDailyRecord", cat="lucky"))
        journal.count_failures()
    """

    def __init__(self, database: PawlogDatabase) -> None:
        self._db = database

    def record(self, event: SyncEvent) -> str:
        """Insert an event and return its id ('' if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO sync_log
                   (id, timestamp, direction, action, cat, record_date,
                    status, error_type, duration_ms)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.direction,
                    event.action,
                    event.cat,
                    event.record_date,
                    event.status,
                    event.error_type,
                    event.duration_ms,
                ),
            )
            conn.commit()
        except sqlite3.Error:
            logger.exception("Failed to write sync journal entry; entry lost")
            return ""
        return event_id

    def get_events(
        self,
        *,
        action: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query journal entries, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if status:
            conditions.append("status = ?")
            params.append(status)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM sync_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_failures(self, *, direction: str | None = None) -> int:
        """How many remote calls failed (optionally only pushes or pulls)."""
        if direction:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM sync_log WHERE status = 'failure' AND direction = ?",
                (direction,),
            ).fetchone()
        else:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM sync_log WHERE status = 'failure'"
            ).fetchone()
        return row[0]
