"""Key-value backends for the local store.

A backend stores one text blob per name. The local store keeps one blob per
record collection, so any durable key-value storage can stand in for the
SQLite file: implement :class:`KeyValueBackend` and pass it to
:class:`~pawlog.core.storage.local_store.LocalStore`.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pawlog.core.storage.database import PawlogDatabase

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueBackend(Protocol):
    """Durable name → text blob storage."""

    def read(self, name: str) -> str | None:
        """Return the blob stored under ``name``, or None."""
        ...

    def write(self, name: str, blob: str) -> None:
        """Store ``blob`` under ``name``. May raise on storage failure."""
        ...


class MemoryBackend:
    """Process-local backend. Used in tests and when no database is wanted."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.blobs: dict[str, str] = dict(initial or {})

    def read(self, name: str) -> str | None:
        return self.blobs.get(name)

    def write(self, name: str, blob: str) -> None:
        self.blobs[name] = blob


class SQLiteBackend:
    """Backend over the ``kv_store`` table of a :class:`PawlogDatabase`."""

    def __init__(self, database: PawlogDatabase) -> None:
        self._db = database

    def read(self, name: str) -> str | None:
        row = self._db.connection.execute(
            "SELECT payload FROM kv_store WHERE name = ?", (name,)
        ).fetchone()
        return row[0] if row is not None else None

    def write(self, name: str, blob: str) -> None:
        conn = self._db.connection
        conn.execute(
            """INSERT INTO kv_store (name, payload, updated_at)
               VALUES (?, ?, datetime('now'))
               ON CONFLICT(name) DO UPDATE SET
                   payload = excluded.payload,
                   updated_at = excluded.updated_at""",
            (name, blob),
        )
        conn.commit()
        logger.debug("Wrote %s (%d bytes)", name, len(blob))
