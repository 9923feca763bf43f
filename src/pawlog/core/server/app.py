"""Pawlog MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from pawlog.core.audit.journal import SyncJournal
from pawlog.core.cache.period_cache import PeriodCache
from pawlog.core.config.settings import get_settings
from pawlog.core.remote import RemoteStore
from pawlog.core.remote.gateway import RemoteGateway
from pawlog.core.storage.backends import KeyValueBackend, MemoryBackend, SQLiteBackend
from pawlog.core.storage.database import PawlogDatabase
from pawlog.core.storage.encryption import BlobEncryptor, EncryptionError
from pawlog.core.storage.local_store import LocalStore
from pawlog.domains.pet_health.catalog import Catalog, load_catalog
from pawlog.domains.pet_health.engine import ReconciliationEngine
from pawlog.domains.pet_health.tools.record_tools import register_record_tools
from pawlog.domains.pet_health.tools.report_tools import register_report_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    store_override: LocalStore | None = None,
    remote_override: RemoteStore | None = None,
    cache_override: PeriodCache | None = None,
    catalog_override: Catalog | None = None,
) -> FastMCP:
    """Create and configure the pawlog MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the subject/medicine catalog
    3. Opens the local store (SQLite, optionally encrypted) and sync journal
    4. Creates the remote gateway and the period cache
    5. Wires the reconciliation engine
    6. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "Pawlog",
        instructions=(
            "Pet health notebook. Records daily wellness, toilet events, "
            "medication, clinic visits and lab results per cat, keeps them "
            "locally and mirrors them to a spreadsheet."
        ),
    )

    # --- Catalog ---
    catalog = catalog_override or load_catalog(settings.catalog_path or None)

    # --- Local store + sync journal ---
    journal: SyncJournal | None = None
    encrypted = False
    if store_override is not None:
        store = store_override
    else:
        database = PawlogDatabase(settings.db_path)
        database.initialize()
        journal = SyncJournal(database)
        backend: KeyValueBackend = SQLiteBackend(database)

        encryptor: BlobEncryptor | None = None
        if settings.encryption_key:
            try:
                encryptor = BlobEncryptor(settings.encryption_key)
                encrypted = True
            except EncryptionError as exc:
                logger.error("Failed to initialize encryption: %s", exc)
                logger.warning("Continuing with an in-memory store; data will not be kept")
                backend = MemoryBackend()

        store = LocalStore(backend, encryptor=encryptor)
        logger.info(
            "Local store ready: %s (schema v%d, encrypted=%s)",
            settings.db_path,
            database.get_schema_version(),
            encrypted,
        )

    # --- Remote gateway ---
    remote: RemoteStore
    if remote_override is not None:
        remote = remote_override
    else:
        remote = RemoteGateway(
            settings.remote_url,
            timeout=settings.remote_timeout_seconds,
            enabled=settings.use_remote,
            journal=journal,
        )
        if remote.enabled:
            logger.info("Remote sheet configured: %s", settings.remote_url)
        else:
            logger.info("Remote sheet disabled; running local-only")

    # --- Period cache + engine ---
    cache = cache_override or PeriodCache(settings.period_cache_ttl_seconds)
    engine = ReconciliationEngine(store, remote, cache)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "Pawlog",
            "version": VERSION,
            "subjects": sorted(catalog.subjects),
            "remote_enabled": remote.enabled,
            "pending_remote_writes": remote.pending_count,
            "period_cache_entries": len(cache),
            "storage_encrypted": encrypted,
        }
        if journal is not None:
            status["remote_failures"] = journal.count_failures()
        return status

    register_record_tools(server, engine, catalog)
    logger.info("Record tools registered")

    register_report_tools(server, engine, catalog)
    logger.info("Report tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
