"""Local store of in-memory record collections persisted as JSON blobs.

Each collection (daily, toilet, medicine, hospital, labtest) is a mapping of
composite string key to record dict, serialized as a single JSON blob under
its own namespaced key (``pawlog_daily`` ...). The in-memory maps are the
source of truth for local reads; the backend only makes them durable.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from typing import Any

from pawlog.core.storage.backends import KeyValueBackend
from pawlog.core.storage.encryption import BlobEncryptor, EncryptionError
from pawlog.core.storage.models import COLLECTIONS

logger = logging.getLogger(__name__)

_PERSIST_ERRORS = (TypeError, ValueError, EncryptionError, sqlite3.Error, OSError)


class LocalStore:
    """Key → record storage for the five record collections.

    Failures to persist are logged and reported through the return value of
    :meth:`put`/:meth:`delete`; they never raise. The value stays in memory
    for the rest of the session either way.

    Usage::

        store = LocalStore(MemoryBackend())
        store.put("daily", "lucky_2025-11-20", {"weight": 4.2})
        store.get("daily", "lucky_2025-11-20")  # {"weight": 4.2}
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        namespace: str = "pawlog",
        encryptor: BlobEncryptor | None = None,
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._enc = encryptor
        self._data: dict[str, dict[str, Any]] = {
            name: self._load(name) for name in COLLECTIONS
        }

    def storage_key(self, collection: str) -> str:
        return f"{self._namespace}_{collection}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, key: str) -> Any | None:
        """Return a copy of the record stored under ``key``, or None."""
        value = self._collection(collection).get(key)
        return copy.deepcopy(value) if value is not None else None

    def items(self, collection: str) -> list[tuple[str, Any]]:
        return [(k, copy.deepcopy(v)) for k, v in self._collection(collection).items()]

    def values(self, collection: str) -> list[Any]:
        return [copy.deepcopy(v) for v in self._collection(collection).values()]

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of every collection (used by the JSON export)."""
        return copy.deepcopy(self._data)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, collection: str, key: str, value: Any) -> bool:
        """Store ``value`` under ``key`` and persist the collection.

        Returns:
            True if the collection was persisted, False if persisting failed.
        """
        self._collection(collection)[key] = copy.deepcopy(value)
        return self._persist(collection)

    def delete(self, collection: str, key: str) -> bool:
        data = self._collection(collection)
        if key not in data:
            return False
        del data[key]
        return self._persist(collection)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collection(self, collection: str) -> dict[str, Any]:
        try:
            return self._data[collection]
        except KeyError:
            raise KeyError(f"Unknown collection: {collection!r}") from None

    def _load(self, collection: str) -> dict[str, Any]:
        name = self.storage_key(collection)
        try:
            blob = self._backend.read(name)
            if not blob:
                return {}
            if self._enc is not None:
                blob = self._enc.decrypt(blob)
            data = json.loads(blob)
        except (json.JSONDecodeError, *_PERSIST_ERRORS):
            logger.exception("Failed to load %s; starting with an empty collection", name)
            return {}
        if not isinstance(data, dict):
            logger.error("Ignoring %s: expected a JSON object, got %s", name, type(data).__name__)
            return {}
        return data

    def _persist(self, collection: str) -> bool:
        name = self.storage_key(collection)
        try:
            blob = json.dumps(self._data[collection], ensure_ascii=False, separators=(",", ":"))
            if self._enc is not None:
                blob = self._enc.encrypt(blob)
            self._backend.write(name, blob)
        except _PERSIST_ERRORS:
            logger.exception("Failed to persist %s", name)
            return False
        return True
