"""HTTP gateway to the spreadsheet-backed remote store.

Writes are POSTed as a JSON body ``{"action": ..., "cat": ..., **fields}``
and never inspected. Reads are GETs with ``action``/``cat``/``date`` (or
``startDate``/``endDate``) query parameters returning JSON. Any failure on
either path is logged and reduced to ``False``/``None``; nothing raises out
of this module.

``requests`` is blocking, so calls run in a worker thread via
``asyncio.to_thread``. Results are handed back to the event loop and only
there applied to local state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import requests

from pawlog.core.audit.journal import SyncEvent, SyncJournal

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Action vocabulary (stable contract with the remote side)
# ------------------------------------------------------------------

SAVE_DAILY = "saveDailyRecord"
GET_DAILY = "getDailyRecord"
ADD_TOILET = "addToiletRecord"
GET_TOILET_LIST = "getToiletRecords"
SAVE_MEDICINE = "saveMedicineRecord"
SAVE_HOSPITAL = "saveHospitalRecord"
SAVE_LABTEST = "saveLabtestRecord"
GET_ALL_PERIOD_DATA = "getAllData"

ACTIONS = (
    SAVE_DAILY,
    GET_DAILY,
    ADD_TOILET,
    GET_TOILET_LIST,
    SAVE_MEDICINE,
    SAVE_HOSPITAL,
    SAVE_LABTEST,
    GET_ALL_PERIOD_DATA,
)


class RemoteGatewayError(Exception):
    """The remote answered with something unusable. Never leaves the gateway."""


class RemoteGateway:
    """Fire-and-forget writer and best-effort reader for the remote store.

    Usage::

        gateway = RemoteGateway("https://script.google.com/macros/s/.../exec")
        gateway.dispatch(SAVE_DAILY, {"cat": "lucky", "date": "2025-11-20", "weight": 4.2})
        rows = await gateway.fetch(GET_TOILET_LIST, {"cat": "lucky", "date": "2025-11-20"},
                                   expect_list=True)
        await gateway.drain()
    """

    def __init__(
        self,
        url: str,
        *,
        session: Any | None = None,
        timeout: float | None = None,
        enabled: bool = True,
        journal: SyncJournal | None = None,
    ) -> None:
        """Initialise the gateway.

        Args:
            url: Remote web-app URL. An empty URL disables the gateway.
            session: ``requests.Session`` (or compatible object with
                ``get``/``post``). A new session is created when omitted.
            timeout: Per-request timeout in seconds; None leaves it to the
                transport.
            enabled: Master switch for remote access.
            journal: Optional sync journal that records every outcome.
        """
        self._url = url
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._enabled = enabled and bool(url)
        self._journal = journal
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def url(self) -> str:
        return self._url

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def dispatch(self, action: str, payload: dict[str, Any]) -> asyncio.Task | None:
        """Schedule :meth:`post` on the running loop and return at once.

        Must be called from inside a running event loop. Returns the task
        (mostly for tests), or None when the gateway is disabled.
        """
        if not self._enabled:
            return None
        task = asyncio.get_running_loop().create_task(self.post(action, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def post(self, action: str, payload: dict[str, Any]) -> bool:
        """Send a write notification. True means only "the request did not throw"."""
        if not self._enabled:
            return False

        body = {"action": action, **payload}
        start = time.monotonic()
        try:
            await asyncio.to_thread(
                self._session.post, self._url, json=body, timeout=self._timeout
            )
        except (requests.RequestException, TypeError, ValueError) as exc:
            logger.warning("Remote write %s failed: %s", action, exc)
            self._journal_event("push", action, payload, "failure", start, exc)
            return False

        logger.debug("Remote write %s sent", action)
        self._journal_event("push", action, payload, "success", start)
        return True

    async def drain(self) -> None:
        """Wait until every dispatched write has settled."""
        while self._pending:
            results = await asyncio.gather(*list(self._pending), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("Remote write task crashed: %r", result)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def fetch(
        self,
        action: str,
        params: dict[str, Any],
        *,
        expect_list: bool = False,
    ) -> Any | None:
        """Query the remote store.

        Returns:
            The parsed JSON payload, or None if the gateway is disabled, the
            request or JSON parsing failed, the payload carries an ``error``
            field, or the shape is wrong (non-list when ``expect_list``).
            An empty object or empty list is returned as None too.
        """
        if not self._enabled:
            return None

        query = {"action": action, **params}
        start = time.monotonic()
        try:
            response = await asyncio.to_thread(
                self._session.get, self._url, params=query, timeout=self._timeout
            )
            response.raise_for_status()
            data = _check_payload(action, response.json(), expect_list=expect_list)
        except (requests.RequestException, ValueError, RemoteGatewayError) as exc:
            logger.warning("Remote read %s failed: %s", action, exc)
            self._journal_event("pull", action, params, "failure", start, exc)
            return None

        if not data:
            logger.debug("Remote read %s returned no data", action)
            self._journal_event("pull", action, params, "empty", start)
            return None

        logger.debug("Remote read %s ok", action)
        self._journal_event("pull", action, params, "success", start)
        return data

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _journal_event(
        self,
        direction: str,
        action: str,
        payload: dict[str, Any],
        status: str,
        start: float,
        exc: BaseException | None = None,
    ) -> None:
        if self._journal is None:
            return
        self._journal.record(SyncEvent(
            direction=direction,
            action=action,
            cat=payload.get("cat"),
            record_date=payload.get("date") or payload.get("datetime") or payload.get("startDate"),
            status=status,
            error_type=type(exc).__name__ if exc is not None else None,
            duration_ms=(time.monotonic() - start) * 1000,
        ))


def _check_payload(action: str, data: Any, *, expect_list: bool) -> Any:
    """Validate the shape of a parsed response body."""
    if isinstance(data, dict) and data.get("error"):
        raise RemoteGatewayError(f"{action} returned error: {_format_error(data['error'])}")
    if expect_list:
        if not isinstance(data, list):
            raise RemoteGatewayError(
                f"Expected JSON array from {action}, got {type(data).__name__}"
            )
    elif data is not None and not isinstance(data, dict):
        raise RemoteGatewayError(
            f"Expected JSON object from {action}, got {type(data).__name__}"
        )
    return data


def _format_error(error: Any) -> str:
    if isinstance(error, dict):
        msg = error.get("message") or error.get("code")
        return msg if isinstance(msg, str) and msg else str(error)
    return str(error)
