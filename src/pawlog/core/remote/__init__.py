"""Remote store access: abstraction layer over the spreadsheet endpoint."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteMirror(Protocol):
    """Write side of the remote store.

    The contract is fire-and-forget: ``dispatch`` returns before anything is
    sent and callers never learn whether the write arrived. An implementation
    with a retry queue can be dropped in behind this interface.
    """

    def dispatch(self, action: str, payload: dict[str, Any]) -> asyncio.Task | None:
        """Schedule a mirror write and return immediately."""
        ...

    async def drain(self) -> None:
        """Wait for every scheduled mirror write to settle."""
        ...


@runtime_checkable
class RemoteSource(Protocol):
    """Read side of the remote store."""

    async def fetch(
        self,
        action: str,
        params: dict[str, Any],
        *,
        expect_list: bool = False,
    ) -> Any | None:
        """Best-effort query. None means unavailable, malformed, or empty."""
        ...


@runtime_checkable
class RemoteStore(RemoteMirror, RemoteSource, Protocol):
    """Both sides of the remote store, plus the status the server reports."""

    @property
    def enabled(self) -> bool:
        ...

    @property
    def pending_count(self) -> int:
        ...
