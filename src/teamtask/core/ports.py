# src/teamtask/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the stores.

The stores depend on Protocols instead of concrete implementations.
This keeps the transport/persistence/rendering swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

JsonPayload = dict[str, Any]
# Decoded response body, shaped {"data": ...} on success.


class ApiClient(Protocol):
    """
    Transport contract consumed by the stores.

    Returns the decoded success payload or raises ApiError
    (NetworkFailure for status 0, RequestRejected for 4xx/5xx).
    """

    async def request(
            self,
            method: str,
            path: str,
            body: Mapping[str, Any] | None = None,
            query: Mapping[str, str] | None = None,
    ) -> JsonPayload: ...


class DurableStorage(Protocol):
    """Namespaced key/value persistence that survives a process restart."""

    def read(self, namespace: str) -> dict[str, Any] | None: ...
    def write(self, namespace: str, data: dict[str, Any]) -> None: ...


class ThemeSink(Protocol):
    """
    Global side effect for the theme (document-level attribute).

    The web client sets data-theme on the document root; console/demo runs use
    DocumentRoot from ui.overlay.
    """

    def set_attribute(self, name: str, value: str) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Timer = Callable[[float, Callable[[], None]], TimerHandle | None]
# (delay_seconds, callback) -> handle; asyncio's loop.call_later fits.


class CrudResource(Protocol):
    """List/create/update/delete wrapper a CollectionStore drives (TasksApi, TeamsApi)."""

    async def list(self, params: Mapping[str, str] | None = None) -> JsonPayload: ...
    async def create(self, data: Mapping[str, Any]) -> JsonPayload: ...
    async def update(self, item_id: str, data: Mapping[str, Any]) -> JsonPayload: ...
    async def delete(self, item_id: str) -> JsonPayload: ...
