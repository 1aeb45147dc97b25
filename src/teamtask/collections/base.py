# src/teamtask/collections/base.py

"""
Server-backed collection store.

Reload semantics:
- load() replaces the whole cached list on success and clears the error;
  on failure it records the error and keeps the previous (stale) list.
- create/update/delete run the mutation and, only if it succeeded, run exactly
  one load() with whatever query is active when the mutation resolves.
  A failed mutation records the error and re-raises; nothing is reloaded.
- Every load() takes a sequence token; a response that lands after a newer
  load() was issued is discarded (last-issued-wins), errors included.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

from ..api.client import unwrap
from ..core.errors import ClientError, MalformedResponse
from ..core.ports import ApiClient, CrudResource, JsonPayload
from ..core.store import RequestSequencer, Store

logger = logging.getLogger(__name__)

T = TypeVar("T")


def encode_body(data: Mapping[str, Any]) -> dict[str, Any]:
    """Enum members -> wire strings; None/"" optional fields are sent as None."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Enum):
            value = value.value
        elif value == "":
            value = None
        out[str(key)] = value
    return out


class CollectionStore(Store, ABC, Generic[T]):
    """
    Generic list + CRUD store. Subclasses name the resource and parse items.

    `resource` is the key of the list inside the response's data object;
    `resource_api()` supplies the endpoint wrapper the store drives.
    """

    resource: str = ""

    def __init__(self, api: ApiClient) -> None:
        super().__init__()
        self._resource = self.resource_api(api)
        self.items: list[T] = []
        self.error: str | None = None
        self._in_flight = 0
        self._loads = RequestSequencer()
        self._generation = 0

    # ---- hooks ----

    @abstractmethod
    def resource_api(self, api: ApiClient) -> CrudResource: ...

    @abstractmethod
    def parse_item(self, raw: Mapping[str, Any]) -> T: ...

    def active_query(self) -> dict[str, str] | None:
        return None

    def validate_create(self, data: Mapping[str, Any]) -> None:
        """Client-side precondition for create(); raise ValidationFailure to reject."""
        return

    # ---- state ----

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def _begin(self) -> None:
        self._in_flight += 1
        self._notify()

    def _end(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)

    def clear_error(self) -> None:
        self.error = None
        self._notify()

    def get(self, item_id: str) -> T | None:
        for item in self.items:
            if str(getattr(item, "id", None)) == str(item_id):
                return item
        return None

    def reset(self) -> None:
        self._loads.invalidate()
        self._generation += 1
        self.items = []
        self.error = None
        self._in_flight = 0
        self._notify()

    # ---- read ----

    def _parse_list(self, payload: JsonPayload) -> list[T]:
        raw_items = unwrap(payload, self.resource)
        if not isinstance(raw_items, list):
            raise MalformedResponse(200, f"Expected a list of {self.resource}.", payload)
        try:
            return [self.parse_item(raw) for raw in raw_items]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponse(200, f"Invalid {self.resource} entry in response.", payload) from e

    async def load(self) -> None:
        token = self._loads.issue()
        query = self.active_query()
        items: list[T] = []
        failure: ClientError | None = None

        self._begin()
        try:
            payload = await self._resource.list(query)
            items = self._parse_list(payload)
        except ClientError as e:
            failure = e
        finally:
            self._end()

        if not self._loads.is_current(token):
            logger.debug("Discarding stale %s response (token=%s)", self.resource, token)
            self._notify()
            return

        if failure is not None:
            logger.warning("Loading %s failed: %s", self.resource, failure.message)
            self.error = failure.message
        else:
            self.items = items
            self.error = None
            logger.debug("Loaded %d %s", len(items), self.resource)
        self._notify()

    # ---- mutations ----

    async def create(self, data: Mapping[str, Any]) -> JsonPayload:
        try:
            self.validate_create(data)
        except ClientError as e:
            self.error = e.message
            self._notify()
            raise
        body = encode_body(data)
        return await self._mutate("create", lambda: self._resource.create(body))

    async def update(self, item_id: str, data: Mapping[str, Any]) -> JsonPayload:
        body = encode_body(data)
        return await self._mutate(f"update {item_id}", lambda: self._resource.update(str(item_id), body))

    async def delete(self, item_id: str) -> JsonPayload:
        payload = await self._mutate(f"delete {item_id}", lambda: self._resource.delete(str(item_id)))
        self.after_delete(str(item_id))
        return payload

    def after_delete(self, item_id: str) -> None:
        return

    async def _mutate(
            self,
            action: str,
            call: Callable[[], Awaitable[JsonPayload]],
    ) -> JsonPayload:
        generation = self._generation
        self.error = None
        self._begin()
        try:
            payload = await call()
        except ClientError as e:
            logger.warning("%s %s failed: %s", self.resource, action, e.message)
            if self._generation == generation:
                self.error = e.message
            raise
        finally:
            self._end()
            self._notify()

        logger.info("%s %s ok", self.resource, action)
        if self._generation != generation:
            logger.debug("%s was reset during %s; skipping reload", self.resource, action)
            return payload
        await self.load()
        return payload
