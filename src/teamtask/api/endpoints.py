# src/teamtask/api/endpoints.py

"""
Resource wrappers over the ApiClient port.

Each method returns the decoded payload ({"data": ...}) untouched; stores
decide which part of it they keep.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.ports import ApiClient, JsonPayload


class AuthApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def register(self, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("POST", "/auth/register", body=data)

    async def login(self, credentials: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("POST", "/auth/login", body=credentials)

    async def logout(self) -> JsonPayload:
        return await self._client.request("POST", "/auth/logout")

    async def profile(self) -> JsonPayload:
        return await self._client.request("GET", "/auth/me")

    async def status(self) -> JsonPayload:
        return await self._client.request("GET", "/auth/status")


class TasksApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def list(self, params: Mapping[str, str] | None = None) -> JsonPayload:
        return await self._client.request("GET", "/tasks", query=params or None)

    async def create(self, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("POST", "/tasks", body=data)

    async def update(self, task_id: str, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("PUT", f"/tasks/{task_id}", body=data)

    async def delete(self, task_id: str) -> JsonPayload:
        return await self._client.request("DELETE", f"/tasks/{task_id}")

    async def dashboard(self) -> JsonPayload:
        return await self._client.request("GET", "/tasks/dashboard")


class TeamsApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def list(self, params: Mapping[str, str] | None = None) -> JsonPayload:
        return await self._client.request("GET", "/teams", query=params or None)

    async def create(self, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("POST", "/teams", body=data)

    async def update(self, team_id: str, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("PUT", f"/teams/{team_id}", body=data)

    async def delete(self, team_id: str) -> JsonPayload:
        return await self._client.request("DELETE", f"/teams/{team_id}")

    # ---- members ----

    async def members(self, team_id: str) -> JsonPayload:
        return await self._client.request("GET", f"/teams/{team_id}/members")

    async def add_member(self, team_id: str, data: Mapping[str, Any]) -> JsonPayload:
        return await self._client.request("POST", f"/teams/{team_id}/members", body=data)

    async def update_member_role(self, team_id: str, member_id: str, role: str) -> JsonPayload:
        return await self._client.request(
            "PUT", f"/teams/{team_id}/members/{member_id}", body={"role": role}
        )

    async def remove_member(self, team_id: str, member_id: str) -> JsonPayload:
        return await self._client.request("DELETE", f"/teams/{team_id}/members/{member_id}")

    async def leave(self, team_id: str) -> JsonPayload:
        return await self._client.request("POST", f"/teams/{team_id}/members/leave")
