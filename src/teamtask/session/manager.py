# src/teamtask/session/manager.py

"""
Session manager: the authoritative source of "who is logged in".

Contract summary:
- probe() never raises; any failure degrades to "not authenticated".
- login()/register() record the error and re-raise so the auth form stays open.
- logout() notifies the server best-effort, then always clears local identity.
- Only `user` / `isAuthenticated` are durable (namespace "auth-storage").
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from ..api.client import describe, unwrap
from ..api.endpoints import AuthApi
from ..core.errors import ApiError, ClientError, MalformedResponse
from ..core.models import SessionStatus, UserProfile
from ..core.ports import ApiClient, DurableStorage, JsonPayload
from ..core.store import RequestSequencer, Store
from ..persistence import AUTH_NAMESPACE

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Session:
    user: UserProfile | None = None
    status: SessionStatus = SessionStatus.CHECKING
    error: str | None = None
    busy: bool = False

    @property
    def is_authenticated(self) -> bool:
        # Derived, so it can never disagree with `user`.
        return self.user is not None


# ---- durable boundary ----


def session_to_durable(session: Session) -> dict[str, Any]:
    return {
        "user": session.user.to_dict() if session.user is not None else None,
        "isAuthenticated": session.is_authenticated,
    }


def session_from_durable(data: Mapping[str, Any] | None) -> UserProfile | None:
    """Restore the persisted profile; anything inconsistent restores as logged out."""
    if not data or not data.get("isAuthenticated"):
        return None
    raw_user = data.get("user")
    if not isinstance(raw_user, Mapping):
        return None
    try:
        return UserProfile.from_api(raw_user)
    except (KeyError, TypeError, ValueError):
        logger.warning("Ignoring malformed persisted user profile")
        return None


def _profile_from(raw: Any) -> UserProfile:
    if not isinstance(raw, Mapping):
        raise MalformedResponse(200, "Response has no user profile.", raw)
    try:
        return UserProfile.from_api(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(200, "Response has an invalid user profile.", raw) from e


class SessionManager(Store):
    def __init__(self, api: ApiClient, storage: DurableStorage | None = None) -> None:
        super().__init__()
        self._auth = AuthApi(api)
        self._storage = storage
        restored = session_from_durable(storage.read(AUTH_NAMESPACE)) if storage is not None else None
        self._session = Session(user=restored, status=SessionStatus.CHECKING)
        # Any identity write issues/invalidates a token so an older probe cannot clobber it.
        self._identity = RequestSequencer()
        self._in_flight = 0
        self._probes_in_flight = 0

    # ---- read access ----

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> UserProfile | None:
        return self._session.user

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def error(self) -> str | None:
        return self._session.error

    # ---- internals ----

    def _set(self, **changes: Any) -> None:
        prev = self._session
        self._session = replace(prev, **changes)
        if prev.user != self._session.user:
            self._persist()
        self._notify()

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.write(AUTH_NAMESPACE, session_to_durable(self._session))
        except Exception:
            logger.exception("Failed to persist session")

    def _begin(self) -> None:
        self._in_flight += 1
        self._set(busy=True, error=None)

    def _end(self, **changes: Any) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        self._set(busy=self._in_flight > 0, **changes)

    # ---- actions ----

    async def probe(self) -> None:
        token = self._identity.issue()
        self._probes_in_flight += 1
        self._set(status=SessionStatus.CHECKING)

        user: UserProfile | None = None
        error: str | None = None
        try:
            payload = await self._auth.status()
            data = unwrap(payload)
            if isinstance(data, Mapping) and data.get("isAuthenticated"):
                user = _profile_from(data.get("user"))
        except ClientError as e:
            logger.warning("Auth status check failed: %s", e.message)
            error = e.message
        except Exception as e:
            logger.exception("Auth status check crashed")
            error = describe(e)
        finally:
            self._probes_in_flight -= 1

        status = SessionStatus.READY if self._probes_in_flight == 0 else SessionStatus.CHECKING
        if not self._identity.is_current(token):
            logger.debug("Discarding stale auth status response")
            self._set(status=status)
            return

        self._set(user=user, error=error, status=status)
        logger.info("Auth status: %s", f"authenticated as {user.email}" if user else "anonymous")

    async def login(self, credentials: Mapping[str, Any]) -> JsonPayload:
        return await self._authenticate("login", credentials)

    async def register(self, data: Mapping[str, Any]) -> JsonPayload:
        """Password strength is the caller's job (see session.validation)."""
        return await self._authenticate("register", data)

    async def _authenticate(self, action: str, body: Mapping[str, Any]) -> JsonPayload:
        self._identity.invalidate()
        self._begin()
        try:
            call = self._auth.login if action == "login" else self._auth.register
            payload = await call(body)
            user = _profile_from(unwrap(payload, "user"))
        except ClientError as e:
            logger.warning("%s failed: %s", action.capitalize(), e.message)
            self._end(error=e.message)
            raise
        except BaseException:
            self._end()
            raise

        self._end(user=user, status=SessionStatus.READY)
        logger.info("%s succeeded for %s", action.capitalize(), user.email)
        return payload

    async def logout(self) -> None:
        self._identity.invalidate()
        try:
            await self._auth.logout()
        except ClientError as e:
            logger.warning("Logout request failed (clearing local session anyway): %s", e.message)
        finally:
            self._set(user=None, error=None, status=SessionStatus.READY)
        logger.info("Logged out")

    async def refresh_profile(self) -> None:
        """Re-read /auth/me. A 401 means the session expired: clear identity."""
        token = self._identity.issue()
        try:
            payload = await self._auth.profile()
            user = _profile_from(unwrap(payload, "user"))
        except ClientError as e:
            if not self._identity.is_current(token):
                return
            if isinstance(e, ApiError) and e.is_unauthorized:
                logger.info("Session expired; clearing identity")
                self._set(user=None, error=e.message)
            else:
                self._set(error=e.message)
            return

        if self._identity.is_current(token):
            self._set(user=user, error=None)

    def clear_error(self) -> None:
        self._set(error=None)

    def reset(self) -> None:
        """Teardown: back to Idle with no identity (durable subset cleared too)."""
        self._identity.invalidate()
        self._in_flight = 0
        self._set(user=None, error=None, busy=False, status=SessionStatus.IDLE)
