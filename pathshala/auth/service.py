"""Session/identity gate.

Enforces one active session per account: a login is refused while a session
record for the same email is younger than the configured TTL. The admin role
is a single configured email address.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from pathshala.common.errors import AuthError, SessionConflict, StoreError
from pathshala.common.utils import current_timestamp, display_name_for
from pathshala.db.codec import decode_dates, encode_dates
from pathshala.db.records import UserProfile, UserSession
from pathshala.db.store import Filter, RecordStore

from .identity import IdentityProvider
from .schemas import Identity

logger = logging.getLogger("auth.session")


class SessionState(str, enum.Enum):
    anonymous = "anonymous"
    authenticating = "authenticating"
    authenticated = "authenticated"
    failed = "failed"


@dataclass
class LogoutResult:
    session_cleared: bool
    signed_out: bool


def is_admin(identity: Optional[Identity], admin_email: str) -> bool:
    if identity is None or not identity.email:
        return False
    return identity.email.strip().lower() == admin_email.strip().lower()


class SessionGate:
    def __init__(
        self,
        store: RecordStore,
        identity_provider: IdentityProvider,
        *,
        admin_email: str,
        session_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = current_timestamp,
    ) -> None:
        self.store = store
        self.identity_provider = identity_provider
        self.admin_email = admin_email
        self.session_ttl = session_ttl
        self.clock = clock
        self.state = SessionState.anonymous
        self.identity: Optional[Identity] = None
        self.failure: Optional[AuthError] = None

    @property
    def is_admin(self) -> bool:
        return is_admin(self.identity, self.admin_email)

    async def login(self, email: str, password: str, device_info: str = "") -> Identity:
        self.state = SessionState.authenticating
        self.failure = None
        try:
            identity = await self._login(email.strip().lower(), password, device_info)
        except AuthError as exc:
            self.state = SessionState.failed
            self.failure = exc
            logger.info("session.login_failed email=%s code=%s", email, exc.code)
            raise
        except Exception:
            self.state = SessionState.failed
            raise
        self.identity = identity
        self.state = SessionState.authenticated
        logger.info("session.login_ok user_id=%s admin=%s", identity.id, self.is_admin)
        return identity

    async def _login(self, email: str, password: str, device_info: str) -> Identity:
        now = self.clock()
        rows = await self.store.select(UserSession.table, [Filter("email", "eq", email)])
        for row in rows:
            session = UserSession.model_validate(decode_dates(row, UserSession.date_fields()))
            if session.created_at is not None and now - session.created_at < self.session_ttl:
                raise SessionConflict()
            logger.info("session.stale_removed session_id=%s", session.id)
            await self.store.delete(UserSession.table, session.id)

        identity = await self.identity_provider.sign_in(email, password)

        await self.store.insert(
            UserSession.table,
            encode_dates(
                {
                    "id": identity.id,
                    "email": identity.email,
                    "user_id": identity.id,
                    "created_at": now,
                    "device_info": device_info or "",
                }
            ),
        )
        await self._ensure_profile(identity, now)
        return identity

    async def _ensure_profile(self, identity: Identity, now: datetime) -> None:
        try:
            existing = await self.store.select(UserProfile.table, [Filter("user_id", "eq", identity.id)])
            if existing:
                return
            await self.store.insert(
                UserProfile.table,
                encode_dates(
                    {
                        "user_id": identity.id,
                        "display_name": display_name_for(identity.email),
                        "points": 0,
                        "completed_videos": 0,
                        "joined_at": now,
                        "updated_at": now,
                        "created_at": now,
                    }
                ),
            )
        except StoreError as exc:
            # The profile is created again on the first profile edit
            logger.warning("session.profile_provision_failed user_id=%s error=%s", identity.id, exc)

    async def logout(self, identity: Optional[Identity] = None) -> LogoutResult:
        """Clear the session record and sign out; local sign-out always happens."""
        identity = identity or self.identity
        session_cleared = True
        signed_out = True
        if identity is not None:
            try:
                await self.store.delete(UserSession.table, identity.id)
            except StoreError as exc:
                session_cleared = False
                logger.warning("session.record_delete_failed user_id=%s error=%s", identity.id, exc)
            if identity.access_token:
                try:
                    await self.identity_provider.sign_out(identity.access_token)
                except AuthError as exc:
                    signed_out = False
                    logger.warning("session.remote_sign_out_failed user_id=%s error=%s", identity.id, exc)
        self.identity = None
        self.failure = None
        self.state = SessionState.anonymous
        return LogoutResult(session_cleared=session_cleared, signed_out=signed_out)
