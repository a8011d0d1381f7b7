"""Shared FastAPI dependencies for authentication, authorization, and context."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from pathshala.auth.identity import IdentityProvider
from pathshala.auth.schemas import Identity
from pathshala.auth.service import SessionGate, is_admin
from pathshala.common.errors import Forbidden, Unauthenticated
from pathshala.core.config import Settings, get_settings
from pathshala.db.binding import BindingRegistry
from pathshala.db.store import RecordStore

logger = logging.getLogger("auth.deps")
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Minimal user identity shared across endpoints."""
    id: str
    email: str
    is_admin: bool = False
    access_token: str | None = None

    def identity(self) -> Identity:
        return Identity(id=self.id, email=self.email, access_token=self.access_token)


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_registry(request: Request) -> BindingRegistry:
    return request.app.state.bindings


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_session_gate(
    request: Request,
    store: RecordStore = Depends(get_store),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_app_settings),
) -> SessionGate:
    return SessionGate(
        store,
        identity_provider,
        admin_email=settings.admin_email,
        session_ttl=timedelta(hours=settings.session_ttl_hours),
    )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    """Resolve the bearer token into a ``CurrentUser``.

    The admin flag is derived from the configured admin email only.
    """
    cached: CurrentUser | None = getattr(request.state, "current_user", None)
    if cached is not None:
        return cached
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    identity = await identity_provider.resolve(credentials.credentials)
    current = CurrentUser(
        id=identity.id,
        email=identity.email,
        is_admin=is_admin(identity, settings.admin_email),
        access_token=credentials.credentials,
    )
    request.state.current_user = current
    request_id = getattr(request.state, "request_id", None)
    logger.info(
        "auth_resolved user_id=%s admin=%s request_id=%s path=%s",
        current.id,
        current.is_admin,
        request_id,
        request.url.path,
    )
    return current


def require_admin() -> Callable[..., Any]:
    async def _dep(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not current_user.is_admin:
            raise Forbidden()
        return current_user

    return _dep
