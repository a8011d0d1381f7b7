"""Identity provider: Supabase GoTrue over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from jose import JWTError, jwt

from pathshala.common.errors import AuthError, InvalidCredentials, Unauthenticated
from pathshala.core.config import Settings

from .schemas import Identity

logger = logging.getLogger("auth.identity")


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_out(self, access_token: str) -> None: ...

    async def resolve(self, access_token: str) -> Identity: ...


def _error_message(r: httpx.Response) -> Optional[str]:
    try:
        data = r.json() if r.headers.get("content-type", "").startswith("application/json") else {}
    except ValueError:
        return None
    if isinstance(data, dict):
        return (
            data.get("msg")
            or data.get("message")
            or data.get("error_description")
            or data.get("error")
        )
    return None


class SupabaseIdentityProvider:
    def __init__(self, settings: Settings, *, timeout: float = 15) -> None:
        if not settings.auth_base:
            raise RuntimeError("SUPABASE_URL not configured")
        self.auth_base = settings.auth_base
        self.anon_key = settings.supabase_anon_key
        self.jwt_secret = settings.supabase_jwt_secret
        self.timeout = timeout

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
            "Content-Type": "application/json",
        }

    async def sign_in(self, email: str, password: str) -> Identity:
        payload = {"email": email.strip().lower(), "password": password}
        url = f"{self.auth_base}/token?grant_type=password"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.warning("auth.sign_in_transport_error error=%s", exc)
            raise AuthError() from exc

        if r.status_code != 200:
            msg = _error_message(r)
            logger.info("auth.sign_in_rejected status=%s msg=%s", r.status_code, msg)
            if r.status_code >= 500:
                raise AuthError()
            raise InvalidCredentials()

        body = r.json()
        user = body.get("user") or {}
        return Identity(
            id=str(user.get("id")),
            email=(user.get("email") or payload["email"]).lower(),
            access_token=body.get("access_token"),
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
        )

    async def sign_out(self, access_token: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(f"{self.auth_base}/logout", headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            raise AuthError("লগআউট করতে সমস্যা হয়েছে!") from exc
        # 401 means the token is already gone
        if r.status_code not in (200, 204, 401):
            raise AuthError("লগআউট করতে সমস্যা হয়েছে!")

    def _decode_local(self, access_token: str) -> Identity:
        try:
            claims: Dict[str, Any] = jwt.decode(
                access_token,
                self.jwt_secret,
                algorithms=["HS256"],
                options={"verify_aud": False},
            )
        except JWTError as exc:
            raise Unauthenticated() from exc
        user_id = claims.get("sub")
        email = claims.get("email") or (claims.get("user_metadata") or {}).get("email")
        if not user_id or not email:
            raise Unauthenticated()
        return Identity(id=str(user_id), email=str(email).lower(), access_token=access_token)

    async def resolve(self, access_token: str) -> Identity:
        """Verify a bearer token locally when the JWT secret is known, else ask GoTrue."""
        if self.jwt_secret:
            return self._decode_local(access_token)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(f"{self.auth_base}/user", headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            raise Unauthenticated() from exc
        if r.status_code != 200:
            raise Unauthenticated()
        user = r.json()
        if not user.get("id") or not user.get("email"):
            raise Unauthenticated()
        return Identity(id=str(user["id"]), email=str(user["email"]).lower(), access_token=access_token)
