"""Session/identity gate and the GoTrue identity provider."""

from .schemas import Identity
from .service import LogoutResult, SessionGate, SessionState, is_admin

__all__ = ["Identity", "LogoutResult", "SessionGate", "SessionState", "is_admin"]
