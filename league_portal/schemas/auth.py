from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from league_portal.schemas.profile import Profile


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthState(str, Enum):
    UNKNOWN = "unknown"
    SIGNED_OUT = "signed_out"
    PENDING_ROLES = "pending_roles"
    RESOLVED_ROLES = "resolved_roles"


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"


class Identity(BaseModel):
    id: str
    email: Optional[str] = None
    user_name: Optional[str] = None  # provider handle hint (e.g. Discord username)

    @classmethod
    def from_provider_user(cls, user: Dict[str, Any]) -> "Identity":
        meta = user.get("user_metadata") or {}
        return cls(
            id=user["id"],
            email=user.get("email"),
            user_name=meta.get("user_name") or meta.get("preferred_username"),
        )


class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None  # epoch seconds
    user: Identity

    @classmethod
    def from_token_response(cls, payload: Dict[str, Any]) -> "AuthSession":
        expires_at = payload.get("expires_at")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = int(time.time()) + int(payload["expires_in"])
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type") or "bearer",
            expires_at=expires_at,
            user=Identity.from_provider_user(payload.get("user") or {}),
        )

    def is_expired(self, leeway: int = 30, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at - leeway <= (now if now is not None else time.time())


class SessionSnapshot(BaseModel):
    """Read-only view of the resolver, handed to listeners and the HTTP layer."""
    state: AuthState
    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    is_admin: bool = False
    is_manager: bool = False
    error: Optional[str] = None
