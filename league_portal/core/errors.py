"""Error taxonomy for calls against the hosted backend."""
from __future__ import annotations

from typing import Optional


class StoreError(Exception):
    """A data-store call did not complete successfully."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, code={self.code!r}, message={self.message!r})"


class TransportError(StoreError):
    """The request never got a response (connection refused, timeout, ...)."""


class NotFound(StoreError):
    """Expected absence: a single-row select matched nothing."""


class UniqueViolation(StoreError):
    """An insert collided with an existing row (SQLSTATE 23505)."""


class AuthorizationDenied(StoreError):
    """The store refused the call for the current credentials."""


class AuthError(Exception):
    """The identity provider rejected or failed a handshake step."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
