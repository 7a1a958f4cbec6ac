# league_portal/services/auth_provider.py
from __future__ import annotations

import inspect
import secrets
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode, quote_plus

import requests
from fastapi.concurrency import run_in_threadpool
from oauthlib.oauth2 import WebApplicationClient
from oauthlib.oauth2.rfc6749.errors import InvalidGrantError

from league_portal.core.errors import AuthError
from league_portal.core.logging import get_logger
from league_portal.schemas.auth import AuthEvent, AuthSession
from league_portal.services.session_store import SessionStore

logger = get_logger(__name__)

AuthCallback = Callable[[AuthEvent, Optional[AuthSession]], Union[Awaitable[None], None]]

# PKCE verifiers waiting for their callback; older ones are dropped first
MAX_PENDING_HANDSHAKES = 16
# Refresh-token rejections reported by the provider as `error_code`
_DEAD_REFRESH_CODES = {"refresh_token_not_found", "refresh_token_already_used", "session_not_found", "session_expired"}


def _error_body(resp: requests.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
        return body if isinstance(body, dict) else {}
    except ValueError:
        return {}


class Subscription:
    def __init__(self, provider: "AuthProvider", callback: AuthCallback):
        self._provider = provider
        self._callback = callback

    def unsubscribe(self) -> None:
        try:
            self._provider._subscribers.remove(self._callback)
        except ValueError:
            pass


class AuthProvider:
    """
    Client for the hosted identity service (GoTrue dialect).

    The sign-in handshake is a redirect: `authorization_url` hands back the
    provider URL, the browser comes back to our callback with a `code`, and
    `exchange_code` trades it for a session. Session changes are pushed to
    subscribers as SIGNED_IN / SIGNED_OUT / TOKEN_REFRESHED events.
    """

    def __init__(
        self,
        auth_url: str,
        api_key: str,
        *,
        redirect_uri: str,
        store: Optional[SessionStore] = None,
        auto_refresh: bool = True,
        timeout: float = 15.0,
        http: Optional[requests.Session] = None,
    ):
        self.auth_url = auth_url.rstrip("/")
        self.api_key = api_key
        self.redirect_uri = redirect_uri
        self.store = store
        self.auto_refresh = auto_refresh
        self.timeout = timeout
        self.http = http or requests.Session()

        self._session: Optional[AuthSession] = None
        self._loaded = False
        self._pending: Dict[str, str] = {}  # state -> code_verifier
        self._subscribers: List[AuthCallback] = []

    # ---------------- events ----------------

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        self._subscribers.append(callback)
        return Subscription(self, callback)

    async def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Auth subscriber failed handling %s", event.value)

    # ---------------- session ----------------

    @property
    def access_token(self) -> Optional[str]:
        """Bearer for store calls; None once expired, so a dead token is never sent."""
        current = self._session
        if current is None or current.is_expired(leeway=0):
            return None
        return current.access_token

    async def get_session(self) -> Optional[AuthSession]:
        """
        Current session, loading the persisted one on first use. An expired
        session is refreshed when possible; otherwise it is dropped and
        subscribers get SIGNED_OUT. Safe to call on every request.
        """
        if not self._loaded:
            if self.store is not None:
                self._session = await run_in_threadpool(self.store.load_latest)
            self._loaded = True

        current = self._session
        if current is None or not current.is_expired():
            return current

        if self.auto_refresh and current.refresh_token:
            try:
                return await self.refresh_session()
            except AuthError as e:
                # keep the stored refresh token; the next process start can retry it
                logger.warning("Refreshing session for %s failed, signing out: %s", current.user.id, e)
                await self._drop_session(forget=False)
                return None
        logger.info("Session for %s expired without a refresh token", current.user.id)
        await self._drop_session()
        return None

    async def _set_session(self, session: AuthSession) -> None:
        self._session = session
        self._loaded = True
        if self.store is not None:
            await run_in_threadpool(self.store.save, session)

    async def _drop_session(self, emit: bool = True, forget: bool = True) -> None:
        self._session = None
        self._loaded = True
        if forget and self.store is not None:
            await run_in_threadpool(self.store.clear)
        if emit:
            await self._emit(AuthEvent.SIGNED_OUT, None)

    # ---------------- handshake ----------------

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def authorization_url(self, provider: str, redirect_to: Optional[str] = None) -> Tuple[str, str]:
        """Returns (authorize_url, state). The state comes back on our callback URL."""
        state = secrets.token_urlsafe(24)
        pkce = WebApplicationClient(None)
        verifier = pkce.create_code_verifier(64)
        challenge = pkce.create_code_challenge(verifier, "S256")

        self._pending[state] = verifier
        while len(self._pending) > MAX_PENDING_HANDSHAKES:
            self._pending.pop(next(iter(self._pending)))

        redirect = (redirect_to or self.redirect_uri).strip()
        sep = "&" if "?" in redirect else "?"
        params = {
            "provider": provider,
            "redirect_to": f"{redirect}{sep}state={state}",
            "code_challenge": challenge,
            "code_challenge_method": "s256",
        }
        return f"{self.auth_url}/authorize?{urlencode(params, quote_via=quote_plus)}", state

    def _token_request(self, grant_type: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            r = self.http.post(
                f"{self.auth_url}/token",
                params={"grant_type": grant_type},
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Token request failed: {e}") from e

        if r.ok:
            try:
                return r.json()
            except ValueError as e:
                raise AuthError("Token endpoint returned non-JSON", status=r.status_code) from e

        err = _error_body(r)
        description = err.get("error_description") or err.get("msg") or r.text[:300]
        if r.status_code in (400, 401) and (
            err.get("error") == "invalid_grant" or err.get("error_code") in _DEAD_REFRESH_CODES
        ):
            raise InvalidGrantError(description=description, status_code=r.status_code)
        raise AuthError(f"Token request ({grant_type}) failed: {r.status_code} {description}", status=r.status_code)

    async def exchange_code(self, code: str, state: str) -> AuthSession:
        verifier = self._pending.pop(state, None)
        if verifier is None:
            raise AuthError("Invalid or expired OAuth state", status=400)

        payload = await run_in_threadpool(
            self._token_request, "pkce", {"auth_code": code, "code_verifier": verifier}
        )
        try:
            session = AuthSession.from_token_response(payload)
        except (KeyError, ValueError) as e:
            raise AuthError(f"Malformed token response: {e}") from e

        await self._set_session(session)
        logger.info("Signed in %s", session.user.id)
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def refresh_session(self) -> Optional[AuthSession]:
        current = self._session
        if current is None or not current.refresh_token:
            return None
        try:
            payload = await run_in_threadpool(
                self._token_request, "refresh_token", {"refresh_token": current.refresh_token}
            )
        except InvalidGrantError:
            logger.info("Refresh token for %s was rejected; signing out", current.user.id)
            await self._drop_session()
            return None

        session = AuthSession.from_token_response(payload)
        await self._set_session(session)
        await self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    def _logout_request(self, access_token: str) -> None:
        try:
            r = self.http.post(
                f"{self.auth_url}/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Logout request failed: {e}") from e
        # 401/404: token already dead upstream, which is the goal anyway
        if not r.ok and r.status_code not in (401, 404):
            raise AuthError(f"Logout failed: {r.status_code}", status=r.status_code)

    async def sign_out(self) -> None:
        """Forget the session locally, then revoke it upstream (best effort)."""
        current = self._session
        await self._drop_session(emit=False)
        if current is not None:
            try:
                await run_in_threadpool(self._logout_request, current.access_token)
            except AuthError as e:
                logger.warning("Upstream sign-out failed: %s", e)
        await self._emit(AuthEvent.SIGNED_OUT, None)
