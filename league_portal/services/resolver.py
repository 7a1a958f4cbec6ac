# league_portal/services/resolver.py
"""
Session & role resolver: the one place that knows who is signed in and what
the UI should let them do.

    UNKNOWN --lookup--> SIGNED_OUT
       |                   ^   |
       |                   |   | SIGNED_IN event
       v                   |   v
    PENDING_ROLES --profile + roles--> RESOLVED_ROLES

Any SIGNED_OUT event (or an expired session the provider cannot refresh)
drops back to SIGNED_OUT and clears profile and roles. Role flags are UI
hints; the store has to enforce its own policies.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, FrozenSet, List, Optional, Tuple

from league_portal.core.errors import AuthError, NotFound, UniqueViolation
from league_portal.core.logging import get_logger
from league_portal.schemas.auth import (
    AuthEvent,
    AuthSession,
    AuthState,
    Identity,
    Role,
    SessionSnapshot,
)
from league_portal.schemas.profile import Profile
from league_portal.services.auth_provider import AuthProvider, Subscription
from league_portal.services.notifications import ToastQueue
from league_portal.services.repository import LeagueRepository

logger = get_logger(__name__)

Listener = Callable[[SessionSnapshot], Any]


class SessionResolver:
    def __init__(self, provider: AuthProvider, repo: LeagueRepository, notifier: ToastQueue):
        self.provider = provider
        self.repo = repo
        self.notifier = notifier

        self._state = AuthState.UNKNOWN
        self._session: Optional[AuthSession] = None
        self._profile: Optional[Profile] = None
        self._roles: FrozenSet[Role] = frozenset()
        self._error: Optional[str] = None
        # bumped on every session change; completions from an older generation are dropped
        self._generation = 0
        self._listeners: List[Listener] = []
        self._subscription: Optional[Subscription] = None

    # ---------------- lifecycle ----------------

    async def start(self) -> None:
        """Subscribe to provider events and resolve whatever session is on file."""
        if self._subscription is None:
            self._subscription = self.provider.on_auth_state_change(self._on_auth_event)
        try:
            session = await self.provider.get_session()
        except AuthError as e:
            logger.warning("Session lookup failed, starting signed out: %s", e)
            session = None
        await self._apply_session(session)

    async def ensure_fresh(self) -> Optional[AuthSession]:
        """
        Re-check the provider session before acting on it. An expired token is
        refreshed (TOKEN_REFRESHED) or, failing that, dropped (SIGNED_OUT); the
        provider's events drive the state change.
        """
        if self._session is None:
            return None
        session = await self.provider.get_session()
        if session is None and self._state is not AuthState.SIGNED_OUT:
            self._clear()
        return session

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    # ---------------- read side ----------------

    @property
    def state(self) -> AuthState:
        return self._state

    def current_identity(self) -> Optional[Identity]:
        return self._session.user if self._session else None

    def current_session(self) -> Optional[AuthSession]:
        return self._session

    def current_profile(self) -> Optional[Profile]:
        return self._profile

    def has_role(self, role: Role) -> bool:
        # deny until roles are resolved; a loading view must not render as allowed
        if self._state is not AuthState.RESOLVED_ROLES:
            return False
        return role in self._roles

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            identity=self.current_identity(),
            profile=self._profile,
            is_admin=self.has_role(Role.ADMIN),
            is_manager=self.has_role(Role.MANAGER),
            error=self._error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: AuthState) -> None:
        self._state = state
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Session listener failed on %s", state.value)

    # ---------------- actions ----------------

    def begin_sign_in(self, provider: str = "discord", redirect_to: Optional[str] = None) -> Tuple[str, str]:
        """Start the redirect handshake; the result shows up later as a SIGNED_IN event."""
        return self.provider.authorization_url(provider, redirect_to=redirect_to)

    async def sign_out(self) -> None:
        await self.provider.sign_out()
        # the SIGNED_OUT event normally got us here already
        if self._state is not AuthState.SIGNED_OUT:
            self._clear()

    async def update_profile(self, **fields: Any) -> Optional[Profile]:
        """
        Write the given fields, then re-read the row so server-side defaults
        and validation win over what was sent. Errors propagate.
        """
        identity = self.current_identity()
        if identity is None:
            return None
        gen = self._generation
        await self.repo.update_profile(identity.id, fields)
        profile = await self.repo.get_profile(identity.id)
        if gen == self._generation:
            self._profile = profile
            self._set_state(self._state)
        return profile

    # ---------------- transitions ----------------

    async def _on_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        if self._state is AuthState.UNKNOWN:
            # start() owns the first lookup
            return
        if event is AuthEvent.SIGNED_OUT or session is None:
            self._clear()
            return
        current = self.current_identity()
        if event is AuthEvent.TOKEN_REFRESHED and current is not None and current.id == session.user.id:
            self._session = session
            return
        await self._apply_session(session)

    def _clear(self) -> None:
        self._generation += 1
        self._session = None
        self._profile = None
        self._roles = frozenset()
        self._set_state(AuthState.SIGNED_OUT)

    async def _apply_session(self, session: Optional[AuthSession]) -> None:
        if session is None:
            self._error = None
            self._clear()
            return

        self._generation += 1
        gen = self._generation
        self._session = session
        self._profile = None
        self._roles = frozenset()
        self._error = None
        self._set_state(AuthState.PENDING_ROLES)

        profile_result, roles = await asyncio.gather(
            self._ensure_profile(session.user),
            self._resolve_roles(session.user.id),
            return_exceptions=True,
        )
        if gen != self._generation:
            logger.debug("Discarding stale sign-in result for %s", session.user.id)
            return

        if isinstance(profile_result, BaseException):
            self._fail_sign_in(session.user, profile_result)
            return

        # set only by an update_profile that finished meanwhile; that re-read is the newer row
        if self._profile is None:
            self._profile = profile_result
        self._roles = roles if isinstance(roles, frozenset) else frozenset()
        self._set_state(AuthState.RESOLVED_ROLES)

    def _fail_sign_in(self, identity: Identity, exc: BaseException) -> None:
        logger.error("Sign-in aborted for %s", identity.id, exc_info=exc)
        self.notifier.error("Sign-in failed: your player profile could not be created")
        self._error = f"Could not load or create the profile for {identity.id}: {exc}"
        self._clear()

    async def _ensure_profile(self, identity: Identity) -> Profile:
        """
        Fetch-or-create. A duplicate-key insert means someone else (another
        tab, a concurrent call) created it first, which is as good as success.
        """
        try:
            return await self.repo.get_profile(identity.id)
        except NotFound:
            pass

        try:
            await self.repo.insert_profile(identity.id, discord_username=identity.user_name)
        except UniqueViolation:
            logger.info("Profile for %s already exists; reloading", identity.id)
        return await self.repo.get_profile(identity.id)

    async def _resolve_roles(self, user_id: str) -> FrozenSet[Role]:
        """Each check fails closed on its own; a lookup error never blocks sign-in."""
        is_admin, is_manager = await asyncio.gather(
            self.repo.has_admin_role(user_id),
            self.repo.has_manager_assignment(user_id),
            return_exceptions=True,
        )
        roles = set()
        for role, result in ((Role.ADMIN, is_admin), (Role.MANAGER, is_manager)):
            if isinstance(result, BaseException):
                logger.warning("Role check %s failed for %s: %r", role.value, user_id, result)
            elif result:
                roles.add(role)
        return frozenset(roles)
