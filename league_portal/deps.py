from fastapi import Depends, HTTPException, status

from league_portal.core.config import settings
from league_portal.schemas.auth import AuthState, Identity, Role
from league_portal.services.auth_provider import AuthProvider
from league_portal.services.notifications import ToastQueue
from league_portal.services.repository import LeagueRepository
from league_portal.services.resolver import SessionResolver
from league_portal.services.session_store import SessionStore
from league_portal.services.store import StoreClient
from league_portal.views.admin import AdminPanel
from league_portal.views.directory import PlayerProfileView, PlayersDirectory, TeamsDirectory
from league_portal.views.manager import ManagerPanel

# ---- process-wide wiring (one signed-in user per process) ----
auth_provider = AuthProvider(
    settings.auth_url,
    settings.SUPABASE_ANON_KEY,
    redirect_uri=settings.OAUTH_REDIRECT_URI,
    store=SessionStore() if settings.PERSIST_SESSION else None,
    auto_refresh=settings.AUTO_REFRESH_TOKEN,
    timeout=settings.HTTP_TIMEOUT,
)
store = StoreClient(
    settings.rest_url,
    settings.SUPABASE_ANON_KEY,
    token_getter=lambda: auth_provider.access_token,
    timeout=settings.HTTP_TIMEOUT,
)
repository = LeagueRepository(store)
notifier = ToastQueue()
resolver = SessionResolver(auth_provider, repository, notifier)
admin_panel = AdminPanel(repository, resolver, notifier)
manager_panel = ManagerPanel(repository, resolver, notifier)


def get_auth_provider() -> AuthProvider:
    return auth_provider


def get_resolver() -> SessionResolver:
    return resolver


def get_repository() -> LeagueRepository:
    return repository


def get_notifier() -> ToastQueue:
    return notifier


def get_admin_panel() -> AdminPanel:
    return admin_panel


def get_manager_panel() -> ManagerPanel:
    return manager_panel


def get_teams_directory(
    repo: LeagueRepository = Depends(get_repository),
    toasts: ToastQueue = Depends(get_notifier),
) -> TeamsDirectory:
    return TeamsDirectory(repo, toasts)


def get_players_directory(
    repo: LeagueRepository = Depends(get_repository),
    toasts: ToastQueue = Depends(get_notifier),
) -> PlayersDirectory:
    return PlayersDirectory(repo, toasts)


def get_player_profile_view(
    repo: LeagueRepository = Depends(get_repository),
    toasts: ToastQueue = Depends(get_notifier),
) -> PlayerProfileView:
    return PlayerProfileView(repo, toasts)


async def get_fresh_resolver(res: SessionResolver = Depends(get_resolver)) -> SessionResolver:
    """The resolver, after an expired token has been refreshed or signed out."""
    await res.ensure_fresh()
    return res


def get_current_identity(res: SessionResolver = Depends(get_fresh_resolver)) -> Identity:
    """Returns the signed-in identity or raises 401."""
    identity = res.current_identity()
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return identity


def require_role(role: Role):
    """
    Route guard. While the session is still resolving the caller gets a
    503 "loading" answer, never a provisional allow.
    """
    def _guard(res: SessionResolver = Depends(get_fresh_resolver)) -> SessionResolver:
        state = res.state
        if state in (AuthState.UNKNOWN, AuthState.PENDING_ROLES):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Session is still loading",
                headers={"Retry-After": "1"},
            )
        if state is AuthState.SIGNED_OUT:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        if not res.has_role(role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{role.value} role required")
        return res

    return _guard


require_admin = require_role(Role.ADMIN)
require_manager = require_role(Role.MANAGER)
