from typing import List

from fastapi import APIRouter, Depends, HTTPException

from league_portal.core.logging import get_logger
from league_portal.deps import get_current_identity, get_fresh_resolver, get_notifier, get_repository, get_resolver
from league_portal.schemas.auth import Identity, SessionSnapshot
from league_portal.schemas.profile import Profile, ProfileUpdate
from league_portal.services.notifications import Toast, ToastQueue
from league_portal.services.reconcile import mutate_then_reconcile
from league_portal.services.repository import LeagueRepository
from league_portal.services.resolver import SessionResolver

logger = get_logger(__name__)

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=SessionSnapshot)
def whoami(res: SessionResolver = Depends(get_fresh_resolver)):
    """
    Current session state, profile and role flags. Role flags stay false
    until the state reaches `resolved_roles`.
    """
    return res.snapshot()


@router.patch("/profile", response_model=Profile)
async def update_my_profile(
    body: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    res: SessionResolver = Depends(get_resolver),
    toasts: ToastQueue = Depends(get_notifier),
):
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No profile fields to update")
    try:
        profile = await res.update_profile(**fields)
    except Exception:
        logger.exception("Error updating profile for %s", identity.id)
        toasts.error("Failed to update profile")
        raise HTTPException(status_code=502, detail="Failed to update profile")
    if profile is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    toasts.success("Profile updated")
    return profile


@router.post("/free-agent")
async def apply_as_free_agent(
    identity: Identity = Depends(get_current_identity),
    repo: LeagueRepository = Depends(get_repository),
    toasts: ToastQueue = Depends(get_notifier),
):
    ok = await mutate_then_reconcile(
        lambda: repo.submit_free_agent_application(identity.id),
        None,
        notifier=toasts,
        success="Free agent application submitted",
        failure="Failed to submit free agent application",
    )
    return {"ok": ok}


@router.get("/notifications", response_model=List[Toast])
def my_notifications(toasts: ToastQueue = Depends(get_notifier)):
    """Drains pending toasts; each one is delivered once."""
    return toasts.drain()
