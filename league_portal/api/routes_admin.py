from fastapi import APIRouter, Depends

from league_portal.deps import get_admin_panel, require_admin
from league_portal.schemas.league import AdminPanelData, AssignmentRequest
from league_portal.views.admin import AdminPanel

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _result(ok: bool, panel: AdminPanel) -> dict:
    return {"ok": ok, "panel": panel.snapshot()}


@router.get("", response_model=AdminPanelData)
async def admin_panel(panel: AdminPanel = Depends(get_admin_panel)):
    """Pending free agents, current managers, and the pick lists for a new assignment."""
    await panel.refresh()
    return panel.snapshot()


# ---------------- free agents ----------------
@router.post("/free-agents/{player_id}/approve")
async def approve_free_agent(player_id: str, panel: AdminPanel = Depends(get_admin_panel)):
    return _result(await panel.approve(player_id), panel)


@router.post("/free-agents/{player_id}/reject")
async def reject_free_agent(player_id: str, panel: AdminPanel = Depends(get_admin_panel)):
    return _result(await panel.reject(player_id), panel)


# ---------------- managers ----------------
@router.post("/managers")
async def assign_manager(body: AssignmentRequest, panel: AdminPanel = Depends(get_admin_panel)):
    # both ids must be picked; otherwise nothing is sent
    return _result(await panel.assign_manager(body.player_id, body.team_id), panel)


@router.delete("/managers/{manager_id}")
async def remove_manager(manager_id: str, panel: AdminPanel = Depends(get_admin_panel)):
    return _result(await panel.remove_manager(manager_id), panel)
