from fastapi import APIRouter, Depends

from league_portal.deps import get_manager_panel, require_manager
from league_portal.schemas.league import AssignmentRequest, ManagerPanelData
from league_portal.schemas.profile import StatLine
from league_portal.views.manager import ManagerPanel

router = APIRouter(prefix="/manager", tags=["manager"], dependencies=[Depends(require_manager)])


def _result(ok: bool, panel: ManagerPanel) -> dict:
    return {"ok": ok, "panel": panel.snapshot()}


@router.get("", response_model=ManagerPanelData)
async def manager_panel(panel: ManagerPanel = Depends(get_manager_panel)):
    """Rosters of the caller's teams plus approved free agents not yet signed."""
    await panel.refresh()
    return panel.snapshot()


@router.post("/roster")
async def sign_player(body: AssignmentRequest, panel: ManagerPanel = Depends(get_manager_panel)):
    return _result(await panel.assign_player(body.player_id, body.team_id), panel)


@router.put("/players/{player_id}/stats")
async def update_player_stats(player_id: str, body: StatLine, panel: ManagerPanel = Depends(get_manager_panel)):
    return _result(await panel.update_stats(player_id, body), panel)
