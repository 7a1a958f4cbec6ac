# league_portal/api/routes_league.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from league_portal.deps import get_player_profile_view, get_players_directory, get_teams_directory
from league_portal.schemas.league import POSITIONS, PlayerCard, TeamCard
from league_portal.schemas.profile import Profile
from league_portal.views.directory import ALL, PlayerProfileView, PlayersDirectory, TeamsDirectory

router = APIRouter(tags=["league"])


# ---------------- TEAMS ----------------
@router.get("/teams", response_model=List[TeamCard])
async def list_teams(view: TeamsDirectory = Depends(get_teams_directory)):
    """
    Every team with its manager and roster.
    """
    await view.refresh()
    return view.teams


# ---------------- PLAYERS ----------------
@router.get("/players", response_model=List[PlayerCard])
async def list_players(
    search: Optional[str] = Query(default=None, description="name or handle, case-insensitive"),
    position: str = Query(default=ALL, description="All or a position code, e.g. ST"),
    team: str = Query(default=ALL, description="All, 'Free Agent', or a team id"),
    view: PlayersDirectory = Depends(get_players_directory),
):
    if position != ALL and position not in POSITIONS:
        raise HTTPException(status_code=400, detail=f"Unknown position {position!r}")
    await view.refresh()
    return view.filtered(search=search, position=position, team=team)


@router.get("/positions", response_model=List[str])
def list_positions():
    return [ALL, *POSITIONS]


@router.get("/players/{player_id}", response_model=Profile)
async def player_profile(player_id: str, view: PlayerProfileView = Depends(get_player_profile_view)):
    profile = await view.load(player_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return profile
