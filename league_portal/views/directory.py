# league_portal/views/directory.py
"""Public read-only views: teams, players and a single player's profile."""
from __future__ import annotations

from typing import List, Optional

from league_portal.core.logging import get_logger
from league_portal.schemas.league import PlayerCard, TeamCard, TeamOption
from league_portal.schemas.profile import Profile
from league_portal.services.notifications import ToastQueue
from league_portal.services.repository import LeagueRepository
from league_portal.views.base import CachedView

logger = get_logger(__name__)

ALL = "All"
FREE_AGENT = "Free Agent"


def filter_players(
    players: List[PlayerCard],
    search: Optional[str] = None,
    position: Optional[str] = None,
    team: Optional[str] = None,
) -> List[PlayerCard]:
    """
    search: case-insensitive substring of name or handle.
    position: "All" or an exact position code.
    team: "All", "Free Agent" (no team) or a team id.
    """
    out = players
    if search:
        needle = search.lower()
        out = [
            p for p in out
            if needle in (p.pro_clubs_name or "").lower() or needle in (p.discord_username or "").lower()
        ]
    if position and position != ALL:
        out = [p for p in out if p.position == position]
    if team and team != ALL:
        if team == FREE_AGENT:
            out = [p for p in out if p.team is None]
        else:
            out = [p for p in out if p.team is not None and p.team.id == team]
    return out


class TeamsDirectory(CachedView):
    def __init__(self, repo: LeagueRepository, notifier: ToastQueue):
        super().__init__(notifier)
        self.repo = repo
        self.teams: List[TeamCard] = []

    async def refresh(self) -> None:
        try:
            teams = await self.repo.team_cards()
        except Exception:
            logger.exception("Error fetching teams")
        else:
            self._commit(teams=teams)
        finally:
            self._commit(loading=False)


class PlayersDirectory(CachedView):
    def __init__(self, repo: LeagueRepository, notifier: ToastQueue):
        super().__init__(notifier)
        self.repo = repo
        self.players: List[PlayerCard] = []
        self.teams: List[TeamOption] = []

    async def refresh(self) -> None:
        try:
            players = await self.repo.player_cards()
            teams = await self.repo.team_options()
        except Exception:
            logger.exception("Error fetching players")
        else:
            self._commit(players=players, teams=teams)
        finally:
            self._commit(loading=False)

    def filtered(self, search: Optional[str] = None, position: Optional[str] = None, team: Optional[str] = None) -> List[PlayerCard]:
        return filter_players(self.players, search=search, position=position, team=team)


class PlayerProfileView(CachedView):
    def __init__(self, repo: LeagueRepository, notifier: ToastQueue):
        super().__init__(notifier)
        self.repo = repo
        self.profile: Optional[Profile] = None

    async def load(self, player_id: str) -> Optional[Profile]:
        try:
            profile = await self.repo.find_profile(player_id)
        except Exception:
            logger.exception("Error fetching profile %s", player_id)
            profile = None
        self._commit(profile=profile, loading=False)
        return self.profile
