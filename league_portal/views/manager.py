# league_portal/views/manager.py
from __future__ import annotations

import asyncio
from typing import List, Optional

from league_portal.core.logging import get_logger
from league_portal.schemas.league import (
    AvailableFreeAgent,
    ManagedTeam,
    ManagerPanelData,
    RosterPlayer,
)
from league_portal.schemas.profile import StatLine
from league_portal.services.notifications import ToastQueue
from league_portal.services.reconcile import Refetch, mutate_then_reconcile
from league_portal.services.repository import LeagueRepository
from league_portal.services.resolver import SessionResolver
from league_portal.views.base import CachedView

logger = get_logger(__name__)


class ManagerPanel(CachedView):
    """Roster and stat management for the teams the signed-in user manages."""

    def __init__(self, repo: LeagueRepository, resolver: SessionResolver, notifier: ToastQueue):
        super().__init__(notifier)
        self.repo = repo
        self.resolver = resolver
        self.managed_teams: List[ManagedTeam] = []
        self.free_agents: List[AvailableFreeAgent] = []
        self.editing_player: Optional[str] = None
        self.stat_form: Optional[StatLine] = None

    def reset(self) -> None:
        super().reset()
        self._commit(managed_teams=[], free_agents=[], editing_player=None, stat_form=None)

    def snapshot(self) -> ManagerPanelData:
        return ManagerPanelData(
            loading=self.loading,
            managed_teams=self.managed_teams,
            free_agents=self.free_agents,
            editing_player=self.editing_player,
            stat_form=self.stat_form,
        )

    async def refresh(self) -> None:
        identity = self.resolver.current_identity()
        if identity is None:
            return
        epoch = self.epoch
        try:
            teams, free_agents = await asyncio.gather(
                self.repo.managed_teams(identity.id),
                self.repo.approved_free_agents(),
            )
        except Exception:
            logger.exception("Error fetching manager data")
            self.notifier.error("Failed to load manager data")
        else:
            self._commit(epoch, managed_teams=teams, free_agents=free_agents)
        finally:
            self._commit(epoch, loading=False)

    # ---------------- roster ----------------

    async def assign_player(self, player_id: Optional[str], team_id: Optional[str]) -> bool:
        if not player_id or not team_id:
            return False
        return await mutate_then_reconcile(
            lambda: self.repo.add_team_membership(player_id, team_id),
            Refetch(self.refresh),
            notifier=self.notifier,
            success="Player assigned to team successfully",
            failure="Failed to assign player",
        )

    # ---------------- stats ----------------

    def begin_edit(self, player: RosterPlayer) -> None:
        self._commit(editing_player=player.id, stat_form=player.stat_line())

    def cancel_edit(self) -> None:
        self._commit(editing_player=None, stat_form=None)

    async def update_stats(self, player_id: Optional[str] = None, stats: Optional[StatLine] = None) -> bool:
        """
        Saves `stats` for `player_id`. Either may be omitted to use the open
        edit form, but the form only ever applies to the player being edited.
        """
        if player_id is None:
            player_id = self.editing_player
        if stats is None and player_id is not None and player_id == self.editing_player:
            stats = self.stat_form
        if not player_id or stats is None:
            return False
        ok = await mutate_then_reconcile(
            lambda: self.repo.update_stats(player_id, stats),
            Refetch(self.refresh),
            notifier=self.notifier,
            success="Player stats updated successfully",
            failure="Failed to update player stats",
        )
        if ok and self.editing_player == player_id:
            self.cancel_edit()
        return ok
