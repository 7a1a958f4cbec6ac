# league_portal/views/admin.py
from __future__ import annotations

import asyncio
from typing import List, Optional

from league_portal.core.logging import get_logger
from league_portal.schemas.league import (
    AdminPanelData,
    ApprovalStatus,
    ManagerAssignmentRow,
    PendingFreeAgent,
    PlayerOption,
    TeamOption,
)
from league_portal.services.notifications import ToastQueue
from league_portal.services.reconcile import Patch, Refetch, mutate_then_reconcile
from league_portal.services.repository import LeagueRepository
from league_portal.services.resolver import SessionResolver
from league_portal.views.base import CachedView

logger = get_logger(__name__)


class AdminPanel(CachedView):
    """Free-agent approvals and manager assignments."""

    def __init__(self, repo: LeagueRepository, resolver: SessionResolver, notifier: ToastQueue):
        super().__init__(notifier)
        self.repo = repo
        self.resolver = resolver
        self.free_agents: List[PendingFreeAgent] = []
        self.managers: List[ManagerAssignmentRow] = []
        self.teams: List[TeamOption] = []
        self.players: List[PlayerOption] = []

    def reset(self) -> None:
        super().reset()
        self._commit(free_agents=[], managers=[], teams=[], players=[])

    def snapshot(self) -> AdminPanelData:
        return AdminPanelData(
            loading=self.loading,
            free_agents=self.free_agents,
            managers=self.managers,
            teams=self.teams,
            players=self.players,
        )

    def _acting_user(self) -> Optional[str]:
        identity = self.resolver.current_identity()
        return identity.id if identity else None

    async def refresh(self) -> None:
        epoch = self.epoch
        try:
            free_agents, managers, teams, players = await asyncio.gather(
                self.repo.pending_free_agents(),
                self.repo.manager_assignments(),
                self.repo.team_options(),
                self.repo.player_options(),
            )
        except Exception:
            logger.exception("Error fetching admin data")
            self.notifier.error("Failed to load admin data")
        else:
            self._commit(epoch, free_agents=free_agents, managers=managers, teams=teams, players=players)
        finally:
            self._commit(epoch, loading=False)

    # ---------------- free agents ----------------

    async def review_free_agent(self, player_id: str, approve: bool) -> bool:
        if not player_id:
            return False
        status = ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED
        verb = status.value
        epoch = self.epoch
        return await mutate_then_reconcile(
            lambda: self.repo.set_free_agent_status(player_id, status, approved_by=self._acting_user()),
            Patch(lambda: self._patch("free_agents", lambda rows: [fa for fa in rows if fa.id != player_id], since=epoch)),
            notifier=self.notifier,
            success=f"Free agent {verb} successfully",
            failure="Failed to update free agent status",
        )

    async def approve(self, player_id: str) -> bool:
        return await self.review_free_agent(player_id, True)

    async def reject(self, player_id: str) -> bool:
        return await self.review_free_agent(player_id, False)

    # ---------------- managers ----------------

    async def assign_manager(self, player_id: Optional[str], team_id: Optional[str]) -> bool:
        if not player_id or not team_id:
            return False
        # the manager list shows the joined team name, so re-read it
        return await mutate_then_reconcile(
            lambda: self.repo.assign_manager(player_id, team_id, assigned_by=self._acting_user()),
            Refetch(self.refresh),
            notifier=self.notifier,
            success="Manager assigned successfully",
            failure="Failed to assign manager",
        )

    async def remove_manager(self, manager_id: str) -> bool:
        if not manager_id:
            return False
        epoch = self.epoch
        return await mutate_then_reconcile(
            lambda: self.repo.remove_manager(manager_id),
            Patch(lambda: self._patch("managers", lambda rows: [m for m in rows if m.id != manager_id], since=epoch)),
            notifier=self.notifier,
            success="Manager removed successfully",
            failure="Failed to remove manager",
        )
