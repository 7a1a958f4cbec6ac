# league_portal/services/repository.py
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from league_portal.core.errors import NotFound, UniqueViolation
from league_portal.core.logging import get_logger
from league_portal.schemas.league import (
    ApprovalStatus,
    AvailableFreeAgent,
    ManagedTeam,
    ManagerAssignmentRow,
    ManagerSummary,
    PendingFreeAgent,
    PlayerCard,
    PlayerOption,
    RosterPlayer,
    TeamCard,
    TeamOption,
)
from league_portal.schemas.profile import Profile, StatLine
from league_portal.services.store import StoreClient, eq

logger = get_logger(__name__)

ROSTER_COLUMNS = "id,discord_username,pro_clubs_name,position,goals,assists,average_rating"
SUMMARY_COLUMNS = "id,discord_username,pro_clubs_name,position"


def _embedded(node: Any) -> Optional[Dict[str, Any]]:
    """
    An embedded to-one relation arrives as a dict, or as a one-element list
    when the store cannot tell the cardinality. Missing joins come back as None.
    """
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        return node[0] if node and isinstance(node[0], dict) else None
    return None


def _embedded_many(node: Any) -> List[Dict[str, Any]]:
    if isinstance(node, list):
        return [n for n in node if isinstance(n, dict)]
    if isinstance(node, dict):
        return [node]
    return []


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LeagueRepository:
    """
    Async facade over the store relations the league views read and write.
    Each method is one remote round trip unless noted; the blocking HTTP call
    runs in the threadpool so only the awaiting coroutine is suspended.
    """

    def __init__(self, store: StoreClient):
        self.store = store

    async def _select(self, table: str, columns: str = "*", **kwargs) -> Any:
        return await run_in_threadpool(self.store.select, table, columns, **kwargs)

    # ---------------- profiles ----------------

    async def get_profile(self, user_id: str) -> Profile:
        """Raises NotFound when the profile row does not exist yet."""
        row = await self._select("profiles", "*", filters={"id": eq(user_id)}, single=True)
        return Profile(**row)

    async def find_profile(self, user_id: str) -> Optional[Profile]:
        try:
            return await self.get_profile(user_id)
        except NotFound:
            return None

    async def insert_profile(self, user_id: str, discord_username: Optional[str] = None) -> None:
        values: Dict[str, Any] = {"id": user_id}
        if discord_username:
            values["discord_username"] = discord_username
        await run_in_threadpool(self.store.insert, "profiles", values)

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        await run_in_threadpool(self.store.update, "profiles", fields, filters={"id": eq(user_id)})

    async def update_stats(self, player_id: str, stats: StatLine) -> None:
        await run_in_threadpool(
            self.store.update, "profiles", stats.model_dump(), filters={"id": eq(player_id)}
        )

    # ---------------- roles ----------------

    async def has_admin_role(self, user_id: str) -> bool:
        row = await self._select("admin_roles", "id", filters={"user_id": eq(user_id)}, maybe_single=True)
        return row is not None

    async def has_manager_assignment(self, user_id: str) -> bool:
        row = await self._select("manager_assignments", "id", filters={"user_id": eq(user_id)}, maybe_single=True)
        return row is not None

    # ---------------- free agents ----------------

    async def pending_free_agents(self) -> List[PendingFreeAgent]:
        rows = await self._select(
            "free_agent_approvals",
            f"id,status,created_at,profiles({SUMMARY_COLUMNS})",
            filters={"status": eq(ApprovalStatus.PENDING.value)},
            order="created_at.asc",
        )
        out: List[PendingFreeAgent] = []
        for row in rows:
            prof = _embedded(row.get("profiles"))
            if not prof:
                continue
            out.append(PendingFreeAgent(
                id=prof["id"],
                discord_username=prof.get("discord_username"),
                pro_clubs_name=prof.get("pro_clubs_name"),
                position=prof.get("position"),
                status=row.get("status") or ApprovalStatus.PENDING,
                created_at=row.get("created_at"),
            ))
        return out

    async def approved_free_agents(self) -> List[AvailableFreeAgent]:
        """Approved free agents who are not yet on any roster."""
        rows = await self._select(
            "free_agent_approvals",
            f"profiles({SUMMARY_COLUMNS},team_memberships(id))",
            filters={"status": eq(ApprovalStatus.APPROVED.value)},
        )
        out: List[AvailableFreeAgent] = []
        for row in rows:
            prof = _embedded(row.get("profiles"))
            if not prof or _embedded_many(prof.get("team_memberships")):
                continue
            out.append(AvailableFreeAgent(**{k: prof.get(k) for k in ("id", "discord_username", "pro_clubs_name", "position")}))
        return out

    async def set_free_agent_status(
        self, player_id: str, status: ApprovalStatus, approved_by: Optional[str] = None
    ) -> None:
        values: Dict[str, Any] = {"status": status.value, "approved_at": _now_iso()}
        if approved_by:
            values["approved_by"] = approved_by
        await run_in_threadpool(
            self.store.update, "free_agent_approvals", values, filters={"player_id": eq(player_id)}
        )

    async def submit_free_agent_application(self, player_id: str) -> None:
        """
        One approval record per player: a second application reopens the
        existing record as pending instead of adding a row.
        """
        try:
            await run_in_threadpool(
                self.store.insert,
                "free_agent_approvals",
                {"player_id": player_id, "status": ApprovalStatus.PENDING.value},
            )
        except UniqueViolation:
            await run_in_threadpool(
                self.store.update,
                "free_agent_approvals",
                {"status": ApprovalStatus.PENDING.value, "approved_at": None, "approved_by": None},
                filters={"player_id": eq(player_id)},
            )

    # ---------------- managers ----------------

    async def manager_assignments(self) -> List[ManagerAssignmentRow]:
        rows = await self._select(
            "manager_assignments",
            "id,user_id,team_id,profiles(discord_username,pro_clubs_name),teams(name)",
        )
        out: List[ManagerAssignmentRow] = []
        for row in rows:
            prof = _embedded(row.get("profiles")) or {}
            team = _embedded(row.get("teams")) or {}
            out.append(ManagerAssignmentRow(
                id=row["id"],
                user_id=row["user_id"],
                team_id=row["team_id"],
                discord_username=prof.get("discord_username"),
                pro_clubs_name=prof.get("pro_clubs_name"),
                team_name=team.get("name"),
            ))
        return out

    async def assign_manager(self, user_id: str, team_id: str, assigned_by: Optional[str] = None) -> None:
        values: Dict[str, Any] = {"user_id": user_id, "team_id": team_id}
        if assigned_by:
            values["assigned_by"] = assigned_by
        await run_in_threadpool(self.store.insert, "manager_assignments", values)

    async def remove_manager(self, assignment_id: str) -> None:
        await run_in_threadpool(self.store.delete, "manager_assignments", filters={"id": eq(assignment_id)})

    async def managed_teams(self, user_id: str) -> List[ManagedTeam]:
        rows = await self._select(
            "manager_assignments",
            f"teams(id,name,team_memberships(profiles({ROSTER_COLUMNS})))",
            filters={"user_id": eq(user_id)},
        )
        out: List[ManagedTeam] = []
        for row in rows:
            team = _embedded(row.get("teams"))
            if not team:
                continue
            players = []
            for membership in _embedded_many(team.get("team_memberships")):
                prof = _embedded(membership.get("profiles"))
                if prof:
                    players.append(RosterPlayer(**prof))
            out.append(ManagedTeam(id=team["id"], name=team["name"], players=players))
        return out

    # ---------------- teams / rosters ----------------

    async def team_options(self) -> List[TeamOption]:
        rows = await self._select("teams", "id,name", order="name.asc")
        return [TeamOption(**r) for r in rows]

    async def player_options(self) -> List[PlayerOption]:
        rows = await self._select("profiles", "id,discord_username,pro_clubs_name", order="discord_username.asc")
        return [PlayerOption(**r) for r in rows]

    async def add_team_membership(self, player_id: str, team_id: str) -> None:
        await run_in_threadpool(self.store.insert, "team_memberships", {"player_id": player_id, "team_id": team_id})

    async def _team_card(self, team: Dict[str, Any]) -> TeamCard:
        # manager and roster are independent reads; issue them together
        manager_row, member_rows = await asyncio.gather(
            self._select(
                "manager_assignments",
                "user_id,profiles(discord_username,pro_clubs_name)",
                filters={"team_id": eq(team["id"])},
                order="assigned_at.asc",
                maybe_single=True,
            ),
            self._select(
                "team_memberships",
                f"profiles({SUMMARY_COLUMNS})",
                filters={"team_id": eq(team["id"])},
            ),
        )
        manager = None
        if manager_row:
            prof = _embedded(manager_row.get("profiles")) or {}
            manager = ManagerSummary(user_id=manager_row.get("user_id"), **prof)
        players = [AvailableFreeAgent(**p) for p in (_embedded(m.get("profiles")) for m in member_rows) if p]
        return TeamCard(
            id=team["id"],
            name=team["name"],
            logo_url=team.get("logo_url"),
            manager=manager,
            players=players,
            player_count=len(member_rows),
        )

    async def team_cards(self) -> List[TeamCard]:
        teams = await self._select("teams", "*", order="name.asc")
        return list(await asyncio.gather(*(self._team_card(t) for t in teams)))

    async def player_cards(self) -> List[PlayerCard]:
        rows = await self._select("profiles", "*,team_memberships(teams(id,name))", order="pro_clubs_name.asc")
        out: List[PlayerCard] = []
        for row in rows:
            if not isinstance(row.get("id"), str) or not row["id"]:
                continue
            memberships = _embedded_many(row.pop("team_memberships", None))
            team = _embedded(memberships[0].get("teams")) if memberships else None
            out.append(PlayerCard(**row, team=TeamOption(**team) if team else None))
        return out
