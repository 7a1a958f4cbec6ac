from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel

from league_portal.schemas.profile import Profile, StatLine


POSITIONS = [
    "GK", "LB", "CB", "RB", "LWB", "RWB",
    "CDM", "CM", "CAM", "LM", "RM", "LW", "RW", "ST", "CF",
]


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TeamOption(BaseModel):
    id: str
    name: str


class PlayerOption(BaseModel):
    id: str
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None


class PendingFreeAgent(BaseModel):
    id: str  # profile id, not the approval row id
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    position: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: Optional[datetime] = None


class ManagerAssignmentRow(BaseModel):
    id: str
    user_id: str
    team_id: str
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    team_name: Optional[str] = None


class RosterPlayer(BaseModel):
    id: str
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    position: Optional[str] = None
    goals: int = 0
    assists: int = 0
    average_rating: float = 0.0

    def stat_line(self) -> StatLine:
        return StatLine(goals=self.goals, assists=self.assists, average_rating=self.average_rating)


class ManagedTeam(BaseModel):
    id: str
    name: str
    players: List[RosterPlayer] = []


class AvailableFreeAgent(BaseModel):
    id: str
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    position: Optional[str] = None


class ManagerSummary(BaseModel):
    user_id: Optional[str] = None
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None


class TeamCard(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    manager: Optional[ManagerSummary] = None
    players: List[AvailableFreeAgent] = []
    player_count: int = 0


class PlayerCard(Profile):
    team: Optional[TeamOption] = None


# ---- panel payloads ----

class AdminPanelData(BaseModel):
    loading: bool
    free_agents: List[PendingFreeAgent]
    managers: List[ManagerAssignmentRow]
    teams: List[TeamOption]
    players: List[PlayerOption]


class ManagerPanelData(BaseModel):
    loading: bool
    managed_teams: List[ManagedTeam]
    free_agents: List[AvailableFreeAgent]
    editing_player: Optional[str] = None
    stat_form: Optional[StatLine] = None


class AssignmentRequest(BaseModel):
    player_id: Optional[str] = None
    team_id: Optional[str] = None
