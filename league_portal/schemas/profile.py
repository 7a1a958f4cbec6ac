from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Profile(BaseModel):
    id: str
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    position: Optional[str] = None
    goals: int = 0
    assists: int = 0
    average_rating: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    # only fields a player may edit on their own profile; unset fields are not sent
    discord_username: Optional[str] = None
    pro_clubs_name: Optional[str] = None
    position: Optional[str] = None


class StatLine(BaseModel):
    goals: int = 0
    assists: int = 0
    average_rating: float = 0.0
