"""
Club schemas.

Pydantic models for club operations.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


@dataclass
class ClubStats:
    """Derived statistics written after a sync pass."""

    events_count: int = 0
    avg_participants: float = 0.0
    participants_count: int = 0
    last_event_date: Optional[datetime] = None
    club_score: int = 0


class ClubCreate(BaseModel):
    """Register a club."""

    strava_club_id: str
    name: str
    strava_club_url: Optional[str] = None
    admin_email: Optional[str] = None
    website: Optional[str] = None
    pace_categories: list[str] = []
    distance_ranges: list[str] = []
    meeting_frequency: str = "irregular"
    approved: bool = False


class ClubResponse(BaseModel):
    """Club response. Credentials are never exposed."""

    id: int
    strava_club_id: str
    name: str
    strava_club_url: str
    website: Optional[str] = None
    pace_categories: list[str] = []
    distance_ranges: list[str] = []
    meeting_frequency: str
    events_count: int = 0
    avg_participants: float = 0.0
    participants_count: int = 0
    last_event_date: Optional[datetime] = None
    club_score: int = 0

    class Config:
        from_attributes = True
