"""
Event schemas.

Pydantic models for event queries and responses.
"""

from datetime import datetime, time
from typing import Optional, Literal

from pydantic import BaseModel, Field

PaceCategory = Literal["beginner", "intermediate", "advanced"]
DistanceRange = Literal["short", "medium", "long"]


class EventFilters(BaseModel):
    """
    Event query predicate.

    Dates are day-granular: start_date means "from that day", end_date
    means "through that day". Cache keys rely on this.
    """

    club_ids: Optional[list[int]] = None
    pace_categories: Optional[list[PaceCategory]] = None
    distance_ranges: Optional[list[DistanceRange]] = None
    beginner_friendly: Optional[bool] = None
    is_interval_training: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def normalized(self) -> "EventFilters":
        """Copy with sorted, de-duplicated lists and dates truncated to midnight."""

        def _day(value: Optional[datetime]) -> Optional[datetime]:
            if value is None:
                return None
            return datetime.combine(value.date(), time.min)

        return EventFilters(
            club_ids=sorted(set(self.club_ids)) if self.club_ids else None,
            pace_categories=sorted(set(self.pace_categories)) if self.pace_categories else None,
            distance_ranges=sorted(set(self.distance_ranges)) if self.distance_ranges else None,
            beginner_friendly=True if self.beginner_friendly else None,
            is_interval_training=self.is_interval_training,
            start_date=_day(self.start_date),
            end_date=_day(self.end_date),
        )

    def is_empty(self) -> bool:
        n = self.normalized()
        return not any([
            n.club_ids, n.pace_categories, n.distance_ranges,
            n.beginner_friendly, n.is_interval_training is not None,
            n.start_date, n.end_date,
        ])


class EventResponse(BaseModel):
    """Event response."""

    id: int
    strava_event_id: str
    club_id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    distance: Optional[int] = None
    distance_range: Optional[str] = None
    pace: Optional[str] = None
    pace_category: Optional[str] = None
    beginner_friendly: bool = False
    is_interval_training: bool = False
    participant_count: Optional[int] = None
    strava_event_url: str

    class Config:
        from_attributes = True


class HideEventRequest(BaseModel):
    """Hide an event from a user's calendar."""

    user_id: int = Field(..., ge=1)
