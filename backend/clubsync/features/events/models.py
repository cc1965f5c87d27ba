"""
Event database models.

Models:
- Event: a Strava group event synced into the local store
- HiddenEvent: per-user marker hiding an event from that user's calendar
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, Integer, Boolean, Text, ForeignKey, UniqueConstraint,
)

from clubsync.models.base import Base


class Event(Base):
    """
    Synced Strava group event.

    `strava_event_id` is unique: sync looks it up before writing and
    overwrites in place, it never inserts blindly.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    strava_event_id = Column(String(32), unique=True, nullable=False, index=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)

    # Naive UTC
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=True)

    location = Column(String(500), nullable=True)
    distance = Column(Integer, nullable=True)  # meters
    distance_range = Column(String(16), nullable=True)  # short|medium|long
    pace = Column(String(8), nullable=True)  # "5:30"
    pace_category = Column(String(16), nullable=True)  # beginner|intermediate|advanced
    beginner_friendly = Column(Boolean, nullable=False, default=False)
    is_interval_training = Column(Boolean, nullable=False, default=False)
    participant_count = Column(Integer, nullable=True)

    strava_event_url = Column(String(512), nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Event id={self.id} strava_event_id={self.strava_event_id} start={self.start_time}>"


class HiddenEvent(Base):
    """User-level hide marker. Deleted before events on a full reset."""

    __tablename__ = "hidden_events"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_hidden_events_user_event"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<HiddenEvent user_id={self.user_id} event_id={self.event_id}>"
