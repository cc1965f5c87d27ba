"""
Club database model.

A club is a Strava club registered for event sync. It has two identities:
the local autoincrement `id` and Strava's `strava_club_id`. Deep links to
Strava must always use the latter.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, Text, JSON

from clubsync.models.base import Base
from clubsync.features.strava.schemas import StravaTokens


class Club(Base):
    """
    Tracked running club.

    Credentials are (access, refresh, expires_at). A partially filled tuple
    is treated as no credentials at all; see `credentials`.
    """

    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    strava_club_id = Column(String(32), unique=True, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    strava_club_url = Column(String(512), nullable=False)
    admin_email = Column(String(255), nullable=True)
    website = Column(String(512), nullable=True)

    # Declared attributes
    pace_categories = Column(JSON, nullable=False, default=list)    # beginner|intermediate|advanced
    distance_ranges = Column(JSON, nullable=False, default=list)    # short|medium|long
    meeting_frequency = Column(String(32), nullable=False, default="irregular")
    approved = Column(Boolean, nullable=False, default=False)

    # Strava credentials (should be encrypted in production)
    strava_access_token = Column(Text, nullable=True)
    strava_refresh_token = Column(Text, nullable=True)
    strava_token_expires_at = Column(DateTime, nullable=True)

    # Derived statistics, written after each sync
    events_count = Column(Integer, nullable=False, default=0)
    avg_participants = Column(Float, nullable=False, default=0.0)
    participants_count = Column(Integer, nullable=False, default=0)
    last_event_date = Column(DateTime, nullable=True)
    club_score = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def credentials(self) -> Optional[StravaTokens]:
        """Token tuple, or None unless access, refresh and expiry are all set."""
        if not (self.strava_access_token and self.strava_refresh_token):
            return None
        expires_at = self.strava_token_expires_at
        if expires_at is None or expires_at <= datetime(1970, 1, 1):
            return None
        return StravaTokens(
            access_token=self.strava_access_token,
            refresh_token=self.strava_refresh_token,
            expires_at=expires_at,
        )

    def __repr__(self):
        return f"<Club id={self.id} strava_club_id={self.strava_club_id} name={self.name!r}>"
