"""
Clubs module.

Tracked Strava clubs, their statistics and activity score.
"""

from .models import Club
from .schemas import ClubStats, ClubCreate, ClubResponse
from .repository import ClubRepository
from .scoring import calculate_activity_score, score_club, coerce_finite

__all__ = [
    "Club",
    "ClubStats",
    "ClubCreate",
    "ClubResponse",
    "ClubRepository",
    "calculate_activity_score",
    "score_club",
    "coerce_finite",
]
