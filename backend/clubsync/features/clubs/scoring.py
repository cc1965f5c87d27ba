"""
Club activity score.

Ranks clubs by how active they have been over the last two months:

    recency   = max(0, 150 - days_since_last_event ** 1.2)
    frequency = min(150, round(recent_events / 8.7 * 40))    # 8.7 weeks in two months
    score     = recent_events * 15 + avg_participants * 5 + recency + frequency

rounded, never below zero. `now` is always passed in so scores are
reproducible.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

RECENT_WINDOW = timedelta(days=61)
WEEKS_IN_WINDOW = 8.7

EVENT_WEIGHT = 15
PARTICIPANT_WEIGHT = 5
MAX_RECENCY = 150
RECENCY_EXPONENT = 1.2
MAX_FREQUENCY_BONUS = 150
FREQUENCY_PER_WEEK = 40


def coerce_finite(value: Optional[float]) -> float:
    """None, NaN and infinities become 0."""
    if value is None:
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def count_recent(start_times: Iterable[Optional[datetime]], now: datetime) -> int:
    """Events in the trailing window (now - 61 days, now]."""
    window_start = now - RECENT_WINDOW
    return sum(1 for t in start_times if t is not None and window_start < t <= now)


def recency_score(last_event_date: Optional[datetime], now: datetime) -> float:
    if last_event_date is None:
        return 0.0
    days = max(0, math.floor((now - last_event_date).total_seconds() / 86400))
    return max(0.0, MAX_RECENCY - days ** RECENCY_EXPONENT)


def frequency_bonus(recent_event_count: int) -> int:
    return min(MAX_FREQUENCY_BONUS, round((recent_event_count / WEEKS_IN_WINDOW) * FREQUENCY_PER_WEEK))


def calculate_activity_score(
    recent_event_count: int,
    avg_participants: Optional[float],
    last_event_date: Optional[datetime],
    now: datetime,
) -> int:
    """
    Composite activity score.

    Args:
        recent_event_count: Events in the last 61 days
        avg_participants: Average participants per event (NaN -> 0)
        last_event_date: Start of the most recent event, naive UTC
        now: Evaluation instant, naive UTC

    Returns:
        Non-negative integer score
    """
    recent = int(coerce_finite(recent_event_count))
    if recent <= 0 and last_event_date is None:
        return 0

    score = (
        recent * EVENT_WEIGHT
        + coerce_finite(avg_participants) * PARTICIPANT_WEIGHT
        + recency_score(last_event_date, now)
        + frequency_bonus(recent)
    )
    return max(0, round(coerce_finite(score)))


def score_club(
    avg_participants: Optional[float],
    last_event_date: Optional[datetime],
    event_start_times: Iterable[Optional[datetime]],
    now: datetime,
) -> int:
    """Score from a club's stats plus its events' start times."""
    return calculate_activity_score(
        recent_event_count=count_recent(event_start_times, now),
        avg_participants=avg_participants,
        last_event_date=last_event_date,
        now=now,
    )
