"""
Strava group event -> Event fields.

Strava payloads are loosely structured: depending on the club and the
API version an event carries a local ISO time, a UTC ISO time, an epoch
timestamp, a list of upcoming occurrences, or nothing but prose. Each of
those shapes is a TimeSignal; they are tried in a fixed order and the
first one that parses wins.

Derived fields:
- pace ("5:30") and pace category (beginner / intermediate / advanced)
- distance in meters and distance range (short / medium / long)
- beginner friendly and interval training flags
- deep link to the event on Strava (always built from the club's Strava id)
"""

import logging
import math
import re
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from clubsync.config import settings
from clubsync.shared.clock import utcnow
from .date_recovery import recover_start_from_text

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)

PACE_RE = re.compile(r"(\d{1,2}:\d{2})\s*(?:min(?:utes)?)?\s*(?:/|per)\s*km", re.IGNORECASE)
DISTANCE_TEXT_RE = re.compile(r"(?<![\d:.,])(\d{1,3}(?:[.,]\d{1,2})?)\s*(?:km|k)\b", re.IGNORECASE)

BEGINNER_KEYWORDS = ("beginner", "nybegynner")

INTERVAL_KEYWORDS = (
    "interval",
    "intervals",
    "intervall",
    "intervaller",
    "bakkeintervall",
    "bakkeintervaller",
    "fartlek",
    "repeats",
    "sprint repeats",
    "hill repeats",
    "tempo",
    "track workout",
    "speed work",
)
_INTERVAL_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in sorted(INTERVAL_KEYWORDS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

EVENT_URL_TEMPLATE = "https://www.strava.com/clubs/{club_id}/group_events/{event_id}"
_EVENT_URL_RE = re.compile(r"^https://www\.strava\.com/clubs/([^/]+)/group_events/([^/?#]+)")


class DateRecoveryError(ValueError):
    """No usable start time anywhere in the payload."""
    pass


# =============================================================================
# Time signals
# =============================================================================

@dataclass(frozen=True)
class LocalIsoTime:
    """Wall-clock ISO time in the club timezone (Strava's start_date_local)."""
    value: str


@dataclass(frozen=True)
class UtcIsoTime:
    """ISO time in UTC or with an explicit offset."""
    value: str


@dataclass(frozen=True)
class EpochTime:
    """Unix timestamp, seconds or milliseconds."""
    value: Union[int, float, str]


@dataclass(frozen=True)
class TextOnlyTime:
    """Only prose is available: title + description."""
    text: str


TimeSignal = Union[LocalIsoTime, UtcIsoTime, EpochTime, TextOnlyTime]


def start_signals(raw: dict) -> list[TimeSignal]:
    """Start time candidates in priority order."""
    signals: list[TimeSignal] = []

    if raw.get("start_date_local"):
        signals.append(LocalIsoTime(raw["start_date_local"]))
    if raw.get("start_date"):
        signals.append(UtcIsoTime(raw["start_date"]))

    occurrences = raw.get("upcoming_occurrences")
    if isinstance(occurrences, list):
        signals.extend(UtcIsoTime(o) for o in occurrences if o)

    for key in ("start_date_epoch", "start_timestamp"):
        if raw.get(key) not in (None, ""):
            signals.append(EpochTime(raw[key]))

    text = _event_text(raw)
    if text:
        signals.append(TextOnlyTime(text))
    return signals


def end_signals(raw: dict) -> list[TimeSignal]:
    """Explicit end time candidates in priority order."""
    signals: list[TimeSignal] = []
    if raw.get("end_date_local"):
        signals.append(LocalIsoTime(raw["end_date_local"]))
    if raw.get("end_date"):
        signals.append(UtcIsoTime(raw["end_date"]))
    return signals


def _parse_iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def resolve_signal(signal: TimeSignal, tz: ZoneInfo, now: datetime) -> Optional[datetime]:
    """Turn one signal into naive UTC, or None when it does not parse."""
    if isinstance(signal, LocalIsoTime):
        # Strava suffixes local times with "Z" even though they are wall time
        value = signal.value.strip() if isinstance(signal.value, str) else signal.value
        if isinstance(value, str) and value.endswith(("Z", "z")):
            value = value[:-1]
        parsed = _parse_iso(value)
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz)
        result = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    elif isinstance(signal, UtcIsoTime):
        parsed = _parse_iso(signal.value)
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        result = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    elif isinstance(signal, EpochTime):
        try:
            seconds = float(signal.value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(seconds) or seconds <= 0:
            return None
        if seconds > 1e11:
            seconds /= 1000.0
        try:
            result = datetime.fromtimestamp(seconds, timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    elif isinstance(signal, TextOnlyTime):
        result = recover_start_from_text(signal.text, now, tz)
        if result is None:
            return None

    else:
        raise TypeError(f"Unknown time signal: {signal!r}")

    if not 1970 <= result.year <= 2100:
        return None
    return result


def resolve_start_time(raw: dict, tz: ZoneInfo, now: datetime) -> datetime:
    """
    First start time that parses.

    Raises:
        DateRecoveryError: if no signal yields a timestamp
    """
    for signal in start_signals(raw):
        start = resolve_signal(signal, tz, now)
        if start is not None:
            if not isinstance(signal, (LocalIsoTime, UtcIsoTime)):
                logger.info(
                    f"Event {raw.get('id')}: start time recovered from {type(signal).__name__}"
                )
            return start
    raise DateRecoveryError(f"No usable start time for event {raw.get('id')}")


def resolve_end_time(raw: dict, start: datetime, tz: ZoneInfo, now: datetime) -> datetime:
    """Explicit end, else start + declared duration, else start + 1 hour."""
    for signal in end_signals(raw):
        end = resolve_signal(signal, tz, now)
        if end is not None and end > start:
            return end

    for key in ("estimated_duration", "duration"):
        try:
            seconds = float(raw.get(key))
        except (TypeError, ValueError):
            continue
        if math.isfinite(seconds) and seconds > 0:
            return start + timedelta(seconds=seconds)

    return start + DEFAULT_DURATION


# =============================================================================
# Derived fields
# =============================================================================

def _event_text(raw: dict) -> str:
    parts = [raw.get("title"), raw.get("description")]
    return "\n".join(p for p in parts if isinstance(p, str) and p.strip())


def extract_pace(text: Optional[str]) -> Optional[str]:
    """First "M:SS /km" pace in the text, normalized to "M:SS"."""
    if not text:
        return None
    m = PACE_RE.search(text)
    if not m:
        return None
    minutes, seconds = m.group(1).split(":")
    return f"{int(minutes)}:{seconds}"


def pace_category(pace: Optional[str]) -> str:
    """
    Map pace to a category by its minutes part.

    >= 6 min/km  -> beginner
    5:00 - 5:59  -> intermediate
    < 5 min/km   -> advanced
    No pace defaults to beginner.
    """
    if not pace:
        return "beginner"
    minutes = int(pace.split(":")[0])
    if minutes >= 6:
        return "beginner"
    if minutes == 5:
        return "intermediate"
    return "advanced"


def extract_distance(raw: dict, text: str) -> Optional[int]:
    """Distance in meters: payload `distance` first, then "10 km" in text."""
    value = raw.get("distance")
    if value not in (None, ""):
        try:
            meters = float(value)
        except (TypeError, ValueError):
            meters = None
        if meters is not None and math.isfinite(meters) and meters > 0:
            return int(round(meters))

    m = DISTANCE_TEXT_RE.search(text or "")
    if m:
        km = float(m.group(1).replace(",", "."))
        if km > 0:
            return int(round(km * 1000))
    return None


def distance_range(meters: Optional[int]) -> Optional[str]:
    """< 5 km short, 5-10 km medium, > 10 km long."""
    if meters is None:
        return None
    if meters < 5000:
        return "short"
    if meters <= 10000:
        return "medium"
    return "long"


def is_beginner_friendly(text: Optional[str]) -> bool:
    lowered = (text or "").lower()
    return any(k in lowered for k in BEGINNER_KEYWORDS)


def is_interval_training(text: Optional[str]) -> bool:
    return bool(_INTERVAL_RE.search(text or ""))


# =============================================================================
# Deep links
# =============================================================================

def build_event_url(club_strava_id: str, event_id: str) -> str:
    """Link to the event on Strava. Must use the club's STRAVA id."""
    return EVENT_URL_TEMPLATE.format(club_id=club_strava_id, event_id=event_id)


def is_valid_event_url(url: Optional[str], club_strava_id: str) -> bool:
    """True if `url` is an event link under the club's Strava id."""
    if not url:
        return False
    m = _EVENT_URL_RE.match(url)
    return bool(m) and m.group(1) == str(club_strava_id)


def repair_event_url(url: str, club_id: int, club_strava_id: str) -> str:
    """Rewrite a link that embeds the local club id to use the Strava id."""
    m = _EVENT_URL_RE.match(url or "")
    if not m or m.group(1) != str(club_id):
        return url
    return build_event_url(club_strava_id, m.group(2))


# =============================================================================
# Extraction
# =============================================================================

@dataclass
class EventFields:
    """Typed fields for one Event row, minus the owning club."""

    strava_event_id: str
    title: str
    description: Optional[str]
    start_time: datetime
    end_time: datetime
    location: Optional[str]
    distance: Optional[int]
    distance_range: Optional[str]
    pace: Optional[str]
    pace_category: str
    beginner_friendly: bool
    is_interval_training: bool
    participant_count: Optional[int]
    strava_event_url: str

    def as_model_kwargs(self, club_id: int) -> dict:
        return {**asdict(self), "club_id": club_id}


def _clean_str(value: Any, limit: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value[:limit] if value else None


def extract_event_fields(
    raw: dict,
    club_strava_id: str,
    tz: Optional[ZoneInfo] = None,
    now: Optional[datetime] = None,
) -> EventFields:
    """
    Convert a Strava group event payload into Event fields.

    Args:
        raw: Strava group event JSON
        club_strava_id: Strava id of the owning club (for the deep link)
        tz: Club timezone, defaults to settings.club_timezone
        now: Naive UTC "now" for relative dates in free text

    Raises:
        DateRecoveryError: no usable start time anywhere in the payload
        KeyError / TypeError: payload is not an event (no id, not a dict)
    """
    if not isinstance(raw, dict):
        raise TypeError(f"Event payload must be a dict, got {type(raw).__name__}")

    tz = tz or ZoneInfo(settings.club_timezone)
    now = now or utcnow()

    event_id = str(raw["id"])
    text = _event_text(raw)
    description = raw.get("description") if isinstance(raw.get("description"), str) else None

    start = resolve_start_time(raw, tz, now)
    end = resolve_end_time(raw, start, tz, now)

    pace = extract_pace(description)
    meters = extract_distance(raw, text)

    athlete_count = raw.get("athlete_count")
    participant_count = athlete_count if isinstance(athlete_count, int) and athlete_count >= 0 else None

    return EventFields(
        strava_event_id=event_id,
        title=_clean_str(raw.get("title"), 500) or _clean_str(raw.get("name"), 500) or "Untitled event",
        description=description,
        start_time=start,
        end_time=end,
        location=_clean_str(raw.get("address"), 500) or _clean_str(raw.get("location"), 500),
        distance=meters,
        distance_range=distance_range(meters),
        pace=pace,
        pace_category=pace_category(pace),
        beginner_friendly=is_beginner_friendly(description),
        is_interval_training=is_interval_training(text),
        participant_count=participant_count,
        strava_event_url=build_event_url(club_strava_id, event_id),
    )
