"""
Start time recovery from free text.

Used when a Strava payload carries no usable date field. Looks at the
event title + description for a date and a time, in English or Norwegian:

Dates:
- 2024-05-14, 14.05.2024, 14/05/2024
- 14 May 2024, 14. mai, May 14th
- today / tonight / tomorrow / i dag / i kveld / i morgen
- weekday names, optionally with this/next (denne/neste)

Times:
- 6pm, 6:30 pm
- 18:00, 18.00 (pace like "5:30/km" is ignored)
- kl 18, kl. 18

A date without a time means 18:00 local, the usual evening run.
A time without a date means the next occurrence of that time.
Results are naive UTC.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = time(18, 0)


# =============================================================================
# Vocabulary
# =============================================================================

MONTHS = {
    # English
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
    # Norwegian
    "januar": 1, "februar": 2, "mars": 3, "mai": 5, "juni": 6, "juli": 7,
    "oktober": 10, "okt": 10, "desember": 12, "des": 12,
}

WEEKDAYS = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
    "mandag": 0, "tirsdag": 1, "onsdag": 2, "torsdag": 3,
    "fredag": 4, "lørdag": 5, "lordag": 5, "søndag": 6, "sondag": 6,
}

RELATIVE_DAYS = {
    "today": 0, "tonight": 0, "i dag": 0, "i kveld": 0,
    "tomorrow": 1, "i morgen": 1,
}


def _alternation(words) -> str:
    # Longest first so "september" wins over "sep"
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


_MONTH = _alternation(MONTHS)
_WEEKDAY = _alternation(WEEKDAYS)
_RELATIVE = _alternation(RELATIVE_DAYS).replace(r"\ ", r"\s+")

ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[./](\d{1,2})[./](\d{4})\b")
DAY_MONTH_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\.?\s+(?:of\s+)?({_MONTH})\.?(?:,?\s+(\d{{4}}))?\b",
    re.IGNORECASE,
)
MONTH_DAY_RE = re.compile(
    rf"\b({_MONTH})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}}))?",
    re.IGNORECASE,
)
RELATIVE_RE = re.compile(rf"\b({_RELATIVE})\b", re.IGNORECASE)
WEEKDAY_RE = re.compile(
    rf"\b(?:(this|next|denne|neste|on|på)\s+)?({_WEEKDAY})(?:s|en)?\b",
    re.IGNORECASE,
)

AMPM_TIME_RE = re.compile(
    r"\b(\d{1,2})(?:[:.](\d{2}))?\s*([ap])\.?m\b\.?",
    re.IGNORECASE,
)
CLOCK_TIME_RE = re.compile(
    r"(?<![\d:.])([01]?\d|2[0-3])[:.]([0-5]\d)(?![\d:.])(?!\s*(?:min\b|/|per\b))",
    re.IGNORECASE,
)
KL_TIME_RE = re.compile(r"\bkl\.?\s*(\d{1,2})\b(?![:.]\d)", re.IGNORECASE)


# =============================================================================
# Date / time search
# =============================================================================

class _DateMatch:
    """Date found in text. `weekday` matches are resolved once the time is known."""

    def __init__(self, span: tuple[int, int], day: Optional[date] = None,
                 weekday: Optional[int] = None, qualifier: Optional[str] = None):
        self.span = span
        self.day = day
        self.weekday = weekday
        self.qualifier = qualifier


def _valid_year(year: int) -> bool:
    return 1970 <= year <= 2100


def _day_without_year(month: int, day: int, today: date) -> date:
    """Dates without a year mean the next such day (this year or next)."""
    candidate = date(today.year, month, day)
    if candidate < today:
        candidate = date(today.year + 1, month, day)
    return candidate


def find_date(text: str, today: date) -> Optional[_DateMatch]:
    """First explicit, relative or weekday date in `text`."""
    for m in ISO_DATE_RE.finditer(text):
        year, month, day = (int(g) for g in m.groups())
        if _valid_year(year):
            try:
                return _DateMatch(m.span(), day=date(year, month, day))
            except ValueError:
                continue

    for m in NUMERIC_DATE_RE.finditer(text):
        day, month, year = (int(g) for g in m.groups())
        if _valid_year(year):
            try:
                return _DateMatch(m.span(), day=date(year, month, day))
            except ValueError:
                continue

    for m in DAY_MONTH_RE.finditer(text):
        day, month = int(m.group(1)), MONTHS[m.group(2).lower()]
        try:
            if m.group(3) and _valid_year(int(m.group(3))):
                return _DateMatch(m.span(), day=date(int(m.group(3)), month, day))
            return _DateMatch(m.span(), day=_day_without_year(month, day, today))
        except ValueError:
            continue

    for m in MONTH_DAY_RE.finditer(text):
        month, day = MONTHS[m.group(1).lower()], int(m.group(2))
        try:
            if m.group(3) and _valid_year(int(m.group(3))):
                return _DateMatch(m.span(), day=date(int(m.group(3)), month, day))
            return _DateMatch(m.span(), day=_day_without_year(month, day, today))
        except ValueError:
            continue

    m = RELATIVE_RE.search(text)
    if m:
        offset = RELATIVE_DAYS[re.sub(r"\s+", " ", m.group(1).lower())]
        return _DateMatch(m.span(), day=today + timedelta(days=offset))

    m = WEEKDAY_RE.search(text)
    if m:
        qualifier = (m.group(1) or "").lower() or None
        return _DateMatch(m.span(), weekday=WEEKDAYS[m.group(2).lower()], qualifier=qualifier)

    return None


def find_time(text: str) -> Optional[time]:
    """First time of day in `text` (am/pm, then HH:MM, then "kl 18")."""
    for m in AMPM_TIME_RE.finditer(text):
        hour = int(m.group(1))
        minute = int(m.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            continue
        hour = hour % 12
        if m.group(3).lower() == "p":
            hour += 12
        return time(hour, minute)

    m = CLOCK_TIME_RE.search(text)
    if m:
        return time(int(m.group(1)), int(m.group(2)))

    for m in KL_TIME_RE.finditer(text):
        hour = int(m.group(1))
        if hour <= 23:
            return time(hour, 0)

    return None


# =============================================================================
# Recovery
# =============================================================================

def _to_utc(local_day: date, at: time, tz: ZoneInfo) -> datetime:
    local = datetime.combine(local_day, at).replace(tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def recover_start_from_text(
    text: str,
    now: datetime,
    tz: ZoneInfo,
) -> Optional[datetime]:
    """
    Recover an event start time from free text.

    Args:
        text: Title and description joined
        now: Current time, naive UTC
        tz: Club timezone the text is written in

    Returns:
        Start time as naive UTC, or None if the text has no date or time
    """
    if not text:
        return None

    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    today = local_now.date()

    date_match = find_date(text, today)
    if date_match:
        start, end = date_match.span
        # Don't read "14.05" of "14.05.2024" as a time
        remainder = text[:start] + " " + text[end:]
    else:
        remainder = text
    at = find_time(remainder)

    if date_match is None:
        if at is None:
            return None
        candidate = _to_utc(today, at, tz)
        if candidate <= now:
            candidate = _to_utc(today + timedelta(days=1), at, tz)
        logger.debug(f"Recovered time-only start {candidate} from text")
        return candidate

    at = at or DEFAULT_START_TIME

    if date_match.day is not None:
        return _to_utc(date_match.day, at, tz)

    # Weekday: next occurrence, today only if the time is still ahead
    days_ahead = (date_match.weekday - today.weekday()) % 7
    if days_ahead == 0:
        if date_match.qualifier in ("next", "neste") or _to_utc(today, at, tz) <= now:
            days_ahead = 7
    return _to_utc(today + timedelta(days=days_ahead), at, tz)
