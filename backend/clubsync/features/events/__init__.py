"""
Events module.

Synced Strava group events, field extraction and per-user hide markers.
"""

from .models import Event, HiddenEvent
from .schemas import EventFilters, EventResponse, HideEventRequest
from .extraction import (
    DateRecoveryError,
    EventFields,
    extract_event_fields,
    build_event_url,
    is_valid_event_url,
    repair_event_url,
)
from .date_recovery import recover_start_from_text
from .repository import EventRepository, HiddenEventRepository

__all__ = [
    # Models
    "Event",
    "HiddenEvent",
    # Schemas
    "EventFilters",
    "EventResponse",
    "HideEventRequest",
    # Extraction
    "DateRecoveryError",
    "EventFields",
    "extract_event_fields",
    "build_event_url",
    "is_valid_event_url",
    "repair_event_url",
    "recover_start_from_text",
    # Repositories
    "EventRepository",
    "HiddenEventRepository",
]
