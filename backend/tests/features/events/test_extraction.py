"""
Tests for Strava event field extraction.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from clubsync.features.events.extraction import (
    DateRecoveryError,
    EpochTime,
    LocalIsoTime,
    TextOnlyTime,
    UtcIsoTime,
    build_event_url,
    distance_range,
    extract_distance,
    extract_event_fields,
    extract_pace,
    is_beginner_friendly,
    is_interval_training,
    is_valid_event_url,
    pace_category,
    repair_event_url,
    resolve_signal,
    start_signals,
)


# =============================================================================
# Test Data
# =============================================================================

OSLO = ZoneInfo("Europe/Oslo")

# Wednesday 2024-05-08, 12:00 in Oslo
NOW = datetime(2024, 5, 8, 10, 0)

# 2024-05-14 16:00:00 UTC
EPOCH_SECONDS = 1_715_702_400


def payload(**fields) -> dict:
    data = {"id": 987654, "title": "Tuesday run"}
    data.update(fields)
    return data


# =============================================================================
# Tests: Start time
# =============================================================================

class TestStartTime:

    def test_local_time_with_z_is_wall_time(self):
        fields = extract_event_fields(
            payload(start_date_local="2024-05-14T18:00:00Z"), "1046872", OSLO, NOW
        )

        assert fields.start_time == datetime(2024, 5, 14, 16, 0)

    def test_utc_time_kept_as_utc(self):
        fields = extract_event_fields(
            payload(start_date="2024-05-14T16:00:00Z"), "1046872", OSLO, NOW
        )

        assert fields.start_time == datetime(2024, 5, 14, 16, 0)

    def test_utc_offset_normalized(self):
        result = resolve_signal(UtcIsoTime("2024-05-14T18:00:00+02:00"), OSLO, NOW)

        assert result == datetime(2024, 5, 14, 16, 0)

    def test_local_preferred_over_utc(self):
        raw = payload(
            start_date_local="2024-05-14T19:00:00Z",
            start_date="2024-05-14T16:00:00Z",
        )

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.start_time == datetime(2024, 5, 14, 17, 0)

    def test_upcoming_occurrences(self):
        raw = payload(upcoming_occurrences=["2024-05-14T16:00:00Z", "2024-05-21T16:00:00Z"])

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.start_time == datetime(2024, 5, 14, 16, 0)

    @pytest.mark.parametrize("value", [EPOCH_SECONDS, EPOCH_SECONDS * 1000, str(EPOCH_SECONDS)])
    def test_epoch_seconds_and_milliseconds(self, value):
        assert resolve_signal(EpochTime(value), OSLO, NOW) == datetime(2024, 5, 14, 16, 0)

    def test_unparseable_signal_falls_through(self):
        raw = payload(start_date_local="not a date", start_timestamp=EPOCH_SECONDS)

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.start_time == datetime(2024, 5, 14, 16, 0)

    def test_out_of_range_year_rejected(self):
        assert resolve_signal(LocalIsoTime("2150-01-01T10:00:00"), OSLO, NOW) is None

    def test_text_only_weekday(self):
        """Wednesday now, "this Tuesday at 18:00" is next week's Tuesday."""
        raw = {"id": 1, "title": "Club run", "description": "this Tuesday at 18:00"}

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.start_time == datetime(2024, 5, 14, 16, 0)

    def test_signal_order(self):
        raw = payload(
            description="Tomorrow",
            start_date_local="2024-05-14T18:00:00Z",
            start_date="2024-05-14T16:00:00Z",
            start_timestamp=EPOCH_SECONDS,
        )

        kinds = [type(s) for s in start_signals(raw)]

        assert kinds == [LocalIsoTime, UtcIsoTime, EpochTime, TextOnlyTime]

    def test_no_time_anywhere_raises(self):
        raw = {"id": 1, "title": "Club run", "description": "See you there!"}

        with pytest.raises(DateRecoveryError):
            extract_event_fields(raw, "1", OSLO, NOW)


# =============================================================================
# Tests: End time
# =============================================================================

class TestEndTime:

    def test_defaults_to_one_hour(self):
        fields = extract_event_fields(payload(start_date="2024-05-14T16:00:00Z"), "1", OSLO, NOW)

        assert fields.end_time == datetime(2024, 5, 14, 17, 0)

    def test_explicit_end(self):
        raw = payload(start_date="2024-05-14T16:00:00Z", end_date="2024-05-14T18:30:00Z")

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.end_time == datetime(2024, 5, 14, 18, 30)

    def test_end_before_start_ignored(self):
        raw = payload(start_date="2024-05-14T16:00:00Z", end_date="2024-05-14T15:00:00Z")

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.end_time == datetime(2024, 5, 14, 17, 0)

    def test_estimated_duration(self):
        raw = payload(start_date="2024-05-14T16:00:00Z", estimated_duration=5400)

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.end_time == datetime(2024, 5, 14, 17, 30)


# =============================================================================
# Tests: Derived fields
# =============================================================================

class TestDerivedFields:

    @pytest.mark.parametrize("text,expected", [
        ("Easy run at 6:30/km", "6:30"),
        ("pace 05:15 min/km", "5:15"),
        ("4:45 per km intervals", "4:45"),
        ("No pace given", None),
        (None, None),
    ])
    def test_extract_pace(self, text, expected):
        assert extract_pace(text) == expected

    @pytest.mark.parametrize("pace,expected", [
        ("7:00", "beginner"),
        ("6:00", "beginner"),
        ("5:59", "intermediate"),
        ("5:00", "intermediate"),
        ("4:59", "advanced"),
        (None, "beginner"),
    ])
    def test_pace_category(self, pace, expected):
        assert pace_category(pace) == expected

    @pytest.mark.parametrize("meters,expected", [
        (4999, "short"),
        (5000, "medium"),
        (10000, "medium"),
        (10001, "long"),
        (None, None),
    ])
    def test_distance_range(self, meters, expected):
        assert distance_range(meters) == expected

    def test_distance_from_payload_wins(self):
        assert extract_distance({"distance": 12000.4}, "5 km") == 12000

    def test_distance_from_text(self):
        assert extract_distance({}, "Long run, 21,1 km along the river") == 21100

    def test_distance_ignores_pace(self):
        assert extract_distance({}, "Run at 5:30/km") is None

    def test_beginner_friendly(self):
        assert is_beginner_friendly("Beginners welcome!")
        assert is_beginner_friendly("Passer for nybegynnere")
        assert not is_beginner_friendly("Hard session")

    def test_interval_training(self):
        assert is_interval_training("Hill repeats on Ekeberg")
        assert is_interval_training("Bakkeintervall i kveld")
        assert is_interval_training("Tempo Tuesday")
        assert is_interval_training("Intervaller på Bislett")
        assert not is_interval_training("Easy social run")

    def test_interval_keywords_match_whole_words(self):
        assert not is_interval_training("Temporary meeting point at the park")
        assert not is_interval_training("Temporarily moved to Frogner")
        assert not is_interval_training("Start repeatedly delayed")

    def test_full_extraction(self):
        raw = payload(
            title="Intervals at the track",
            description="6x1000m intervals, 10 km total at 4:30/km. Beginners welcome.",
            start_date_local="2024-05-14T18:00:00Z",
            address="Bislett stadion",
            athlete_count=17,
        )

        fields = extract_event_fields(raw, "1046872", OSLO, NOW)

        assert fields.strava_event_id == "987654"
        assert fields.title == "Intervals at the track"
        assert fields.location == "Bislett stadion"
        assert fields.distance == 10000
        assert fields.distance_range == "medium"
        assert fields.pace == "4:30"
        assert fields.pace_category == "advanced"
        assert fields.beginner_friendly is True
        assert fields.is_interval_training is True
        assert fields.participant_count == 17

    def test_pace_and_beginner_read_description_only(self):
        raw = payload(
            title="Beginner group 6:30/km",
            description="Social run along the river",
            start_date_local="2024-05-14T18:00:00Z",
        )

        fields = extract_event_fields(raw, "1046872", OSLO, NOW)

        assert fields.pace is None
        assert fields.pace_category == "beginner"
        assert fields.beginner_friendly is False

    def test_missing_title_fallback(self):
        raw = {"id": 5, "start_date": "2024-05-14T16:00:00Z"}

        fields = extract_event_fields(raw, "1", OSLO, NOW)

        assert fields.title == "Untitled event"
        assert fields.description is None
        assert fields.participant_count is None

    def test_as_model_kwargs_adds_club(self):
        fields = extract_event_fields(payload(start_date="2024-05-14T16:00:00Z"), "1", OSLO, NOW)

        kwargs = fields.as_model_kwargs(club_id=3)

        assert kwargs["club_id"] == 3
        assert kwargs["strava_event_id"] == "987654"

    def test_non_dict_payload(self):
        with pytest.raises(TypeError):
            extract_event_fields(["not", "an", "event"], "1", OSLO, NOW)

    def test_missing_id(self):
        with pytest.raises(KeyError):
            extract_event_fields({"start_date": "2024-05-14T16:00:00Z"}, "1", OSLO, NOW)


# =============================================================================
# Tests: Deep links
# =============================================================================

class TestEventUrls:

    def test_url_uses_strava_club_id(self):
        fields = extract_event_fields(payload(start_date="2024-05-14T16:00:00Z"), "1046872", OSLO, NOW)

        assert fields.strava_event_url == "https://www.strava.com/clubs/1046872/group_events/987654"

    def test_is_valid_event_url(self):
        url = build_event_url("1046872", "55")

        assert is_valid_event_url(url, "1046872")
        assert not is_valid_event_url(url, "3")
        assert not is_valid_event_url(None, "1046872")

    def test_repair_local_id_url(self):
        broken = "https://www.strava.com/clubs/3/group_events/55"

        assert repair_event_url(broken, 3, "1046872") == build_event_url("1046872", "55")

    def test_repair_leaves_other_urls(self):
        url = "https://www.strava.com/clubs/999/group_events/55"

        assert repair_event_url(url, 3, "1046872") == url
