"""Tests for dayline/timeline/normalizer.py

Key behaviors:
- Ordering: start time at 15-minute granularity, then kind priority
- Overlaps are symmetric; zero-length rows never overlap
- Messages without an end get the default message duration
- Planned calendar entries pair with their actual counterpart
- is_past is evaluated against the caller's "now"
- Malformed auxiliary records reject the whole day
"""

from datetime import timedelta

import pytest

from dayline.blocks.builder import build_location_blocks
from dayline.errors import MalformedInputError
from dayline.models import ActivityType
from dayline.timeline.events import (
    AuxiliaryEvents,
    CalendarEntry,
    CallRecord,
    ChatMessageRecord,
    EmailRecord,
    MeetingRecord,
    ProductivityFlag,
    SmsRecord,
    TimelineEvent,
    TimelineEventKind,
    WebsiteVisitRecord,
)
from dayline.timeline.normalizer import build_timeline, detect_overlaps
from tests.conftest import HOME, WORK, at


@pytest.fixture
def work_blocks(make_summary, places, config):
    """Home 7-9, Work 9-11 with Slack 9:00-9:20."""
    summaries = [
        make_summary("h7", 7, location=HOME, activity=ActivityType.PERSONAL_TIME),
        make_summary(
            "h8",
            8,
            location=HOME,
            activity=ActivityType.PERSONAL_TIME,
            apps=[("instagram", "social", 30, 45), ("youtube", None, 45, 50)],
        ),
        make_summary(
            "h9",
            9,
            location=WORK,
            activity=ActivityType.DEEP_WORK,
            apps=[("slack", "communication", 0, 20)],
        ),
        make_summary("h10", 10, location=WORK, activity=ActivityType.DEEP_WORK),
    ]
    return build_location_blocks(summaries, places, config=config)


def _by_id(events):
    return {e.id: e for e in events}


# ─────────────────────────────────────────────────────────────────────────────
# Ordering and Overlaps
# ─────────────────────────────────────────────────────────────────────────────


class TestOrderingAndOverlaps:
    """Tests for feed order and the overlap sweep."""

    def test_meeting_before_app_in_same_bucket(self, work_blocks, config):
        """Meeting 9:10-9:30 sorts before app 9:00-9:20; both overlap."""
        auxiliary = AuxiliaryEvents(
            meetings=[MeetingRecord(id="m1", title="Design review", start_time=at(9, 10), end_time=at(9, 30))]
        )
        events = build_timeline(work_blocks, auxiliary, config=config)
        work_events = [e for e in events if e.start_time >= at(9)]

        assert [e.kind for e in work_events] == [TimelineEventKind.MEETING, TimelineEventKind.APP]
        meeting, app = work_events
        assert meeting.overlaps == [app.id]
        assert app.overlaps == [meeting.id]

    def test_later_bucket_sorts_after(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            meetings=[MeetingRecord(id="m1", title="Sync", start_time=at(9, 15), end_time=at(9, 45))]
        )
        events = [e for e in build_timeline(work_blocks, auxiliary, config=config) if e.start_time >= at(9)]
        assert [e.kind for e in events] == [TimelineEventKind.APP, TimelineEventKind.MEETING]

    def test_overlaps_symmetric(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            meetings=[
                MeetingRecord(id="m1", title="A", start_time=at(9, 5), end_time=at(9, 50)),
                MeetingRecord(id="m2", title="B", start_time=at(9, 40), end_time=at(10, 10)),
            ],
            calls=[CallRecord(id="c1", start_time=at(10), end_time=at(10, 5), contact="Sam")],
        )
        events = build_timeline(work_blocks, auxiliary, config=config)
        by_id = _by_id(events)
        for event in events:
            for other_id in event.overlaps:
                assert event.id in by_id[other_id].overlaps
        assert by_id["meeting-m2"].overlaps == ["call-c1", "meeting-m1"]

    def test_adjacent_rows_do_not_overlap(self):
        first = TimelineEvent(
            id="a", kind=TimelineEventKind.APP, kind_label="App", title="A",
            start_time=at(9), end_time=at(9, 30), duration_minutes=30,
        )
        second = TimelineEvent(
            id="b", kind=TimelineEventKind.APP, kind_label="App", title="B",
            start_time=at(9, 30), end_time=at(10), duration_minutes=30,
        )
        detect_overlaps([first, second])
        assert first.overlaps == []
        assert second.overlaps == []

    def test_zero_length_never_overlaps(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            calls=[CallRecord(id="c0", start_time=at(9, 10), end_time=at(9, 10), contact="Sam")]
        )
        events = build_timeline(work_blocks, auxiliary, config=config)
        by_id = _by_id(events)

        assert by_id["call-c0"].overlaps == []
        assert all("call-c0" not in e.overlaps for e in events)
        assert by_id["call-c0"].duration_minutes == 0


# ─────────────────────────────────────────────────────────────────────────────
# Row Construction
# ─────────────────────────────────────────────────────────────────────────────


class TestRows:
    """Tests for per-source row fields."""

    def test_app_rows(self, work_blocks, config):
        events = build_timeline(work_blocks, config=config)
        slack = next(e for e in events if e.app_id == "slack")

        assert slack.id == f"app-slack-{int(at(9).timestamp() * 1000)}"
        assert slack.title == "Slack"
        assert slack.kind_label == "App"
        assert slack.duration_minutes == 20
        assert slack.block_id == "h9"
        assert slack.summary_ids == ["h9"]

    def test_messages_get_default_duration(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            emails=[EmailRecord(id="e1", sent_at=at(9, 30), subject="Q3 plan", recipients=["a", "b"])],
            chats=[ChatMessageRecord(id="s1", sent_at=at(9, 40), channel="general", text="lunch?")],
            sms=[SmsRecord(id="t1", sent_at=at(9, 50), contact="Mum", direction="received")],
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        email = by_id["email-e1"]
        assert email.end_time == at(9, 35)
        assert email.duration_minutes == 5
        assert email.subtitle == "2 Recipients"
        assert email.kind_label == "E-Mail"
        assert by_id["chat-s1"].subtitle == "#general"
        assert by_id["chat-s1"].title == "lunch?"
        assert by_id["sms-t1"].subtitle == "Received"

    def test_singular_and_fallback_subtitles(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            emails=[EmailRecord(id="e1", sent_at=at(9, 30), recipients=["a"])],
            meetings=[
                MeetingRecord(
                    id="m1", title="1:1", start_time=at(10), end_time=at(10, 30), location="Room 4"
                ),
                MeetingRecord(
                    id="m2", title="Retro", start_time=at(10, 30), end_time=at(10, 45), attendees=["x"]
                ),
            ],
            calls=[CallRecord(id="c1", start_time=at(10), end_time=at(10, 5), direction="incoming")],
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        assert by_id["email-e1"].subtitle == "1 Recipient"
        assert by_id["email-e1"].title == "E-Mail"
        assert by_id["meeting-m1"].subtitle == "Room 4"
        assert by_id["meeting-m2"].subtitle == "1 Attendee"
        assert by_id["call-c1"].subtitle == "Incoming"
        assert by_id["call-c1"].title == "Phone Call"

    def test_website_rows(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            websites=[
                WebsiteVisitRecord(id="w1", domain="news.example.com", start_time=at(9, 30)),
                WebsiteVisitRecord(
                    id="w2",
                    domain="docs.example.com",
                    start_time=at(10),
                    end_time=at(10, 25),
                    title="API docs",
                    category="productivity",
                ),
            ]
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        assert by_id["web-w1"].title == "news.example.com"
        assert by_id["web-w1"].end_time == at(9, 35)
        assert by_id["web-w2"].subtitle == "docs.example.com"
        assert by_id["web-w2"].app_category == "work"
        assert by_id["web-w2"].productivity == ProductivityFlag.PRODUCTIVE


# ─────────────────────────────────────────────────────────────────────────────
# Productivity
# ─────────────────────────────────────────────────────────────────────────────


class TestProductivity:
    """Tests for productivity flags on rows."""

    def test_social_and_distraction_apps_unproductive(self, work_blocks, config):
        events = build_timeline(work_blocks, config=config)
        by_app = {e.app_id: e for e in events if e.app_id}

        assert by_app["instagram"].productivity == ProductivityFlag.UNPRODUCTIVE
        assert by_app["youtube"].app_category == "entertainment"
        assert by_app["youtube"].productivity == ProductivityFlag.UNPRODUCTIVE

    def test_communication_productive_only_in_work_context(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            emails=[
                EmailRecord(id="home", sent_at=at(7, 30), app_category="communication"),
                EmailRecord(id="work", sent_at=at(9, 30), app_category="communication"),
            ]
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        assert by_id["email-home"].productivity == ProductivityFlag.NEUTRAL
        assert by_id["email-work"].productivity == ProductivityFlag.PRODUCTIVE

    def test_no_category_is_neutral(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(calls=[CallRecord(id="c1", start_time=at(9), end_time=at(9, 5))])
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))
        assert by_id["call-c1"].productivity == ProductivityFlag.NEUTRAL


# ─────────────────────────────────────────────────────────────────────────────
# Calendar
# ─────────────────────────────────────────────────────────────────────────────


class TestCalendar:
    """Tests for planned/actual calendar pairing."""

    def test_planned_matched_by_overlap_and_title(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            scheduled=[CalendarEntry(id="p1", title="Standup", start_time=at(9), end_time=at(9, 15))],
            actuals=[CalendarEntry(id="a1", title="Standup", start_time=at(9, 2), end_time=at(9, 14))],
        )
        events = build_timeline(work_blocks, auxiliary, config=config)
        calendar = [e for e in events if e.id.startswith("cal-")]

        assert len(calendar) == 1
        row = calendar[0]
        assert row.id == "cal-p1"
        assert row.kind == TimelineEventKind.SCHEDULED
        assert row.scheduled_event.id == "p1"
        assert row.actual_event.id == "a1"

    def test_planned_matched_by_id(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            scheduled=[CalendarEntry(id="p1", title="Gym", start_time=at(7), end_time=at(8))],
            actuals=[
                CalendarEntry(
                    id="a1", title="Run", start_time=at(10), end_time=at(10, 30), planned_event_id="p1"
                )
            ],
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))
        assert by_id["cal-p1"].actual_event.id == "a1"
        assert "cal-actual-a1" not in by_id

    def test_unmatched_actual_becomes_meeting(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            scheduled=[CalendarEntry(id="p1", title="Standup", start_time=at(9), end_time=at(9, 15))],
            actuals=[CalendarEntry(id="a1", title="Coffee", start_time=at(10), end_time=at(10, 20))],
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        assert by_id["cal-p1"].actual_event is None
        assert by_id["cal-actual-a1"].kind == TimelineEventKind.MEETING
        assert by_id["cal-actual-a1"].actual_event.id == "a1"

    def test_different_block_does_not_match(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            scheduled=[CalendarEntry(id="p1", title="Call", start_time=at(8, 30), end_time=at(9, 30))],
            actuals=[CalendarEntry(id="a1", title="Call", start_time=at(9, 10), end_time=at(9, 20))],
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))
        assert by_id["cal-p1"].actual_event is None

    def test_derived_entries_skipped(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            scheduled=[
                CalendarEntry(id="d1", title="Screen time", start_time=at(9), end_time=at(10), kind="screen_time"),
                CalendarEntry(id="d2", title="Evidence", start_time=at(9), end_time=at(10), source="derived"),
            ],
            actuals=[CalendarEntry(id="d3", title="Commute", start_time=at(8), end_time=at(9), kind="commute")],
        )
        events = build_timeline(work_blocks, auxiliary, config=config)
        assert not [e for e in events if e.id.startswith("cal-")]


# ─────────────────────────────────────────────────────────────────────────────
# Ownership and is_past
# ─────────────────────────────────────────────────────────────────────────────


class TestOwnershipAndPast:
    """Tests for block ownership and is_past."""

    def test_rows_outside_blocks_have_no_owner(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(emails=[EmailRecord(id="late", sent_at=at(23))])
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))

        assert by_id["email-late"].block_id is None
        assert by_id["email-late"].summary_ids == []

    def test_final_block_owns_its_end(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(emails=[EmailRecord(id="edge", sent_at=at(11))])
        by_id = _by_id(build_timeline(work_blocks, auxiliary, config=config))
        assert by_id["email-edge"].block_id == "h9"

    def test_none_now_marks_everything_past(self, work_blocks, config):
        events = build_timeline(work_blocks, config=config)
        assert all(e.is_past for e in events)

    def test_is_past_against_now(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            meetings=[MeetingRecord(id="m1", title="Sync", start_time=at(9, 10), end_time=at(9, 30))]
        )
        by_id = _by_id(build_timeline(work_blocks, auxiliary, now=at(9, 20), config=config))

        assert by_id[f"app-slack-{int(at(9).timestamp() * 1000)}"].is_past
        assert not by_id["meeting-m1"].is_past


# ─────────────────────────────────────────────────────────────────────────────
# Malformed Input
# ─────────────────────────────────────────────────────────────────────────────


class TestMalformedAuxiliary:
    """Tests that malformed records reject the day."""

    def test_meeting_ending_before_start(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            meetings=[MeetingRecord(id="m1", title="X", start_time=at(10), end_time=at(9))]
        )
        with pytest.raises(MalformedInputError) as exc_info:
            build_timeline(work_blocks, auxiliary, config=config)
        assert exc_info.value.context["record_id"] == "m1"

    def test_duplicate_ids(self, work_blocks, config):
        email = EmailRecord(id="e1", sent_at=at(9, 30))
        auxiliary = AuxiliaryEvents(emails=[email, EmailRecord(id="e1", sent_at=at(9, 40))])
        with pytest.raises(MalformedInputError):
            build_timeline(work_blocks, auxiliary, config=config)

    def test_empty_day(self, config):
        assert build_timeline([], config=config) == []


class TestIdempotence:
    def test_same_inputs_same_feed(self, work_blocks, config):
        auxiliary = AuxiliaryEvents(
            emails=[EmailRecord(id="e1", sent_at=at(9, 30))],
            meetings=[MeetingRecord(id="m1", title="Sync", start_time=at(9, 10), end_time=at(9, 30))],
        )
        first = build_timeline(work_blocks, auxiliary, now=at(12), config=config)
        second = build_timeline(work_blocks, auxiliary, now=at(12), config=config)
        assert [e.to_dict() for e in first] == [e.to_dict() for e in second]

    def test_from_dict_round_trip_of_auxiliary(self):
        auxiliary = AuxiliaryEvents(
            calls=[CallRecord(id="c1", start_time=at(9), end_time=at(9) + timedelta(minutes=3))]
        )
        assert AuxiliaryEvents.from_dict(auxiliary.to_dict()) == auxiliary
