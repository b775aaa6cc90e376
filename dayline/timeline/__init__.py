"""
Dayline Timeline Module

Normalizes block app usage and auxiliary event sources (email, chat,
meetings, calls, SMS, websites, calendar) into one ordered feed with
overlap detection and productivity flags.
"""

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


__all__ = [
    "AuxiliaryEvents",
    "CalendarEntry",
    "CallRecord",
    "ChatMessageRecord",
    "EmailRecord",
    "MeetingRecord",
    "ProductivityFlag",
    "SmsRecord",
    "TimelineEvent",
    "TimelineEventKind",
    "WebsiteVisitRecord",
    "build_timeline",
    "detect_overlaps",
]
