"""Tests for dayline/timeline/classification.py"""

import pytest

from dayline.config_models import ClassificationConfig
from dayline.models import ActivityType, BlockType, LocationBlock
from dayline.timeline.classification import (
    classify_productivity,
    is_work_context,
    normalize_category,
)
from dayline.timeline.events import ProductivityFlag
from tests.conftest import at


@pytest.fixture
def classification() -> ClassificationConfig:
    return ClassificationConfig()


def _block(category=None, activity=None) -> LocationBlock:
    return LocationBlock(
        id="b1",
        type=BlockType.STATIONARY,
        location_label="Somewhere",
        location_category=category,
        start_time=at(9),
        end_time=at(10),
        duration_minutes=60,
        dominant_activity=activity,
    )


class TestNormalizeCategory:
    """Tests for category normalization."""

    def test_synonyms(self, classification):
        assert normalize_category("Productivity", classification) == "work"
        assert normalize_category("messaging", classification) == "communication"
        assert normalize_category("Social Networking", classification) == "social"

    def test_unknown_category_lowercased(self, classification):
        assert normalize_category("  Health ", classification) == "health"

    def test_none(self, classification):
        assert normalize_category(None, classification) is None

    def test_distraction_app_without_category(self, classification):
        assert normalize_category(None, classification, app_name="TikTok") == "entertainment"

    def test_distraction_app_keeps_unproductive_category(self, classification):
        assert normalize_category("social_media", classification, app_name="Instagram") == "social"

    def test_distraction_app_overrides_productive_category(self, classification):
        assert normalize_category("work", classification, app_name="YouTube") == "entertainment"

    def test_work_app_without_category(self, classification):
        assert normalize_category(None, classification, app_name="Notion") == "work"

    def test_work_app_keeps_reported_category(self, classification):
        assert normalize_category("comms", classification, app_name="Slack") == "communication"

    def test_overrides_win(self):
        config = ClassificationConfig(app_overrides={"youtube": "education"})
        assert normalize_category("video", config, app_name="YouTube") == "education"


class TestWorkContext:
    """Tests for is_work_context."""

    def test_no_block(self, classification):
        assert not is_work_context(None, classification)

    def test_work_place(self, classification):
        assert is_work_context(_block(category="Work"), classification)

    def test_work_activity(self, classification):
        assert is_work_context(_block(activity=ActivityType.DEEP_WORK), classification)

    def test_leisure_at_home(self, classification):
        assert not is_work_context(_block(category="home", activity=ActivityType.LEISURE), classification)


class TestClassifyProductivity:
    """Tests for the coarse productivity flag."""

    @pytest.mark.parametrize(
        "category,work_context,expected",
        [
            ("social", False, ProductivityFlag.UNPRODUCTIVE),
            ("entertainment", True, ProductivityFlag.UNPRODUCTIVE),
            ("work", False, ProductivityFlag.PRODUCTIVE),
            ("communication", True, ProductivityFlag.PRODUCTIVE),
            ("communication", False, ProductivityFlag.NEUTRAL),
            ("health", True, ProductivityFlag.NEUTRAL),
            (None, True, ProductivityFlag.NEUTRAL),
        ],
    )
    def test_flags(self, classification, category, work_context, expected):
        assert classify_productivity(category, work_context, classification) == expected
