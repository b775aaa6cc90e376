"""Tests for dayline/config_models.py"""

import pytest
import yaml

from dayline import config_models
from dayline.config_models import (
    BlocksConfig,
    SynthesisConfig,
    load_and_validate,
    load_config,
)
from tests.conftest import PROJECT_ROOT


@pytest.fixture
def args_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config_models, "ARGS_DIR", tmp_path)
    return tmp_path


class TestLoadConfig:
    """Tests for YAML loading with fallback to defaults."""

    def test_shipped_file_validates(self):
        with open(PROJECT_ROOT / "args" / "synthesis.yaml") as f:
            raw = yaml.safe_load(f)
        config = SynthesisConfig.model_validate(raw)

        assert config.blocks.carry_forward_tolerance_minutes == 960
        assert config.timeline.kind_priority["meeting"] == 0
        assert config.patterns.divergence == "jensen_shannon"

    def test_missing_file_gives_defaults(self, args_dir):
        assert load_config() == SynthesisConfig()

    def test_partial_file_overrides(self, args_dir):
        (args_dir / "synthesis.yaml").write_text(
            "blocks:\n  carry_forward_tolerance_minutes: 120\n"
        )
        config = load_config()

        assert config.blocks.carry_forward_tolerance_minutes == 120
        assert config.blocks.carried_confidence_factor == 0.6
        assert config.timeline.message_duration_minutes == 5

    def test_invalid_file_gives_defaults(self, args_dir):
        (args_dir / "synthesis.yaml").write_text("patterns:\n  divergence: cosine\n")
        assert load_config() == SynthesisConfig()

    def test_empty_file_gives_defaults(self, args_dir):
        (args_dir / "synthesis.yaml").write_text("")
        assert load_config() == SynthesisConfig()

    def test_unknown_config_name(self):
        with pytest.raises(ValueError, match="Unknown config"):
            load_and_validate("nonexistent")

    def test_explicit_model_class(self, args_dir):
        (args_dir / "blocks.yaml").write_text("travel_activity: workout\n")
        config = load_and_validate("blocks", BlocksConfig)
        assert config.travel_activity == "workout"


class TestFieldBounds:
    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            BlocksConfig(carry_forward_tolerance_minutes=-1)

    def test_confidence_factor_bounded(self):
        with pytest.raises(ValueError):
            BlocksConfig(carried_confidence_factor=1.5)
