"""Test settings loading and routing configuration.

This test suite verifies that:
1. Defaults match the documented routing behaviour
2. Environment variables override defaults
3. Weights that do not sum to 1.0 are rejected
4. RouterConfig is built from Settings without reading globals
"""
import os

import pytest
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import SettingsConfigDict

from signing_dispatch.config import RouterConfig, ScoreWeights, Settings, get_settings
from signing_dispatch.exceptions import ConfigurationError


class IsolatedSettings(Settings):
    model_config = SettingsConfigDict(
        env_file=None,  # Don't read from .env
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


def test_defaults():
    """Test default routing settings."""
    settings = IsolatedSettings()

    assert settings.max_service_radius_miles == 50.0
    assert settings.specialization_baseline == 0.5
    assert settings.neutral_proximity == 0.5
    assert settings.weight_tier + settings.weight_proximity + settings.weight_specialization + settings.weight_performance == pytest.approx(1.0)
    assert settings.state_matrix_path is None


def test_environment_overrides():
    """Test that environment variables override defaults."""
    os.environ["MAX_SERVICE_RADIUS_MILES"] = "30"
    os.environ["LOG_LEVEL"] = "debug"

    settings = IsolatedSettings()

    assert settings.max_service_radius_miles == 30.0
    assert settings.log_level == "DEBUG"


def test_empty_env_values_ignored():
    """Test that empty strings fall back to defaults."""
    os.environ["MAX_SERVICE_RADIUS_MILES"] = ""

    assert IsolatedSettings().max_service_radius_miles == 50.0


def test_unrelated_env_keys_ignored():
    """Only routing settings are modelled; ENVIRONMENT and friends pass through."""
    os.environ["ENVIRONMENT"] = "production"

    settings = IsolatedSettings()

    assert "environment" not in Settings.model_fields
    assert settings.model_dump().keys() == Settings.model_fields.keys()


def test_invalid_log_level_rejected():
    with pytest.raises(PydanticValidationError):
        IsolatedSettings(LOG_LEVEL="chatty")


def test_weights_must_sum_to_one():
    """Test that unbalanced weights fail at load time."""
    with pytest.raises(PydanticValidationError) as exc_info:
        IsolatedSettings(WEIGHT_TIER=0.9)

    assert "sum to 1.0" in str(exc_info.value)


def test_router_config_from_settings():
    settings = IsolatedSettings(
        WEIGHT_TIER=0.1,
        WEIGHT_PROXIMITY=0.3,
        WEIGHT_SPECIALIZATION=0.2,
        WEIGHT_PERFORMANCE=0.4,
        MAX_SERVICE_RADIUS_MILES=40,
        SPECIALIZATION_BASELINE=0.25,
    )

    config = RouterConfig.from_settings(settings)

    assert config.weights == ScoreWeights(tier=0.1, proximity=0.3, specialization=0.2, performance=0.4)
    assert config.max_service_radius_miles == 40
    assert config.specialization_baseline == 0.25
    assert config.neutral_proximity == 0.5


def test_score_weights_validation():
    with pytest.raises(ConfigurationError) as exc_info:
        ScoreWeights(tier=0.5, proximity=0.5, specialization=0.5, performance=0.5)

    assert exc_info.value.details["weights"]["tier"] == 0.5
    assert exc_info.value.to_dict()["error"] == "ConfigurationError"


def test_router_config_rejects_zero_radius():
    """A zero radius would make every proximity score undefined."""
    for radius in (0, -5.0):
        with pytest.raises(ConfigurationError) as exc_info:
            RouterConfig(max_service_radius_miles=radius)
        assert "max_service_radius_miles" in exc_info.value.message


@pytest.mark.parametrize("field_name, value", [
    ("specialization_baseline", 7.0),
    ("specialization_baseline", -0.1),
    ("neutral_proximity", -0.1),
    ("neutral_proximity", 1.5),
])
def test_router_config_sub_scores_bounded(field_name, value):
    with pytest.raises(ConfigurationError) as exc_info:
        RouterConfig(**{field_name: value})

    assert exc_info.value.details[field_name] == value


def test_router_config_accepts_bounds():
    config = RouterConfig(specialization_baseline=0.0, neutral_proximity=1.0, max_service_radius_miles=0.5)
    assert config.specialization_baseline == 0.0
    assert config.neutral_proximity == 1.0


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
