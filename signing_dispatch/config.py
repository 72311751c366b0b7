import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


def normalize_log_level(value) -> str:
    """Accept any case, reject names the logging module does not know."""
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{value}'")
    return level


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Eligibility matrix location; the packaged YAML is used when unset
    state_matrix_path: str | None = Field(default=None, alias="STATE_MATRIX_PATH")

    # Routing behaviour
    max_service_radius_miles: float = Field(default=50.0, gt=0, alias="MAX_SERVICE_RADIUS_MILES")
    specialization_baseline: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        alias="SPECIALIZATION_BASELINE",
        description="Specialization sub-score for vendors without the order's loan type",
    )
    neutral_proximity: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        alias="NEUTRAL_PROXIMITY",
        description="Proximity sub-score used for RON orders, where location is irrelevant",
    )

    # Score weights (must sum to 1.0)
    weight_tier: float = Field(default=0.25, ge=0.0, alias="WEIGHT_TIER")
    weight_proximity: float = Field(default=0.20, ge=0.0, alias="WEIGHT_PROXIMITY")
    weight_specialization: float = Field(default=0.20, ge=0.0, alias="WEIGHT_SPECIALIZATION")
    weight_performance: float = Field(default=0.35, ge=0.0, alias="WEIGHT_PERFORMANCE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        return normalize_log_level(v or "INFO")

    @model_validator(mode="after")
    def validate_weight_total(self):
        """Weights must sum to 1.0 so scores stay comparable across runs."""
        total = (
            self.weight_tier
            + self.weight_proximity
            + self.weight_specialization
            + self.weight_performance
        )
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Score weights must sum to 1.0 (got {total:.4f})")
        return self


@dataclass(frozen=True)
class ScoreWeights:
    """Fixed weights for the linear vendor score; validated on construction."""
    tier: float = 0.25
    proximity: float = 0.20
    specialization: float = 0.20
    performance: float = 0.35

    def __post_init__(self) -> None:
        values = {
            "tier": self.tier,
            "proximity": self.proximity,
            "specialization": self.specialization,
            "performance": self.performance,
        }
        negative = [name for name, value in values.items() if value < 0]
        if negative:
            raise ConfigurationError(
                f"Score weights must be non-negative: {', '.join(negative)}",
                details={"weights": values},
            )
        total = sum(values.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ConfigurationError(
                f"Score weights must sum to 1.0 (got {total:.4f})",
                details={"weights": values},
            )


@dataclass(frozen=True)
class RouterConfig:
    """Immutable routing configuration injected into SigningRouter."""
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    max_service_radius_miles: float = 50.0
    specialization_baseline: float = 0.5
    neutral_proximity: float = 0.5

    def __post_init__(self) -> None:
        values = {
            "max_service_radius_miles": self.max_service_radius_miles,
            "specialization_baseline": self.specialization_baseline,
            "neutral_proximity": self.neutral_proximity,
        }
        if not self.max_service_radius_miles > 0:
            raise ConfigurationError(
                f"max_service_radius_miles must be positive (got {self.max_service_radius_miles})",
                details=values,
            )
        # Sub-scores live in [0, 1]
        for name in ("specialization_baseline", "neutral_proximity"):
            if not 0.0 <= values[name] <= 1.0:
                raise ConfigurationError(
                    f"{name} must be between 0 and 1 (got {values[name]})",
                    details=values,
                )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouterConfig":
        return cls(
            weights=ScoreWeights(
                tier=settings.weight_tier,
                proximity=settings.weight_proximity,
                specialization=settings.weight_specialization,
                performance=settings.weight_performance,
            ),
            max_service_radius_miles=settings.max_service_radius_miles,
            specialization_baseline=settings.specialization_baseline,
            neutral_proximity=settings.neutral_proximity,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
