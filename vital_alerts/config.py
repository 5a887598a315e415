"""
Configuration management with environment variable support and validation.

Design principles:
- Clinical thresholds live in one place, with the standard adult defaults
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class ThresholdConfig(BaseModel):
    """Per-sample thresholds used to build the default strategy registry."""

    systolic_low: float = Field(default=90.0, gt=0.0, description="Systolic lower bound (mmHg)")
    systolic_high: float = Field(default=180.0, gt=0.0, description="Systolic upper bound (mmHg)")
    diastolic_low: float = Field(default=60.0, gt=0.0, description="Diastolic lower bound (mmHg)")
    diastolic_high: float = Field(
        default=120.0, gt=0.0, description="Diastolic upper bound (mmHg)"
    )
    heart_rate_max: float = Field(default=120.0, gt=0.0, description="Tachycardia bound (bpm)")
    oxygen_min: float = Field(
        default=90.0, gt=0.0, le=100.0, description="Oxygen saturation lower bound (%)"
    )

    @model_validator(mode="after")
    def low_below_high(self) -> "ThresholdConfig":
        """Each pressure range must be non-empty."""
        if self.systolic_low >= self.systolic_high:
            raise ValueError("systolic_low must be below systolic_high")
        if self.diastolic_low >= self.diastolic_high:
            raise ValueError("diastolic_low must be below diastolic_high")
        return self


class DetectionConfig(BaseModel):
    """Parameters of the window-level pattern detectors."""

    trend_threshold: float = Field(
        default=10.0, gt=0.0, description="Minimum per-step change for a pressure trend"
    )
    rapid_drop_points: float = Field(
        default=5.0, gt=0.0, description="Minimum oxygen drop between close samples"
    )
    rapid_drop_window_minutes: float = Field(
        default=10.0, gt=0.0, description="Maximum gap between samples for a rapid drop"
    )
    deviation_factor: float = Field(
        default=0.5, gt=0.0, description="ECG deviation as a fraction of the window mean"
    )
    hypotension_systolic: float = Field(
        default=90.0, gt=0.0, description="Systolic value below which hypotension is flagged"
    )
    hypoxemia_oxygen: float = Field(
        default=92.0, gt=0.0, le=100.0, description="Saturation below which hypoxemia is flagged"
    )


class MonitoringConfig(BaseModel):
    """Multi-patient monitoring loop configuration."""

    evaluation_interval_seconds: float = Field(
        default=60.0, gt=0.0, description="Interval between monitoring cycles"
    )
    max_concurrent_evaluations: int = Field(
        default=10, gt=0, description="Maximum number of patients evaluated at once"
    )
    evaluation_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Deadline for a single patient evaluation"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    thresholds = ThresholdConfig(
        systolic_low=_env_float("SYSTOLIC_LOW", 90.0),
        systolic_high=_env_float("SYSTOLIC_HIGH", 180.0),
        diastolic_low=_env_float("DIASTOLIC_LOW", 60.0),
        diastolic_high=_env_float("DIASTOLIC_HIGH", 120.0),
        heart_rate_max=_env_float("HEART_RATE_MAX", 120.0),
        oxygen_min=_env_float("OXYGEN_MIN", 90.0),
    )

    detection = DetectionConfig(
        trend_threshold=_env_float("TREND_THRESHOLD", 10.0),
        rapid_drop_points=_env_float("RAPID_DROP_POINTS", 5.0),
        rapid_drop_window_minutes=_env_float("RAPID_DROP_WINDOW_MINUTES", 10.0),
        deviation_factor=_env_float("ECG_DEVIATION_FACTOR", 0.5),
        hypotension_systolic=_env_float("HYPOTENSION_SYSTOLIC", 90.0),
        hypoxemia_oxygen=_env_float("HYPOXEMIA_OXYGEN", 92.0),
    )

    monitoring = MonitoringConfig(
        evaluation_interval_seconds=_env_float("EVALUATION_INTERVAL_SECONDS", 60.0),
        max_concurrent_evaluations=int(os.getenv("MAX_CONCURRENT_EVALUATIONS", "10")),
        evaluation_timeout_seconds=_env_float("EVALUATION_TIMEOUT_SECONDS", 10.0),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        thresholds=thresholds,
        detection=detection,
        monitoring=monitoring,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
