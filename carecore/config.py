"""
Configuration management with environment variable support and validation.

Design principles:
- Clinical thresholds live in exactly one place (ClinicalPolicy)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Environment overrides for site-specific policy
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class ClinicalPolicy(BaseModel):
    """Every threshold the decision engine applies."""

    # Tier boundaries
    risk_below: int = Field(default=70, gt=0, le=100, description="Scores below this are risk")
    healthy_from: int = Field(default=90, gt=0, le=100, description="Scores from this are healthy")

    # Adherence gate
    compliance_pass_rate: float = Field(
        default=80.0, gt=0.0, le=100.0, description="Minimum adherence rate in percent"
    )
    compliance_window_days: int = Field(
        default=7, gt=0, description="Days of task completions audited per plan"
    )

    # Re-check reporting
    notable_improvement_points: int = Field(
        default=10, gt=0, description="Improvement over reference that counts as notable"
    )

    # Vital sign safety bounds
    spo2_critical_low: float = Field(default=90.0, gt=0.0, le=100.0)
    pulse_critical_low: float = Field(default=40.0, gt=0.0)
    pulse_critical_high: float = Field(default=150.0, gt=0.0)
    perfusion_weak_below: float = Field(
        default=0.5, ge=0.0, description="Perfusion index under which the signal is weak"
    )

    @model_validator(mode="after")
    def ordered_bounds(self) -> "ClinicalPolicy":
        """Ensure the tier and pulse bounds describe non-empty ranges."""
        if self.risk_below >= self.healthy_from:
            raise ValueError("risk_below must be lower than healthy_from")
        if self.pulse_critical_low >= self.pulse_critical_high:
            raise ValueError("pulse_critical_low must be lower than pulse_critical_high")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    policy: ClinicalPolicy = Field(default_factory=ClinicalPolicy)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


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

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    defaults = ClinicalPolicy()
    policy = ClinicalPolicy(
        compliance_pass_rate=float(
            os.getenv("COMPLIANCE_PASS_RATE", str(defaults.compliance_pass_rate))
        ),
        compliance_window_days=int(
            os.getenv("COMPLIANCE_WINDOW_DAYS", str(defaults.compliance_window_days))
        ),
        notable_improvement_points=int(
            os.getenv("NOTABLE_IMPROVEMENT_POINTS", str(defaults.notable_improvement_points))
        ),
        spo2_critical_low=float(os.getenv("SPO2_CRITICAL_LOW", str(defaults.spo2_critical_low))),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        policy=policy,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
