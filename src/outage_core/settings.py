from __future__ import annotations

import math

import structlog
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from outage_core.circuit_breaker.breaker import CircuitBreakerConfig
from outage_core.logging import configure_structlog, get_log_level_value


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment settings for one circuit breaker.

    ``monitored_time_frame_seconds=inf`` counts failures without windowing.
    ``recovery_check_interval_seconds`` enables a ``RecoveryWatcher``.
    """

    model_config = prefixed_settings_config("CIRCUIT_BREAKER_")

    name: str = "default"
    failure_attempts_threshold: int = 5
    outage_timeout_seconds: float = 300.0
    monitored_time_frame_seconds: float = 60.0
    recovery_check_interval_seconds: float | None = None
    log_level: str = "INFO"

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must be non-empty")
        return normalized

    @field_validator("failure_attempts_threshold")
    @classmethod
    def _validate_threshold(cls, value: int) -> int:
        if value < 1:
            raise ValueError("failure_attempts_threshold must be >= 1")
        return value

    @field_validator(
        "outage_timeout_seconds",
        "monitored_time_frame_seconds",
        "recovery_check_interval_seconds",
    )
    @classmethod
    def _validate_positive_seconds(
        cls, value: float | None, info: ValidationInfo
    ) -> float | None:
        if value is None:
            return value
        if math.isnan(value) or value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("recovery_check_interval_seconds")
    @classmethod
    def _validate_finite_interval(cls, value: float | None) -> float | None:
        if value is not None and math.isinf(value):
            raise ValueError("recovery_check_interval_seconds must be finite")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        get_log_level_value(value)
        return value.strip().upper()

    def to_config(self) -> CircuitBreakerConfig:
        """Build the immutable breaker configuration."""
        return CircuitBreakerConfig(
            failure_attempts_threshold=self.failure_attempts_threshold,
            outage_timeout=self.outage_timeout_seconds,
            monitored_time_frame=self.monitored_time_frame_seconds,
        )

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure process logging at ``log_level`` and return a root logger.

        Pass the returned logger to ``CircuitBreaker.from_settings`` to route
        breaker events through the configured pipeline.
        """
        return configure_structlog(log_level=self.log_level)
