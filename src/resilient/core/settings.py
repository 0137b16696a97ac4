"""Environment-driven defaults for the resilience layer.

``ResilienceSettings`` collects the knobs an integrator usually wants to tune
per deployment (retry budget, breaker thresholds, reporting) without touching
call sites. Values come from ``RESILIENT_*`` environment variables or a
``.env`` file; unknown variables are ignored.

Examples:
    >>> import os
    >>> os.environ["RESILIENT_RETRY_MAX_ATTEMPTS"] = "5"
    >>> ResilienceSettings().retry_max_attempts
    5
    >>> config = RetryConfig.from_settings(ResilienceSettings())

Fields
──────
retry_max_attempts        : Extra attempts after the first try
retry_initial_delay       : Seconds before the first retry
retry_backoff_multiplier  : Growth factor between retries
retry_max_delay           : Optional cap on a single backoff delay
breaker_failure_threshold : Consecutive failures that open a circuit
breaker_recovery_timeout  : Seconds an open circuit waits before a trial call
report_errors             : Send final failures to the reporter hook
debug                     : Include tracebacks in error reports
log_level                 : structlog level
log_json                  : JSON output (None = auto-detect from tty)
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResilienceSettings(BaseSettings):
    """Deployment-level defaults for retry, circuit breaking and reporting."""

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Retry ────────────────────────────────────────────────────
    retry_max_attempts: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=1.0, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0)
    retry_max_delay: float | None = Field(default=None, ge=0)

    # ── Circuit breaker ──────────────────────────────────────────
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = Field(default=60.0, ge=0)

    # ── Observability ────────────────────────────────────────────
    report_errors: bool = False
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool | None = None
