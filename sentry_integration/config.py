# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Sentry backend configuration."""

import os
from dataclasses import dataclass


def _parse_sample_rate(raw: str | None) -> float | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"SENTRY_TRACES_SAMPLE_RATE must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class BackendConfig:
    """Connection settings for the Sentry backend.

    Attributes:
        dsn: Sentry DSN (Data Source Name) for the project
        traces_sample_rate: Fraction of transactions to trace, in [0.0, 1.0].
            None means tracing is off (0.0).
        environment: Optional environment name (production, staging, ...)
    """

    dsn: str
    traces_sample_rate: float | None = None
    environment: str | None = None

    def __post_init__(self) -> None:
        if not self.dsn:
            raise ValueError("dsn is required for the Sentry backend")
        rate = self.traces_sample_rate
        if rate is not None and not 0.0 <= rate <= 1.0:
            raise ValueError(f"traces_sample_rate must be between 0.0 and 1.0, got {rate}")

    @property
    def effective_sample_rate(self) -> float:
        return self.traces_sample_rate if self.traces_sample_rate is not None else 0.0

    @classmethod
    def from_env(cls) -> "BackendConfig | None":
        """Build a config from SENTRY_* environment variables.

        Returns:
            BackendConfig, or None when SENTRY_DSN is unset or empty

        Raises:
            ValueError: If the sample rate is not a number in [0.0, 1.0]
        """
        dsn = os.getenv("SENTRY_DSN")
        if not dsn:
            return None
        return cls(
            dsn=dsn,
            traces_sample_rate=_parse_sample_rate(os.getenv("SENTRY_TRACES_SAMPLE_RATE")),
            environment=os.getenv("SENTRY_ENVIRONMENT") or None,
        )
