"""Provider settings loaded from environment variables.

All settings have defaults matching the provider's documented behaviour;
the orchestrator's provider block (or the ``MGC_*`` environment variables
for local runs) is the source of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric value is
    out of range or the region/environment pair is unknown.  This catches
    bad configuration at Configure time instead of half-way through a
    90-minute cluster provisioning.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from mgc_provider.core.constants import DEFAULT_ENV, DEFAULT_REGION, REGION_URLS
from mgc_provider.core.exceptions import ValidationError


class ConfigValidationError(ValidationError):
    """Raised when a setting is out of its valid range.

    Attributes:
        key: The setting (environment variable name) that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_operation = "configure"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")
        self.message = message


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """Immutable provider settings.

    Loaded once at Configure time and handed to every client and reconciler.

    Attributes:
        api_key: API key sent with every request.
        region: Cloud region (``br-se1``, ``br-ne1``, ``br-mgl1``...).
        env: API environment (``prod``, ``pre-prod``, ``dev-qa``).
        server_url: Explicit API base URL; overrides the region table when set.
        request_timeout_s: Per-request HTTP timeout in seconds.
        poll_interval_s: Global poll interval override (0 keeps per-kind values).
        poll_timeout_s: Global poll timeout override (0 keeps per-kind values).
        poll_transient_retries: Transient fetch errors tolerated per poll
            session (0 fails on the first one).
        poll_retry_base_s: Exponential backoff base for those retries.
    """

    api_key: str = ""
    region: str = DEFAULT_REGION
    env: str = DEFAULT_ENV
    server_url: str = ""
    request_timeout_s: float = 60.0
    poll_interval_s: float = 0.0
    poll_timeout_s: float = 0.0
    poll_transient_retries: int = 0
    poll_retry_base_s: float = 5.0

    @classmethod
    def from_env(cls) -> ProviderSettings:
        """Load and validate settings from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or the
                region is unknown for the selected environment.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``MGC_POLL_TIMEOUT_S=abc``).
        """
        settings = cls(
            api_key=os.getenv("MGC_API_KEY", ""),
            region=os.getenv("MGC_REGION", DEFAULT_REGION),
            env=os.getenv("MGC_ENV", DEFAULT_ENV),
            server_url=os.getenv("MGC_SERVER_URL", ""),
            request_timeout_s=float(os.getenv("MGC_REQUEST_TIMEOUT_S", "60")),
            poll_interval_s=float(os.getenv("MGC_POLL_INTERVAL_S", "0")),
            poll_timeout_s=float(os.getenv("MGC_POLL_TIMEOUT_S", "0")),
            poll_transient_retries=int(os.getenv("MGC_POLL_TRANSIENT_RETRIES", "0")),
            poll_retry_base_s=float(os.getenv("MGC_POLL_RETRY_BASE_S", "5")),
        )
        validate_settings(settings)
        return settings


def validate_settings(settings: ProviderSettings) -> None:
    """Validate setting ranges.  Raises ``ConfigValidationError``."""
    if settings.env not in REGION_URLS:
        raise ConfigValidationError(
            "MGC_ENV",
            settings.env,
            f"must be one of {', '.join(sorted(REGION_URLS))}",
        )

    if not settings.server_url and settings.region not in REGION_URLS[settings.env]:
        raise ConfigValidationError(
            "MGC_REGION",
            settings.region,
            f"must be one of {', '.join(sorted(REGION_URLS[settings.env]))} "
            f"for env {settings.env!r}",
        )

    if settings.request_timeout_s <= 0:
        raise ConfigValidationError(
            "MGC_REQUEST_TIMEOUT_S",
            settings.request_timeout_s,
            "must be > 0 (seconds)",
        )

    if settings.poll_interval_s < 0:
        raise ConfigValidationError(
            "MGC_POLL_INTERVAL_S",
            settings.poll_interval_s,
            "must be >= 0 (seconds, 0 keeps the per-resource interval)",
        )

    if settings.poll_timeout_s < 0:
        raise ConfigValidationError(
            "MGC_POLL_TIMEOUT_S",
            settings.poll_timeout_s,
            "must be >= 0 (seconds, 0 keeps the per-resource timeout)",
        )

    if settings.poll_transient_retries < 0:
        raise ConfigValidationError(
            "MGC_POLL_TRANSIENT_RETRIES",
            settings.poll_transient_retries,
            "must be >= 0",
        )

    if settings.poll_retry_base_s <= 0:
        raise ConfigValidationError(
            "MGC_POLL_RETRY_BASE_S",
            settings.poll_retry_base_s,
            "must be > 0 (seconds)",
        )
