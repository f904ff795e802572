"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev)
  - .env files (python-dotenv)
  - AWS Secrets Manager / GCP Secret Manager references for CLERK_SECRET_KEY
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.migration.errors import ConfigurationError
from scripts.migration.secrets import resolve_secret

DEFAULT_API_BASE_URL = "https://api.clerk.com/v1"
MAX_PAGE_SIZE = 500  # Clerk list endpoints cap limit at 500


@dataclass(frozen=True)
class ClerkConfig:
    secret_key: str
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout_s: float = 30.0

    @property
    def instance_type(self) -> str:
        """Second token of the key: "live" for production, "test" for development."""
        parts = self.secret_key.split("_")
        return parts[1] if len(parts) > 1 else ""

    @property
    def is_production(self) -> bool:
        return self.instance_type == "live"


@dataclass(frozen=True)
class ThrottleConfig:
    delay_ms: int = 1_000
    retry_delay_ms: int = 10_000
    max_rate_limit_retries: Optional[int] = None  # None = retry until the API lets us through

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0


@dataclass(frozen=True)
class MigrationConfig:
    clerk: ClerkConfig
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    import_to_dev: bool = False
    offset: int = 0
    page_size: int = MAX_PAGE_SIZE
    output_dir: str = "."


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_config(require_production_key: bool = True) -> MigrationConfig:
    """Load configuration from environment variables.

    Raises ConfigurationError when CLERK_SECRET_KEY is missing, or when it
    belongs to a development instance and IMPORT_TO_DEV_INSTANCE is not set
    (only checked when require_production_key is true).
    """
    load_dotenv()

    raw_key = os.environ.get("CLERK_SECRET_KEY", "").strip()
    if not raw_key:
        raise ConfigurationError(
            "CLERK_SECRET_KEY is required. Please copy .env.example to .env and add your key."
        )
    try:
        secret_key = resolve_secret(raw_key)
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(f"Could not resolve CLERK_SECRET_KEY: {exc}") from exc

    timeout_raw = os.environ.get("CLERK_TIMEOUT_S", "30")
    try:
        timeout_s = float(timeout_raw)
    except ValueError:
        raise ConfigurationError(f"CLERK_TIMEOUT_S must be a number, got {timeout_raw!r}")

    clerk = ClerkConfig(
        secret_key=secret_key,
        api_base_url=os.environ.get("CLERK_API_BASE_URL", DEFAULT_API_BASE_URL),
        timeout_s=timeout_s,
    )

    import_to_dev = _env_bool("IMPORT_TO_DEV_INSTANCE")
    if require_production_key and not clerk.is_production and not import_to_dev:
        raise ConfigurationError(
            "The Clerk Secret Key provided is for a development instance. Development "
            "instances are limited to 500 users and do not share their userbase with "
            "production instances. If you want to import users to your development "
            "instance, please set 'IMPORT_TO_DEV_INSTANCE' in your .env to 'true'."
        )

    max_retries: Optional[int] = None
    if os.environ.get("RATE_LIMIT_MAX_RETRIES", "").strip():
        max_retries = _env_int("RATE_LIMIT_MAX_RETRIES", 0)

    throttle = ThrottleConfig(
        delay_ms=_env_int("DELAY_MS", 1_000),
        retry_delay_ms=_env_int("RETRY_DELAY_MS", 10_000),
        max_rate_limit_retries=max_retries,
    )

    page_size = _env_int("PAGE_SIZE", MAX_PAGE_SIZE, minimum=1)
    if page_size > MAX_PAGE_SIZE:
        raise ConfigurationError(f"PAGE_SIZE must be <= {MAX_PAGE_SIZE}, got {page_size}")

    return MigrationConfig(
        clerk=clerk,
        throttle=throttle,
        import_to_dev=import_to_dev,
        offset=_env_int("OFFSET", 0),
        page_size=page_size,
        output_dir=os.environ.get("OUTPUT_DIR", "."),
    )
