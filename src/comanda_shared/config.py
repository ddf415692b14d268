"""
Utilities to centralize configuration handling across the chefcomanda services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class AppConfig:
    """Settings shared by the API process and the library services."""

    app_name: str
    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str
    supabase_jwt_secret: str
    supabase_timeout_seconds: int
    # Direct PostgreSQL access (schema provisioning only)
    database_url: str
    # Realtime
    redis_url: str
    realtime_channel_prefix: str
    realtime_enabled: bool
    # Storage
    storage_bucket_products: str
    # Billing
    service_fee_rate: Decimal
    cover_charge_per_seat: Decimal
    # App settings
    secret_key: str
    log_level: str
    debug_mode: bool

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Read ``key`` as a flag; string values accept 1/true/yes/on."""
        value = getattr(self, key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    def get_string(self, key: str, default: str = "") -> str:
        value = getattr(self, key, default)
        return str(value) if value is not None else default

    @property
    def supabase_key(self) -> str:
        """Service role key when present, anon key otherwise."""
        return self.supabase_service_role_key or self.supabase_anon_key


def _read_env(name: str, default: str | None = None) -> str:
    """Environment lookup; a missing variable without default is fatal."""
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def validate_required_env_vars(skip_in_debug: bool = False) -> None:
    """
    Check the variables the API cannot start without.

    Fails fast during startup rather than on the first request that touches
    the hosted database.

    Args:
        skip_in_debug: If True, skip validation when DEBUG_MODE=true

    Raises:
        RuntimeError: Listing every missing or malformed variable at once
    """
    if skip_in_debug and read_bool("DEBUG_MODE", "false"):
        return

    errors = []

    secret_key = os.getenv("SECRET_KEY", "")
    if not secret_key or secret_key in ["change-me-please", "super-secret-change-me"]:
        errors.append(
            "SECRET_KEY must be configured with a secure random value. "
            'Generate with: python3 -c "import secrets; print(secrets.token_urlsafe(32))"'
        )

    if not os.getenv("SUPABASE_URL", ""):
        errors.append("SUPABASE_URL must be configured")

    if not (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")):
        errors.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY must be configured")

    if not os.getenv("SUPABASE_JWT_SECRET", ""):
        errors.append("SUPABASE_JWT_SECRET must be configured to verify access tokens")

    timeout = os.getenv("SUPABASE_TIMEOUT_SECONDS", "")
    if timeout:
        try:
            if int(timeout) < 1:
                errors.append("SUPABASE_TIMEOUT_SECONDS must be a positive integer")
        except ValueError:
            errors.append(f"SUPABASE_TIMEOUT_SECONDS must be a valid integer, got: {timeout}")

    if errors:
        error_msg = "\nConfiguration Errors - Missing or invalid environment variables:\n"
        for error in errors:
            error_msg += f"  - {error}\n"
        raise RuntimeError(error_msg)


def load_config(app_name: str) -> AppConfig:
    """
    Build the settings for one process from the environment.

    Each service passes its desired `app_name` to keep logs easy to
    differentiate while still reusing the same config loader.
    """
    return AppConfig(
        app_name=app_name,
        supabase_url=_read_env("SUPABASE_URL", ""),
        supabase_anon_key=_read_env("SUPABASE_ANON_KEY", ""),
        supabase_service_role_key=_read_env("SUPABASE_SERVICE_ROLE_KEY", ""),
        supabase_jwt_secret=_read_env("SUPABASE_JWT_SECRET", ""),
        supabase_timeout_seconds=int(_read_env("SUPABASE_TIMEOUT_SECONDS", "10")),
        database_url=_read_env("DATABASE_URL", ""),
        redis_url=_read_env("REDIS_URL", "redis://localhost:6379/0"),
        realtime_channel_prefix=_read_env("REALTIME_CHANNEL_PREFIX", "chefcomanda"),
        realtime_enabled=read_bool("REALTIME_ENABLED", "true"),
        storage_bucket_products=_read_env("STORAGE_BUCKET_PRODUCTS", "produtos"),
        service_fee_rate=Decimal(_read_env("SERVICE_FEE_RATE", "0.10")),
        cover_charge_per_seat=Decimal(_read_env("COVER_CHARGE_PER_SEAT", "15.00")),
        secret_key=_read_env("SECRET_KEY", "super-secret-change-me"),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
    )
