"""
Supabase client and service settings.

This module contains *only* configuration loading and the database connection
factory. The client is created on demand and passed into the repository
adapters; no module-level client is kept.

Environment variables:
- SUPABASE_URL: Your Supabase project URL (required)
- SUPABASE_KEY: Your Supabase service-role key (required, server-side only)
- ENVIRONMENT: "production" or anything else (default: development)
- VOUCHER_MAX_ATTEMPTS: collision retry bound per voucher variant (default: 10)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from domain.discount_code import DEFAULT_MAX_ATTEMPTS

# Look for .env in the project root
_ENV_PATH = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str
    supabase_key: str
    environment: str = "development"
    voucher_max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """
    Read settings from the environment (and .env, if present).

    Raises:
        RuntimeError: if a required variable is missing or malformed.
    """

    load_dotenv(dotenv_path=_ENV_PATH)

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    raw_attempts = os.getenv("VOUCHER_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
    try:
        max_attempts = int(raw_attempts)
    except ValueError:
        raise RuntimeError(f"VOUCHER_MAX_ATTEMPTS must be an integer, got {raw_attempts!r}") from None
    if max_attempts < 1:
        raise RuntimeError("VOUCHER_MAX_ATTEMPTS must be >= 1")

    return Settings(
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        environment=os.getenv("ENVIRONMENT", "development"),
        voucher_max_attempts=max_attempts,
    )


def create_supabase_client(settings: Settings) -> Client:
    """Create the official Supabase Python client for the given settings."""

    return create_client(settings.supabase_url, settings.supabase_key)


__all__ = ["Settings", "load_settings", "create_supabase_client"]
