"""
Domain time utilities (pure).

Centralized timestamp validation helpers for voucher validity windows.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforce that a timestamp is UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_validity_window(valid_from: datetime, valid_until: datetime) -> None:
    """Both bounds must be UTC and the window must not be empty."""

    require_utc_timestamp("valid_from", valid_from)
    require_utc_timestamp("valid_until", valid_until)
    if valid_until <= valid_from:
        raise ValueError("valid_until must be after valid_from")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
