"""
Domain: Base voucher code derivation (pure).

Contract excerpts implemented here:
- Base codes are derived from the creator's display name, upper-cased, keeping
  only letters A-Z.
- The base code is the first letter of each name part ("Jane Doe" -> "JD").
- A single-letter result is widened to the first three letters of the first part
  when that part has at least two letters ("Jane" -> "JAN").
- A missing or whitespace-only display name falls back to "USER".
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import InvalidIssuanceRequestError

FALLBACK_DISPLAY_NAME: str = "USER"

_NON_LETTERS = re.compile(r"[^A-Z\s]")


def derive_base_code(display_name: Optional[str]) -> str:
    """
    Derive the deterministic, human-readable base of a voucher code.

    Raises:
        InvalidIssuanceRequestError: if the name contains no letters A-Z.
    """

    name = (display_name or "").strip() or FALLBACK_DISPLAY_NAME
    parts = _NON_LETTERS.sub("", name.upper()).split()

    if not parts:
        raise InvalidIssuanceRequestError(
            f"Display name {display_name!r} has no letters to derive a voucher code from"
        )

    initials = "".join(part[0] for part in parts)
    if len(initials) < 2 and len(parts[0]) >= 2:
        initials = parts[0][:3]

    return initials
