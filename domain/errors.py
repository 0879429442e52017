"""
Domain: voucher issuance error taxonomy.

- CollisionError: the candidate code already exists. Expected; retried inside
  the resolver and never escapes it.
- ExhaustedRetriesError: every candidate for a variant collided. Reported as an
  outcome value, never raised across variants.
- FatalIssuanceError: persistence/validation failure unrelated to naming.
  Reported immediately as an outcome value; retrying cannot succeed.
- InvalidIssuanceRequestError: the inbound event or arguments failed boundary
  validation. Raised before any insert is attempted.
- IssuanceInProgressError: a redelivery arrived while an earlier delivery of
  the same transaction is still within its processing window.
"""

from __future__ import annotations

from typing import Optional, Sequence


class IssuanceError(Exception):
    """Base class for voucher issuance failures."""


class CollisionError(IssuanceError):
    """The storage layer rejected a code because it already exists."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Discount code already exists: {code}")
        self.code = code


class ExhaustedRetriesError(IssuanceError):
    """All candidate codes for one variant collided."""

    def __init__(self, attempted_codes: Sequence[str]) -> None:
        attempted = tuple(attempted_codes)
        last = attempted[-1] if attempted else "<none>"
        super().__init__(
            f"Exhausted {len(attempted)} discount code candidates (last tried: {last})"
        )
        self.attempted_codes = attempted


class FatalIssuanceError(IssuanceError):
    """Non-collision failure; the same write would fail again."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class InvalidIssuanceRequestError(IssuanceError, ValueError):
    """Event or arguments rejected at the issuance boundary."""


class IssuanceInProgressError(IssuanceError):
    """Another delivery of the same transaction claimed it recently and has not completed."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Webhook transaction {transaction_id} is still being processed")
        self.transaction_id = transaction_id
