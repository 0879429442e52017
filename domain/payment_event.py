"""
Domain: Verified payment-success events.

A PaymentSucceededEvent is what the webhook layer hands to issuance once the
gateway notification has been authenticated and its status confirmed as a
successful capture/settlement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import InvalidIssuanceRequestError
from .time import require_utc_timestamp

SUCCESS_TRANSACTION_STATUSES: frozenset[str] = frozenset({"capture", "settlement"})


def is_success_status(transaction_status: str) -> bool:
    return transaction_status.strip().lower() in SUCCESS_TRANSACTION_STATUSES


@dataclass(frozen=True, slots=True)
class CustomerIdentity:
    user_id: str
    display_name: Optional[str] = None
    creator_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PaymentSucceededEvent:
    """
    Immutable, already-verified payment success.

    transaction_id is the gateway's idempotency key; period_end is the end of
    the purchased subscription period and bounds voucher validity.
    """

    transaction_id: str
    order_id: str
    product_kind: str
    customer: CustomerIdentity
    period_end: datetime
    is_production: bool = False

    def __post_init__(self) -> None:
        try:
            require_utc_timestamp("period_end", self.period_end)
        except ValueError as exc:
            raise InvalidIssuanceRequestError(str(exc)) from None
        if not self.transaction_id:
            raise InvalidIssuanceRequestError("transaction_id must be non-empty")
        if not self.order_id:
            raise InvalidIssuanceRequestError("order_id must be non-empty")
