"""
Payment webhook service.

Handles:
- Ignoring notifications whose transaction status is not a success
- Boundary validation of the issuance request before anything is written
- Transaction-level dedup and crash detection via the webhook event ledger
- Voucher issuance and operator alerting for anything left unresolved

The deployment's idempotency guarantee is the ledger claim: a redelivered
notification for a completed transaction issues nothing, so codes for the same
order/variant are never attempted twice. A claim that never completed is not
re-run, because the interrupted delivery may already have issued some
variants; it is alerted for manual issuance once it is older than the
processing window. The per-variant collision retry remains as protection
against codes derived from the same base by unrelated transactions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from domain.discount_code import DEFAULT_MAX_ATTEMPTS, IssuanceOutcome
from domain.errors import FatalIssuanceError, InvalidIssuanceRequestError, IssuanceInProgressError
from domain.payment_event import CustomerIdentity, PaymentSucceededEvent, is_success_status
from domain.time import utc_now
from repositories.discount_code_repository import DiscountCodeStore
from repositories.webhook_event_repository import ClaimStatus, WebhookEventLedger
from services.alerting import IssuanceAlerter, alert_failures
from services.webhook_issuance_service import build_issuance_request, issue_variants

logger = logging.getLogger(__name__)

# How long an unfinished claim is assumed to belong to a live delivery.
CLAIM_PROCESSING_WINDOW: timedelta = timedelta(minutes=5)


class WebhookDisposition(str, Enum):
    IGNORED = "ignored"  # not a successful payment
    REJECTED = "rejected"  # paid, but nothing can be issued for it
    DUPLICATE = "duplicate"  # transaction already processed
    INTERRUPTED = "interrupted"  # an earlier delivery died mid-issuance
    PROCESSED = "processed"


@dataclass(frozen=True, slots=True)
class PaymentNotification:
    """
    Authenticated gateway notification, already parsed by the HTTP layer.
    """
    transaction_id: str
    order_id: str
    transaction_status: str
    product_kind: str
    customer: CustomerIdentity
    period_end: datetime


@dataclass(frozen=True, slots=True)
class WebhookResult:
    disposition: WebhookDisposition
    outcomes: List[IssuanceOutcome] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def failed_outcomes(self) -> List[IssuanceOutcome]:
        return [outcome for outcome in self.outcomes if outcome.needs_attention]


def handle_payment_notification(
    notification: PaymentNotification,
    *,
    store: DiscountCodeStore,
    ledger: WebhookEventLedger,
    alerter: IssuanceAlerter,
    is_production: bool = False,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    processing_window: timedelta = CLAIM_PROCESSING_WINDOW,
    now: Optional[datetime] = None,
) -> WebhookResult:
    """
    Process one webhook delivery.

    Process:
    1. Skip non-success statuses (no writes)
    2. Build and validate the issuance request; if invalid, alert -> REJECTED
    3. Claim the transaction:
       - completed earlier -> DUPLICATE
       - unfinished and within the processing window -> IssuanceInProgressError
       - unfinished and older than the window -> alert -> INTERRUPTED
    4. Issue every variant, alert on each one left unresolved, mark the claim completed

    Raises:
        IssuanceInProgressError: another delivery of this transaction is still running
        FatalIssuanceError: the ledger could not be claimed (nothing issued)
    """
    if not is_success_status(notification.transaction_status):
        logger.info(
            "Ignoring notification for order %s with status %s",
            notification.order_id,
            notification.transaction_status,
        )
        return WebhookResult(disposition=WebhookDisposition.IGNORED)

    received_at = now or utc_now()

    try:
        event = PaymentSucceededEvent(
            transaction_id=notification.transaction_id,
            order_id=notification.order_id,
            product_kind=notification.product_kind,
            customer=notification.customer,
            period_end=notification.period_end,
            is_production=is_production,
        )
        request = build_issuance_request(event, received_at)
    except InvalidIssuanceRequestError as exc:
        logger.error("Rejected payment notification for order %s: %s", notification.order_id, exc)
        alerter.alert_rejected(notification.transaction_id, notification.order_id, exc)
        return WebhookResult(disposition=WebhookDisposition.REJECTED, reason=str(exc))

    claim = ledger.claim(event.transaction_id, event.order_id, received_at)

    if claim.status is ClaimStatus.COMPLETED:
        return WebhookResult(disposition=WebhookDisposition.DUPLICATE)

    if claim.status is ClaimStatus.IN_PROGRESS:
        if received_at - claim.claimed_at < processing_window:
            raise IssuanceInProgressError(event.transaction_id)
        logger.error(
            "Transaction %s (order %s) was claimed at %s and never completed",
            event.transaction_id,
            event.order_id,
            claim.claimed_at.isoformat(),
        )
        alerter.alert_interrupted(event.transaction_id, event.order_id, claim.claimed_at)
        return WebhookResult(disposition=WebhookDisposition.INTERRUPTED)

    outcomes = issue_variants(store, request, max_attempts=max_attempts)
    alert_failures(alerter, request, outcomes)

    try:
        ledger.complete(event.transaction_id, utc_now())
    except FatalIssuanceError as exc:
        # Outcomes are final either way; a later redelivery reports the claim as interrupted.
        logger.error("Failed to mark transaction %s completed: %s", event.transaction_id, exc)

    logger.info(
        "Payment processed: order=%s transaction=%s vouchers=%d failed=%d",
        event.order_id,
        event.transaction_id,
        len(outcomes),
        sum(1 for outcome in outcomes if outcome.needs_attention),
    )
    return WebhookResult(disposition=WebhookDisposition.PROCESSED, outcomes=outcomes)


__all__ = [
    "CLAIM_PROCESSING_WINDOW",
    "WebhookDisposition",
    "PaymentNotification",
    "WebhookResult",
    "handle_payment_notification",
]
