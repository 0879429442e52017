"""
Webhook issuance orchestrator.

Turns a verified payment-success event into one issuance attempt per owed
voucher variant. Variants are issued in catalog order and independently: a
variant that ends EXHAUSTED_RETRIES or FATAL never prevents the remaining
variants from being attempted, and every variant yields exactly one outcome.

This module performs no mutation of its own; the only side effects are the
discount code inserts made by the resolver.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from domain.discount_code import (
    DEFAULT_MAX_ATTEMPTS,
    DiscountAttributes,
    IssuanceOutcome,
    IssuanceRequest,
    VoucherVariant,
)
from domain.payment_event import PaymentSucceededEvent
from domain.time import utc_now
from domain.voucher_catalog import variants_for
from domain.voucher_code import derive_base_code
from repositories.discount_code_repository import DiscountCodeStore
from services.voucher_issuance_service import issue_unique

logger = logging.getLogger(__name__)


def build_issuance_request(event: PaymentSucceededEvent, now: Optional[datetime] = None) -> IssuanceRequest:
    """
    Validate an event and build its immutable IssuanceRequest.

    Every voucher is valid from `now` until the end of the purchased period.

    Raises:
        InvalidIssuanceRequestError: if the customer name yields no base code or
            the resulting attributes are invalid (e.g. period already ended)
    """

    issued_at = now or utc_now()
    base_code = derive_base_code(event.customer.display_name)

    variants = tuple(
        VoucherVariant(
            suffix_label=template.suffix_label,
            attributes=DiscountAttributes(
                discount_type=template.discount_type,
                discount_value=template.discount_value,
                billing_cycle=template.billing_cycle,
                valid_from=issued_at,
                valid_until=event.period_end,
                order_id=event.order_id,
                is_production=event.is_production,
            ),
        )
        for template in variants_for(event.product_kind, event.customer.creator_type)
    )

    return IssuanceRequest(
        order_id=event.order_id,
        product_kind=event.product_kind,
        base_code=base_code,
        variants=variants,
    )


def issue_variants(
    store: DiscountCodeStore,
    request: IssuanceRequest,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> List[IssuanceOutcome]:
    """Issue every variant of a request, in order, collecting one outcome each."""

    outcomes: List[IssuanceOutcome] = []

    for variant in request.variants:
        outcome = issue_unique(
            store,
            request.base_code,
            variant.suffix_label,
            variant.attributes,
            max_attempts=max_attempts,
        )
        outcomes.append(outcome)

        if outcome.is_issued:
            logger.info(
                "Created %s voucher %s for order %s",
                variant.attributes.billing_cycle.value,
                outcome.code,
                request.order_id,
            )
        else:
            logger.error(
                "Failed to create %s voucher for order %s: %s",
                variant.attributes.billing_cycle.value,
                request.order_id,
                outcome.error,
            )

    return outcomes


def on_payment_succeeded(
    store: DiscountCodeStore,
    event: PaymentSucceededEvent,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    now: Optional[datetime] = None,
) -> List[IssuanceOutcome]:
    """
    Issue all vouchers owed for a verified, deduplicated payment success.

    Precondition: the event was authenticated and deduplicated upstream by its
    transaction_id. Codes inserted concurrently by *other* transactions are
    handled by the resolver's collision retry, not by a lock.

    Returns:
        Outcomes in variant order (empty when the product owes no vouchers)
    """

    request = build_issuance_request(event, now)
    if not request.variants:
        logger.info("No vouchers owed for order %s (product %s)", event.order_id, event.product_kind)
        return []

    return issue_variants(store, request, max_attempts=max_attempts)


__all__ = ["build_issuance_request", "issue_variants", "on_payment_succeeded"]
