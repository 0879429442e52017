"""
Webhook API Endpoints.

Receives authenticated payment notifications and issues creator vouchers.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import (
    get_alerter,
    get_discount_code_store,
    get_settings,
    get_webhook_event_ledger,
)
from api.models import PaymentWebhookRequest, PaymentWebhookResponse, VoucherOutcomeResponse
from domain.errors import FatalIssuanceError, IssuanceInProgressError
from domain.payment_event import CustomerIdentity
from repositories.client import Settings
from repositories.discount_code_repository import DiscountCodeStore
from repositories.webhook_event_repository import WebhookEventLedger
from services.alerting import IssuanceAlerter
from services.payment_webhook_service import (
    PaymentNotification,
    WebhookDisposition,
    handle_payment_notification,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhooks/payments",
    response_model=PaymentWebhookResponse,
    summary="Payment Webhook",
    description="Issue creator vouchers for a successful, authenticated payment notification."
)
def receive_payment_webhook(
    request: PaymentWebhookRequest,
    store: DiscountCodeStore = Depends(get_discount_code_store),
    ledger: WebhookEventLedger = Depends(get_webhook_event_ledger),
    alerter: IssuanceAlerter = Depends(get_alerter),
    settings: Settings = Depends(get_settings),
):
    """
    Process a payment notification.

    **Responses:**
    - `200` once every variant has an outcome, even if some variants failed
      (failures are alerted to operators for manual issuance, so the gateway
      is not asked to redeliver)
    - `200` with status `duplicate` for a redelivered transaction
    - `200` with status `ignored` for non-success statuses
    - `200` with status `rejected` when the event cannot be issued for
      (e.g. no usable display name); operators are alerted
    - `200` with status `interrupted` when an earlier delivery died mid-issuance;
      operators are alerted
    - `409` while another delivery of the same transaction is still running
    - `503` when the event ledger is unavailable, so the gateway redelivers
    """
    notification = PaymentNotification(
        transaction_id=request.transaction_id,
        order_id=request.order_id,
        transaction_status=request.transaction_status,
        product_kind=request.product_kind,
        customer=CustomerIdentity(
            user_id=request.customer.user_id,
            display_name=request.customer.display_name,
            creator_type=request.customer.creator_type,
        ),
        period_end=request.period_end,
    )

    try:
        result = handle_payment_notification(
            notification,
            store=store,
            ledger=ledger,
            alerter=alerter,
            is_production=settings.is_production,
            max_attempts=settings.voucher_max_attempts,
        )
    except IssuanceInProgressError as e:
        logger.info("Redelivery for order %s while still processing: %s", request.order_id, e)
        raise HTTPException(
            status_code=409,
            detail="Transaction is still being processed, please retry"
        )
    except FatalIssuanceError as e:
        logger.error("Webhook ledger unavailable for order %s: %s", request.order_id, e)
        raise HTTPException(
            status_code=503,
            detail="Webhook could not be recorded, please retry"
        )

    outcomes = [
        VoucherOutcomeResponse(
            suffix_label=outcome.suffix_label,
            status=outcome.status.value,
            attempts=outcome.attempts,
            code=outcome.code,
            discount_code_id=outcome.discount_code_id,
            error=str(outcome.error) if outcome.error else None,
        )
        for outcome in result.outcomes
    ]

    if result.disposition is WebhookDisposition.IGNORED:
        message = "Payment not successful; no vouchers issued."
    elif result.disposition is WebhookDisposition.REJECTED:
        message = f"No vouchers issued: {result.reason}. Operators have been alerted."
    elif result.disposition is WebhookDisposition.DUPLICATE:
        message = "Transaction already processed."
    elif result.disposition is WebhookDisposition.INTERRUPTED:
        message = "Earlier processing was interrupted. Operators have been alerted."
    else:
        issued = len(result.outcomes) - len(result.failed_outcomes)
        message = f"{issued} voucher(s) issued."
        if result.failed_outcomes:
            message += f" {len(result.failed_outcomes)} require manual issuance."

    return PaymentWebhookResponse(
        status=result.disposition.value,
        outcomes=outcomes,
        message=message
    )
