"""
Operational alerting for voucher issuance.

Operators are alerted only for situations that need manual remediation:
- a variant ended EXHAUSTED_RETRIES or FATAL
- a successful payment was rejected at validation (nothing could be issued)
- a redelivery found an earlier delivery that never completed
Successful issuance never alerts.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Protocol

from domain.discount_code import IssuanceOutcome, IssuanceRequest
from domain.errors import IssuanceError

ALERT_LOGGER_NAME: str = "voucher_issuance.alerts"


class IssuanceAlerter(Protocol):
    def alert(self, request: IssuanceRequest, outcome: IssuanceOutcome) -> None: ...

    def alert_rejected(self, transaction_id: str, order_id: str, error: IssuanceError) -> None: ...

    def alert_interrupted(self, transaction_id: str, order_id: str, claimed_at: datetime) -> None: ...


class LoggingIssuanceAlerter:
    """Publishes alerts on a dedicated logger so log routing can page operators."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(ALERT_LOGGER_NAME)

    def alert(self, request: IssuanceRequest, outcome: IssuanceOutcome) -> None:
        self._logger.error(
            "Manual voucher issuance required: order=%s product=%s base_code=%s suffix=%s status=%s attempts=%d error=%s",
            request.order_id,
            request.product_kind,
            request.base_code,
            outcome.suffix_label,
            outcome.status.value,
            outcome.attempts,
            outcome.error,
        )

    def alert_rejected(self, transaction_id: str, order_id: str, error: IssuanceError) -> None:
        self._logger.error(
            "Manual voucher issuance required: order=%s transaction=%s status=rejected error=%s",
            order_id,
            transaction_id,
            error,
        )

    def alert_interrupted(self, transaction_id: str, order_id: str, claimed_at: datetime) -> None:
        self._logger.error(
            "Voucher issuance interrupted, check issued codes: order=%s transaction=%s status=interrupted claimed_at=%s",
            order_id,
            transaction_id,
            claimed_at.isoformat(),
        )


def alert_failures(
    alerter: IssuanceAlerter,
    request: IssuanceRequest,
    outcomes: Iterable[IssuanceOutcome],
) -> List[IssuanceOutcome]:
    """Send one alert per outcome needing attention; return those outcomes."""

    failed = [outcome for outcome in outcomes if outcome.needs_attention]
    for outcome in failed:
        alerter.alert(request, outcome)
    return failed


__all__ = ["ALERT_LOGGER_NAME", "IssuanceAlerter", "LoggingIssuanceAlerter", "alert_failures"]
