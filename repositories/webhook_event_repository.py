"""
Webhook event ledger (persistence).

Records which gateway transactions have been taken up for processing so that
a redelivered webhook is not issued vouchers a second time. Like discount
codes, the claim relies solely on a unique constraint (`transaction_id`)
rather than a read-then-write check, so two concurrent deliveries cannot both
claim the same transaction.

A claim starts `in_progress` and is marked `completed` once every variant has
an outcome. A claim left `in_progress` means the delivery that took it never
finished (e.g. the process died mid-issuance).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Protocol

from postgrest.exceptions import APIError
from supabase import Client  # type: ignore[import-not-found]

from domain.errors import CollisionError, FatalIssuanceError
from domain.time import require_utc_timestamp
from repositories.discount_code_repository import raise_for_insert_error

logger = logging.getLogger(__name__)

_PROCESSED_EVENTS_TABLE: str = "processed_webhook_events"


class ClaimStatus(str, Enum):
    CLAIMED = "claimed"  # this delivery now owns the transaction
    IN_PROGRESS = "in_progress"  # claimed earlier, not completed
    COMPLETED = "completed"  # claimed earlier and fully processed


@dataclass(frozen=True, slots=True)
class EventClaim:
    status: ClaimStatus
    claimed_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("claimed_at", self.claimed_at)


class WebhookEventLedger(Protocol):
    def claim(self, transaction_id: str, order_id: str, claimed_at: datetime) -> EventClaim:
        """
        Claim a transaction for processing.

        Returns CLAIMED on first claim; otherwise the state of the existing
        claim (IN_PROGRESS or COMPLETED) with its original claim time.
        Raises FatalIssuanceError on any other storage failure.
        """
        ...

    def complete(self, transaction_id: str, completed_at: datetime) -> None:
        """Mark a claimed transaction as fully processed."""
        ...


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _row_to_claim(row: Mapping[str, Any]) -> EventClaim:
    status = ClaimStatus.COMPLETED if row.get("status") == ClaimStatus.COMPLETED.value else ClaimStatus.IN_PROGRESS
    return EventClaim(status=status, claimed_at=_parse_utc_datetime(row["claimed_at_utc"]))


class SupabaseWebhookEventLedger:
    """WebhookEventLedger backed by the Supabase `processed_webhook_events` table."""

    def __init__(self, client: Client, table: str = _PROCESSED_EVENTS_TABLE) -> None:
        self._client = client
        self._table = table

    def claim(self, transaction_id: str, order_id: str, claimed_at: datetime) -> EventClaim:
        require_utc_timestamp("claimed_at", claimed_at)
        payload: dict[str, Any] = {
            "transaction_id": transaction_id,
            "order_id": order_id,
            "status": ClaimStatus.IN_PROGRESS.value,
            "claimed_at_utc": claimed_at.isoformat(),
        }

        try:
            self._insert(payload)
        except CollisionError:
            existing = self._get_claim(transaction_id)
            logger.info(
                "Webhook transaction %s already claimed (order %s, status %s)",
                transaction_id,
                order_id,
                existing.status.value,
            )
            return existing

        return EventClaim(status=ClaimStatus.CLAIMED, claimed_at=claimed_at)

    def complete(self, transaction_id: str, completed_at: datetime) -> None:
        payload: dict[str, Any] = {
            "status": ClaimStatus.COMPLETED.value,
            "completed_at_utc": completed_at.isoformat(),
        }

        try:
            response = (
                self._client.table(self._table)
                .update(payload)
                .eq("transaction_id", transaction_id)
                .execute()
            )
        except Exception as exc:
            raise FatalIssuanceError(f"Failed to complete webhook event: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise FatalIssuanceError(f"Failed to complete webhook event: {error}")

    def _insert(self, payload: dict[str, Any]) -> None:
        transaction_id = payload["transaction_id"]
        try:
            response = self._client.table(self._table).insert(payload).execute()
        except APIError as exc:
            raise_for_insert_error(exc, key=transaction_id, entity="webhook event")
        except Exception as exc:
            raise FatalIssuanceError(f"Failed to insert webhook event: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise_for_insert_error(error, key=transaction_id, entity="webhook event")

    def _get_claim(self, transaction_id: str) -> EventClaim:
        try:
            response = (
                self._client.table(self._table)
                .select("status, claimed_at_utc")
                .eq("transaction_id", transaction_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise FatalIssuanceError(f"Failed to read webhook event: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise FatalIssuanceError(f"Failed to read webhook event: {error}")

        rows = getattr(response, "data", None) or []
        if not rows:
            # Removed between the conflicting insert and this read.
            raise FatalIssuanceError(f"Webhook event {transaction_id} conflicted but could not be read")

        return _row_to_claim(rows[0])


__all__ = ["ClaimStatus", "EventClaim", "WebhookEventLedger", "SupabaseWebhookEventLedger"]
