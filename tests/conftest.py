"""
Pytest configuration and in-memory collaborators.

Adds the project root to the Python path so tests can import domain,
repositories and services, and provides unique-keyed in-memory stand-ins for
the discount code store, the webhook event ledger and the alerter. None of the
tests need a live Supabase project.
"""

import itertools
import sys
import threading
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.discount_code import BillingCycle, DiscountAttributes, DiscountType  # noqa: E402
from domain.errors import CollisionError  # noqa: E402
from repositories.webhook_event_repository import ClaimStatus, EventClaim  # noqa: E402

ISSUED_AT = datetime(2025, 1, 15, 8, 30, 0, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 1, 15, 8, 30, 0, tzinfo=timezone.utc)


class InMemoryDiscountCodeStore:
    """
    Discount code store enforcing code uniqueness under a lock.

    failures maps a code to the exception its insert raises instead of
    succeeding. race_code, when set, makes every insert of that code wait at a
    two-party barrier so two issuers reach the uniqueness check together.
    """

    def __init__(
        self,
        existing_codes: Iterable[str] = (),
        failures: Optional[Mapping[str, BaseException]] = None,
        race_code: Optional[str] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self.rows: Dict[str, Dict[str, Any]] = {
            code: {"id": f"existing-{i}", "code": code} for i, code in enumerate(existing_codes)
        }
        self.preexisting = frozenset(self.rows)
        self.attempted_codes: List[str] = []
        self.failures = dict(failures or {})
        self._barrier = threading.Barrier(2) if race_code else None
        self._race_code = race_code

    def insert(self, record: Mapping[str, Any]) -> str:
        code = record["code"]
        if self._barrier is not None and code == self._race_code:
            self._barrier.wait(timeout=5)

        with self._lock:
            self.attempted_codes.append(code)
            if code in self.failures:
                raise self.failures[code]
            if code in self.rows:
                raise CollisionError(code)
            discount_code_id = f"dc-{next(self._ids)}"
            self.rows[code] = {**record, "id": discount_code_id}
            return discount_code_id

    @property
    def issued_codes(self) -> List[str]:
        return [code for code in self.rows if code not in self.preexisting]


class ProcessKilled(BaseException):
    """Stands in for the worker dying mid-request; not caught by `except Exception`."""


class InMemoryWebhookEventLedger:
    """
    Ledger keyed on transaction_id. claims maps each claimed transaction to
    [status, claimed_at]; completed lets a test seed finished transactions.
    """

    def __init__(
        self,
        completed: Iterable[str] = (),
        error: Optional[Exception] = None,
    ) -> None:
        self.claims: Dict[str, List[Any]] = {
            transaction_id: [ClaimStatus.COMPLETED, ISSUED_AT] for transaction_id in completed
        }
        self.error = error

    def claim(self, transaction_id: str, order_id: str, claimed_at: datetime) -> EventClaim:
        if self.error is not None:
            raise self.error
        if transaction_id in self.claims:
            status, first_claimed_at = self.claims[transaction_id]
            return EventClaim(status=status, claimed_at=first_claimed_at)
        self.claims[transaction_id] = [ClaimStatus.IN_PROGRESS, claimed_at]
        return EventClaim(status=ClaimStatus.CLAIMED, claimed_at=claimed_at)

    def complete(self, transaction_id: str, completed_at: datetime) -> None:
        self.claims[transaction_id][0] = ClaimStatus.COMPLETED

    @property
    def claimed(self) -> Set[str]:
        return set(self.claims)

    def status_of(self, transaction_id: str) -> Optional[ClaimStatus]:
        entry = self.claims.get(transaction_id)
        return entry[0] if entry else None


class RecordingAlerter:
    def __init__(self) -> None:
        self.alerts: List[tuple] = []
        self.rejected: List[tuple] = []
        self.interrupted: List[tuple] = []

    def alert(self, request, outcome) -> None:
        self.alerts.append((request, outcome))

    def alert_rejected(self, transaction_id, order_id, error) -> None:
        self.rejected.append((transaction_id, order_id, error))

    def alert_interrupted(self, transaction_id, order_id, claimed_at) -> None:
        self.interrupted.append((transaction_id, order_id, claimed_at))


def make_attributes(**overrides: Any) -> DiscountAttributes:
    values: Dict[str, Any] = {
        "discount_type": DiscountType.FIXED,
        "discount_value": Decimal("25000"),
        "billing_cycle": BillingCycle.YEARLY,
        "valid_from": ISSUED_AT,
        "valid_until": PERIOD_END,
        "order_id": "SUB-0001",
        "is_production": False,
    }
    values.update(overrides)
    return DiscountAttributes(**values)


@pytest.fixture
def attributes() -> DiscountAttributes:
    return make_attributes()


@pytest.fixture
def store() -> InMemoryDiscountCodeStore:
    return InMemoryDiscountCodeStore()


@pytest.fixture
def ledger() -> InMemoryWebhookEventLedger:
    return InMemoryWebhookEventLedger()


@pytest.fixture
def alerter() -> RecordingAlerter:
    return RecordingAlerter()
