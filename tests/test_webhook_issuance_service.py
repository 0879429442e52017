"""
Tests for `services/webhook_issuance_service.py`.

Covers contract rules:
- One outcome per owed variant, in catalog order.
- A failed variant never prevents the next one from being attempted.
- The event is validated before any insert.
- Redelivery of an already-issued order does not raise; the first candidate
  collides and the resolver moves on.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import ISSUED_AT, PERIOD_END, InMemoryDiscountCodeStore
from domain.discount_code import IssuanceStatus
from domain.errors import FatalIssuanceError, InvalidIssuanceRequestError
from domain.payment_event import CustomerIdentity, PaymentSucceededEvent
from domain.voucher_catalog import CREATOR_PRO, CREATOR_PROFESSIONAL
from services.webhook_issuance_service import build_issuance_request, on_payment_succeeded


def _event(display_name: str = "Jane Doe", creator_type=None, **overrides) -> PaymentSucceededEvent:
    values = {
        "transaction_id": "txn-1",
        "order_id": "SUB-0001",
        "product_kind": CREATOR_PRO,
        "customer": CustomerIdentity(user_id="user-1", display_name=display_name, creator_type=creator_type),
        "period_end": PERIOD_END,
    }
    values.update(overrides)
    return PaymentSucceededEvent(**values)


def test_build_issuance_request() -> None:
    request = build_issuance_request(_event(is_production=True), now=ISSUED_AT)

    assert request.base_code == "JD"
    assert request.order_id == "SUB-0001"
    assert [v.suffix_label for v in request.variants] == ["25Y", "25M"]
    for variant in request.variants:
        assert variant.attributes.valid_from == ISSUED_AT
        assert variant.attributes.valid_until == PERIOD_END
        assert variant.attributes.order_id == "SUB-0001"
        assert variant.attributes.is_production is True


def test_issues_all_variants_in_order(store) -> None:
    outcomes = on_payment_succeeded(store, _event(), now=ISSUED_AT)

    assert [o.suffix_label for o in outcomes] == ["25Y", "25M"]
    assert [o.code for o in outcomes] == ["JD25Y", "JD25M"]
    assert store.rows["JD25Y"]["billing_cycle"] == "yearly"
    assert store.rows["JD25M"]["billing_cycle"] == "monthly"
    assert store.rows["JD25M"]["discount_type"] == "percentage"


def test_exhausted_variant_does_not_block_next() -> None:
    taken = ["JD25Y"] + [f"JD25Y{n}" for n in range(2, 11)]
    store = InMemoryDiscountCodeStore(existing_codes=taken)

    outcomes = on_payment_succeeded(store, _event(), now=ISSUED_AT)

    assert [o.suffix_label for o in outcomes] == ["25Y", "25M"]
    assert outcomes[0].status is IssuanceStatus.EXHAUSTED_RETRIES
    assert outcomes[1].status is IssuanceStatus.ISSUED
    assert outcomes[1].code == "JD25M"
    assert outcomes[1].attempts == 1


def test_fatal_variant_does_not_block_next() -> None:
    store = InMemoryDiscountCodeStore(failures={"JD25Y": FatalIssuanceError("permission denied")})

    outcomes = on_payment_succeeded(store, _event(), now=ISSUED_AT)

    assert [o.status for o in outcomes] == [IssuanceStatus.FATAL, IssuanceStatus.ISSUED]
    assert store.attempted_codes == ["JD25Y", "JD25M"]


def test_respects_max_attempts() -> None:
    store = InMemoryDiscountCodeStore(existing_codes=["JD25Y", "JD25Y2", "JD25M"])

    outcomes = on_payment_succeeded(store, _event(), max_attempts=2, now=ISSUED_AT)

    assert outcomes[0].status is IssuanceStatus.EXHAUSTED_RETRIES
    assert outcomes[1].code == "JD25M2"


def test_redelivery_collides_and_advances(store) -> None:
    first = on_payment_succeeded(store, _event(), now=ISSUED_AT)
    second = on_payment_succeeded(store, _event(transaction_id="txn-2"), now=ISSUED_AT)

    assert [o.code for o in first] == ["JD25Y", "JD25M"]
    assert [o.code for o in second] == ["JD25Y2", "JD25M2"]
    assert len(store.issued_codes) == len(set(store.issued_codes)) == 4


def test_professional_creators_get_nothing(store) -> None:
    outcomes = on_payment_succeeded(store, _event(creator_type=CREATOR_PROFESSIONAL), now=ISSUED_AT)

    assert outcomes == []
    assert store.attempted_codes == []


def test_unknown_product_gets_nothing(store) -> None:
    assert on_payment_succeeded(store, _event(product_kind="lesson"), now=ISSUED_AT) == []
    assert store.attempted_codes == []


@pytest.mark.parametrize(
    "event_kwargs, now",
    [
        ({"display_name": "1234"}, ISSUED_AT),
        ({}, PERIOD_END + timedelta(seconds=1)),
    ],
)
def test_invalid_event_rejected_before_insert(store, event_kwargs, now) -> None:
    with pytest.raises(InvalidIssuanceRequestError):
        on_payment_succeeded(store, _event(**event_kwargs), now=now)

    assert store.attempted_codes == []
