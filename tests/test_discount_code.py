"""
Tests for `domain/discount_code.py`, `domain/voucher_code.py` and `domain/voucher_catalog.py`.

Covers contract rules:
- Candidate codes follow base+suffix, then base+suffix+(attempt_index+1).
- Discount attributes are validated before any code is derived.
- Base codes are derived from display-name initials with a 3-letter fallback.
- Creator Pro owes a yearly then a monthly voucher; professional creators owe none.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import timedelta, timezone, datetime
from decimal import Decimal

import pytest

from conftest import ISSUED_AT, make_attributes
from domain.discount_code import (
    BillingCycle,
    CandidateCode,
    DiscountType,
    IssuanceRequest,
    VoucherVariant,
)
from domain.errors import InvalidIssuanceRequestError
from domain.voucher_catalog import CREATOR_PRO, CREATOR_PROFESSIONAL, variants_for
from domain.voucher_code import derive_base_code


def test_candidate_code_sequence() -> None:
    """Verify attempt 0 has no numeric suffix and later attempts count from 2."""

    texts = [CandidateCode.derive("X", "25Y", i).text for i in range(10)]

    assert texts == [
        "X25Y", "X25Y2", "X25Y3", "X25Y4", "X25Y5",
        "X25Y6", "X25Y7", "X25Y8", "X25Y9", "X25Y10",
    ]
    assert len(set(texts)) == len(texts)


def test_candidate_code_rejects_negative_index() -> None:
    with pytest.raises(ValueError):
        CandidateCode.derive("X", "25Y", -1)


def test_attributes_to_record_serializes_columns() -> None:
    record = make_attributes().to_record()

    assert record["discount_type"] == "fixed"
    assert record["discount_value"] == "25000"
    assert record["billing_cycle"] == "yearly"
    assert record["valid_from"] == ISSUED_AT.isoformat()
    assert record["order_id"] == "SUB-0001"
    assert record["is_active"] is True
    assert record["max_uses"] is None
    assert record["is_new_customer"] is False
    assert "code" not in record


@pytest.mark.parametrize(
    "overrides",
    [
        {"valid_until": ISSUED_AT},
        {"valid_until": ISSUED_AT - timedelta(days=1)},
        {"valid_from": datetime(2025, 1, 15, 8, 30)},
        {"valid_from": ISSUED_AT.astimezone(timezone(timedelta(hours=7)))},
        {"discount_value": Decimal("0")},
        {"discount_type": DiscountType.PERCENTAGE, "discount_value": Decimal("101")},
        {"max_uses": 0},
        {"order_id": "  "},
    ],
)
def test_attributes_validation(overrides) -> None:
    with pytest.raises(InvalidIssuanceRequestError):
        make_attributes(**overrides)


def test_attributes_are_immutable() -> None:
    attributes = make_attributes()

    with pytest.raises(FrozenInstanceError):
        attributes.order_id = "other"  # type: ignore[misc]


def test_issuance_request_rejects_duplicate_suffixes() -> None:
    variant = VoucherVariant(suffix_label="25Y", attributes=make_attributes())

    with pytest.raises(InvalidIssuanceRequestError):
        IssuanceRequest(order_id="SUB-0001", product_kind=CREATOR_PRO, base_code="JD", variants=(variant, variant))


@pytest.mark.parametrize("suffix", ["", " 25Y", "25\nY"])
def test_variant_requires_printable_suffix(suffix) -> None:
    with pytest.raises(InvalidIssuanceRequestError):
        VoucherVariant(suffix_label=suffix, attributes=make_attributes())


@pytest.mark.parametrize(
    "display_name, expected",
    [
        ("Jane Doe", "JD"),
        ("jane mary doe", "JMD"),
        ("Jane", "JAN"),
        ("Jo", "JO"),
        ("J", "J"),
        ("Jöhn-Paul O'Neil", "JO"),
        ("  ", "USE"),
        (None, "USE"),
        ("Worship Team 2024", "WT"),
    ],
)
def test_derive_base_code(display_name, expected) -> None:
    assert derive_base_code(display_name) == expected


def test_derive_base_code_requires_letters() -> None:
    with pytest.raises(InvalidIssuanceRequestError):
        derive_base_code("1234 !!")


def test_creator_pro_variants_in_order() -> None:
    variants = variants_for(CREATOR_PRO)

    assert [v.suffix_label for v in variants] == ["25Y", "25M"]
    assert variants[0].discount_type is DiscountType.FIXED
    assert variants[0].billing_cycle is BillingCycle.YEARLY
    assert variants[1].discount_type is DiscountType.PERCENTAGE
    assert variants[1].discount_value == Decimal("25")
    assert variants[1].billing_cycle is BillingCycle.MONTHLY


def test_no_variants_for_professionals_or_unknown_products() -> None:
    assert variants_for(CREATOR_PRO, CREATOR_PROFESSIONAL) == ()
    assert variants_for("basic_monthly") == ()
