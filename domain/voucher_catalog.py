"""
Domain: Voucher catalog.

Maps a purchased product kind to the ordered voucher variants it owes.
Creator Pro purchases owe a yearly fixed-amount voucher and a monthly
percentage voucher. Creators already on the professional tier are not issued
vouchers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple

from .discount_code import BillingCycle, DiscountType

CREATOR_PRO: str = "creator_pro"
CREATOR_PROFESSIONAL: str = "creator_professional"


@dataclass(frozen=True, slots=True)
class VariantTemplate:
    """Static description of a variant; the validity window is filled per purchase."""

    suffix_label: str
    discount_type: DiscountType
    discount_value: Decimal
    billing_cycle: BillingCycle


_CATALOG: Dict[str, Tuple[VariantTemplate, ...]] = {
    CREATOR_PRO: (
        VariantTemplate(
            suffix_label="25Y",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("25000"),
            billing_cycle=BillingCycle.YEARLY,
        ),
        VariantTemplate(
            suffix_label="25M",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("25"),
            billing_cycle=BillingCycle.MONTHLY,
        ),
    ),
}


def variants_for(product_kind: str, creator_type: Optional[str] = None) -> Tuple[VariantTemplate, ...]:
    """
    Return the variant templates owed for a purchase, in issuance order.

    Unknown product kinds and professional-tier creators owe nothing.
    """

    if creator_type == CREATOR_PROFESSIONAL:
        return ()
    return _CATALOG.get(product_kind, ())
