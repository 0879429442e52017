"""
Domain: Discount codes and voucher issuance records.

Contract excerpts implemented here:
- A candidate code for attempt_index 0 is base_code + suffix_label.
- A candidate code for attempt_index >= 1 is base_code + suffix_label + (attempt_index + 1).
- Candidate codes are derived, never persisted directly; only a successful
  insert creates a DiscountCode.
- Discount attributes are an explicit record, validated before any code is derived,
  and forwarded verbatim to the persisted row.
- One IssuanceOutcome is produced per requested variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Tuple

from .errors import (
    ExhaustedRetriesError,
    FatalIssuanceError,
    InvalidIssuanceRequestError,
    IssuanceError,
)
from .time import require_validity_window


DEFAULT_MAX_ATTEMPTS: int = 10


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class BillingCycle(str, Enum):
    YEARLY = "yearly"
    MONTHLY = "monthly"


class IssuanceStatus(str, Enum):
    ISSUED = "issued"
    EXHAUSTED_RETRIES = "exhausted_retries"
    FATAL = "fatal"


def require_code_part(name: str, value: str) -> None:
    """Code parts must be non-empty printable strings without surrounding whitespace."""

    if not isinstance(value, str) or not value:
        raise InvalidIssuanceRequestError(f"{name} must be a non-empty string")
    if not value.isprintable() or value != value.strip():
        raise InvalidIssuanceRequestError(f"{name} must be printable with no surrounding whitespace")


@dataclass(frozen=True, slots=True)
class DiscountAttributes:
    """
    Payload persisted alongside a discount code.

    Validation runs at construction so an invalid record is rejected before
    the first insert attempt.
    """

    discount_type: DiscountType
    discount_value: Decimal
    billing_cycle: BillingCycle
    valid_from: datetime
    valid_until: datetime
    order_id: str
    is_production: bool
    is_active: bool = True
    max_uses: Optional[int] = None
    is_new_customer: bool = False

    def __post_init__(self) -> None:
        try:
            require_validity_window(self.valid_from, self.valid_until)
        except ValueError as exc:
            raise InvalidIssuanceRequestError(str(exc)) from None

        if not self.order_id or not self.order_id.strip():
            raise InvalidIssuanceRequestError("order_id must be a non-empty string")
        if self.discount_value <= 0:
            raise InvalidIssuanceRequestError("discount_value must be positive")
        if self.discount_type is DiscountType.PERCENTAGE and self.discount_value > 100:
            raise InvalidIssuanceRequestError("percentage discount_value must be <= 100")
        if self.max_uses is not None and self.max_uses < 1:
            raise InvalidIssuanceRequestError("max_uses must be None or >= 1")

    def to_record(self) -> dict[str, Any]:
        """Serialize to the column layout of the discount_codes table."""

        return {
            "discount_type": self.discount_type.value,
            "discount_value": str(self.discount_value),
            "billing_cycle": self.billing_cycle.value,
            "valid_from": self.valid_from.isoformat(),
            "valid_until": self.valid_until.isoformat(),
            "order_id": self.order_id,
            "is_production": self.is_production,
            "is_active": self.is_active,
            "max_uses": self.max_uses,
            "is_new_customer": self.is_new_customer,
        }


@dataclass(frozen=True, slots=True)
class VoucherVariant:
    """One code entitlement owed by a purchase (e.g. the yearly voucher)."""

    suffix_label: str
    attributes: DiscountAttributes

    def __post_init__(self) -> None:
        require_code_part("suffix_label", self.suffix_label)


@dataclass(frozen=True, slots=True)
class IssuanceRequest:
    """Immutable request built once per verified webhook delivery."""

    order_id: str
    product_kind: str
    base_code: str
    variants: Tuple[VoucherVariant, ...]

    def __post_init__(self) -> None:
        require_code_part("base_code", self.base_code)
        labels = [variant.suffix_label for variant in self.variants]
        if len(set(labels)) != len(labels):
            raise InvalidIssuanceRequestError(f"Duplicate variant suffix labels: {labels}")


@dataclass(frozen=True, slots=True)
class CandidateCode:
    text: str
    attempt_index: int

    @classmethod
    def derive(cls, base_code: str, suffix_label: str, attempt_index: int) -> "CandidateCode":
        if attempt_index < 0:
            raise ValueError("attempt_index must be >= 0")
        if attempt_index == 0:
            return cls(text=f"{base_code}{suffix_label}", attempt_index=0)
        return cls(text=f"{base_code}{suffix_label}{attempt_index + 1}", attempt_index=attempt_index)


@dataclass(frozen=True, slots=True)
class DiscountCode:
    """A discount code row as created by a successful insert."""

    discount_code_id: str
    code: str
    attributes: DiscountAttributes


@dataclass(frozen=True, slots=True)
class IssuanceOutcome:
    """
    Terminal result of issuing one variant.

    attempts counts insert calls made for the variant. For ISSUED outcomes the
    winning candidate's attempt_index is attempts - 1.
    """

    suffix_label: str
    status: IssuanceStatus
    attempts: int
    discount_code: Optional[DiscountCode] = None
    error: Optional[IssuanceError] = None

    @classmethod
    def issued(
        cls,
        suffix_label: str,
        candidate: CandidateCode,
        discount_code_id: str,
        attributes: DiscountAttributes,
    ) -> "IssuanceOutcome":
        return cls(
            suffix_label=suffix_label,
            status=IssuanceStatus.ISSUED,
            attempts=candidate.attempt_index + 1,
            discount_code=DiscountCode(
                discount_code_id=discount_code_id,
                code=candidate.text,
                attributes=attributes,
            ),
        )

    @classmethod
    def exhausted(cls, suffix_label: str, error: ExhaustedRetriesError) -> "IssuanceOutcome":
        return cls(
            suffix_label=suffix_label,
            status=IssuanceStatus.EXHAUSTED_RETRIES,
            attempts=len(error.attempted_codes),
            error=error,
        )

    @classmethod
    def fatal(cls, suffix_label: str, attempts: int, error: FatalIssuanceError) -> "IssuanceOutcome":
        return cls(
            suffix_label=suffix_label,
            status=IssuanceStatus.FATAL,
            attempts=attempts,
            error=error,
        )

    @property
    def code(self) -> Optional[str]:
        return self.discount_code.code if self.discount_code else None

    @property
    def discount_code_id(self) -> Optional[str]:
        return self.discount_code.discount_code_id if self.discount_code else None

    @property
    def is_issued(self) -> bool:
        return self.status is IssuanceStatus.ISSUED

    @property
    def attempt_index(self) -> Optional[int]:
        return self.attempts - 1 if self.is_issued else None

    @property
    def needs_attention(self) -> bool:
        """Exhausted and fatal outcomes require manual remediation."""
        return not self.is_issued
