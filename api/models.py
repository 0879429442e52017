"""
API Request and Response Models.

Pydantic models for validating webhook requests and serializing responses.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Webhook Models
# ============================================================================

class CustomerPayload(BaseModel):
    """Identity of the paying customer, resolved by the gateway adapter."""
    user_id: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    creator_type: Optional[str] = None  # creator_pro, creator_professional, ...


class PaymentWebhookRequest(BaseModel):
    """Authenticated payment notification forwarded to voucher issuance."""
    transaction_id: str = Field(
        ...,
        min_length=1,
        description="Gateway transaction ID, used as the idempotency key"
    )
    order_id: str = Field(..., min_length=1)
    transaction_status: str = Field(
        ...,
        description="Gateway status; only capture/settlement issue vouchers"
    )
    product_kind: str = Field(..., min_length=1)
    customer: CustomerPayload
    period_end: datetime = Field(
        ...,
        description="End of the purchased subscription period (timezone-aware)"
    )

    @field_validator("period_end")
    @classmethod
    def _period_end_to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("period_end must be timezone-aware")
        return value.astimezone(timezone.utc)

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_id": "c1f6a6f4-6b2a-4c8e-9a1d-2f0b7c9e1a11",
                "order_id": "SUB-1736912345-ab12cd",
                "transaction_status": "settlement",
                "product_kind": "creator_pro",
                "customer": {
                    "user_id": "123e4567-e89b-12d3-a456-426614174002",
                    "display_name": "Jane Doe",
                    "creator_type": "creator_pro"
                },
                "period_end": "2026-01-15T00:00:00Z"
            }
        }


class VoucherOutcomeResponse(BaseModel):
    """Issuance outcome for a single voucher variant."""
    suffix_label: str
    status: str  # issued, exhausted_retries, fatal
    attempts: int
    code: Optional[str] = None
    discount_code_id: Optional[str] = None
    error: Optional[str] = None


class PaymentWebhookResponse(BaseModel):
    """Response after webhook processing."""
    status: str  # ignored, rejected, duplicate, interrupted, processed
    outcomes: List[VoucherOutcomeResponse]
    message: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "processed",
                "outcomes": [
                    {
                        "suffix_label": "25Y",
                        "status": "issued",
                        "attempts": 2,
                        "code": "JD25Y2",
                        "discount_code_id": "8d1c7f0e-3a5b-4f7a-9c2e-1b6d4e8f0a12",
                        "error": None
                    },
                    {
                        "suffix_label": "25M",
                        "status": "issued",
                        "attempts": 1,
                        "code": "JD25M",
                        "discount_code_id": "0b2e4c6a-8d1f-4e3a-b5c7-9f0a1d2e3c4b",
                        "error": None
                    }
                ],
                "message": "2 voucher(s) issued."
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
