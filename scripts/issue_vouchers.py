"""
Manually issue creator vouchers for an order.

Used by operators after an alert reports a variant as exhausted_retries or
fatal, or a transaction as rejected or interrupted (check which codes already
exist for the order before re-issuing an interrupted one). Runs the same collision-resolving issuance as the webhook, so codes
continue the normal naming sequence.

Usage:
    python scripts/issue_vouchers.py --order-id SUB-123 --display-name "Jane Doe" \
        --valid-until 2026-01-15T00:00:00Z
    python scripts/issue_vouchers.py --order-id SUB-123 --base-code JD --suffix 25Y \
        --valid-until 2026-01-15T00:00:00Z --max-attempts 20
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path so we can import from repositories
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.discount_code import DiscountAttributes
from domain.voucher_catalog import CREATOR_PRO, variants_for
from domain.voucher_code import derive_base_code
from repositories.client import create_supabase_client, load_settings
from repositories.discount_code_repository import SupabaseDiscountCodeStore
from services.voucher_issuance_service import issue_unique


def _parse_utc(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        raise argparse.ArgumentTypeError("timestamp must include a timezone (e.g. 2026-01-15T00:00:00Z)")
    return dt.astimezone(timezone.utc)


def main() -> int:
    parser = argparse.ArgumentParser(description="Manually issue creator voucher codes")
    parser.add_argument("--order-id", required=True, help="Order the vouchers are linked to")
    identity = parser.add_mutually_exclusive_group(required=True)
    identity.add_argument("--display-name", help="Creator display name to derive the base code from")
    identity.add_argument("--base-code", help="Explicit base code (skips derivation)")
    parser.add_argument("--product-kind", default=CREATOR_PRO, help=f"Product kind (default: {CREATOR_PRO})")
    parser.add_argument("--suffix", help="Only issue the variant with this suffix (e.g. 25Y)")
    parser.add_argument("--valid-until", required=True, type=_parse_utc, help="Voucher expiry (UTC)")
    parser.add_argument("--max-attempts", type=int, default=None, help="Override the collision retry bound")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    settings = load_settings()
    store = SupabaseDiscountCodeStore(create_supabase_client(settings))
    max_attempts = args.max_attempts or settings.voucher_max_attempts
    base_code = args.base_code or derive_base_code(args.display_name)

    templates = [
        template for template in variants_for(args.product_kind)
        if args.suffix is None or template.suffix_label == args.suffix
    ]
    if not templates:
        print(f"[ERROR] No voucher variants match product={args.product_kind} suffix={args.suffix}")
        return 1

    now = datetime.now(timezone.utc)
    failures = 0

    for template in templates:
        attributes = DiscountAttributes(
            discount_type=template.discount_type,
            discount_value=template.discount_value,
            billing_cycle=template.billing_cycle,
            valid_from=now,
            valid_until=args.valid_until,
            order_id=args.order_id,
            is_production=settings.is_production,
        )
        outcome = issue_unique(store, base_code, template.suffix_label, attributes, max_attempts)

        if outcome.is_issued:
            print(f"[SUCCESS] {template.suffix_label}: issued {outcome.code} (id={outcome.discount_code_id})")
        else:
            failures += 1
            print(f"[ERROR] {template.suffix_label}: {outcome.status.value} after {outcome.attempts} attempt(s)")
            print(f"  Error: {outcome.error}")

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
