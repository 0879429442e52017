"""
Voucher issuance service: code derivation and collision resolution.

Handles:
- Deterministic candidate derivation (X25Y, X25Y2, X25Y3, ...)
- Bounded, strictly sequential retry on unique-constraint collisions
- Immediate stop on non-collision failures

Uniqueness is never checked with a read; each attempt is a single atomic insert
and a collision is only ever learned from the insert failing.
"""

from __future__ import annotations

import logging
from typing import List

from domain.discount_code import (
    DEFAULT_MAX_ATTEMPTS,
    CandidateCode,
    DiscountAttributes,
    IssuanceOutcome,
    require_code_part,
)
from domain.errors import (
    CollisionError,
    ExhaustedRetriesError,
    FatalIssuanceError,
    InvalidIssuanceRequestError,
)
from repositories.discount_code_repository import DiscountCodeStore

logger = logging.getLogger(__name__)


def issue_unique(
    store: DiscountCodeStore,
    base_code: str,
    suffix_label: str,
    attributes: DiscountAttributes,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> IssuanceOutcome:
    """
    Persist exactly one discount code for (base_code, suffix_label), or report why not.

    Process:
    1. Derive the candidate for attempt_index (0, 1, 2, ...)
    2. Insert {code: candidate, **attributes}
    3. On success, return ISSUED immediately
    4. On a collision, move to the next attempt_index
    5. On any other failure, return FATAL without retrying

    If every one of max_attempts candidates collides, EXHAUSTED_RETRIES is
    returned rather than raised so sibling variants can still be issued.

    Args:
        store: Persistence collaborator enforcing code uniqueness
        base_code: Human-readable base derived from the customer identity
        suffix_label: Variant suffix (e.g. "25Y")
        attributes: Validated payload forwarded verbatim to the new row
        max_attempts: Upper bound on insert attempts (default 10)

    Returns:
        IssuanceOutcome for this variant

    Raises:
        InvalidIssuanceRequestError: if the arguments are malformed (no insert is made)

    Example:
        outcome = issue_unique(store, "JD", "25Y", attributes)
        if outcome.is_issued:
            print(f"Issued {outcome.code}")
    """
    require_code_part("base_code", base_code)
    require_code_part("suffix_label", suffix_label)
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise InvalidIssuanceRequestError(f"max_attempts must be a positive integer, got {max_attempts!r}")

    record_attributes = attributes.to_record()
    attempted: List[str] = []

    for attempt_index in range(max_attempts):
        candidate = CandidateCode.derive(base_code, suffix_label, attempt_index)
        attempted.append(candidate.text)

        try:
            discount_code_id = store.insert({**record_attributes, "code": candidate.text})
        except CollisionError:
            logger.warning("Discount code %s already exists, retrying", candidate.text)
            continue
        except FatalIssuanceError as exc:
            logger.error("Failed to insert discount code %s: %s", candidate.text, exc)
            return IssuanceOutcome.fatal(suffix_label, len(attempted), exc)
        except Exception as exc:
            # Store adapters should translate their errors; anything else is still not a collision.
            logger.exception("Unexpected error inserting discount code %s", candidate.text)
            fatal = FatalIssuanceError(f"Unexpected error inserting discount code {candidate.text}: {exc}")
            fatal.__cause__ = exc
            return IssuanceOutcome.fatal(suffix_label, len(attempted), fatal)

        logger.info("Issued discount code %s (id=%s)", candidate.text, discount_code_id)
        return IssuanceOutcome.issued(suffix_label, candidate, discount_code_id, attributes)

    exhausted = ExhaustedRetriesError(attempted)
    logger.error("Exhausted discount code generation for %s%s: %s", base_code, suffix_label, exhausted)
    return IssuanceOutcome.exhausted(suffix_label, exhausted)


__all__ = ["issue_unique"]
