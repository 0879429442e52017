"""
Discount code repository (persistence).

This module provides *only* the insert path for discount codes. It never
queries existing codes: uniqueness is discovered exclusively through the
database's unique constraint on `discount_codes.code`.

Storage errors are classified into an explicit InsertErrorKind so the
retry-vs-fatal decision in the issuance service does not depend on the
concrete error type raised by supabase-py.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, NoReturn, Optional, Protocol

from postgrest.exceptions import APIError
from supabase import Client  # type: ignore[import-not-found]

from domain.errors import CollisionError, FatalIssuanceError

logger = logging.getLogger(__name__)

# Supabase table name for discount codes.
# Keep this aligned with your database schema.
_DISCOUNT_CODES_TABLE: str = "discount_codes"

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION_SQLSTATE: str = "23505"


class InsertErrorKind(str, Enum):
    UNIQUE_VIOLATION = "unique_violation"
    OTHER = "other"


def _error_code(error: Any) -> Optional[str]:
    if isinstance(error, Mapping):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
    return None if code is None else str(code)


def classify_insert_error(error: Any) -> InsertErrorKind:
    """
    Classify a storage error raised or returned by an insert.

    Accepts an exception or error object exposing `.code`, or a mapping with a
    "code" key (PostgREST error JSON). Anything without the unique-violation
    SQLSTATE is OTHER.
    """

    if _error_code(error) == UNIQUE_VIOLATION_SQLSTATE:
        return InsertErrorKind.UNIQUE_VIOLATION
    return InsertErrorKind.OTHER


def raise_for_insert_error(error: Any, *, key: str, entity: str) -> NoReturn:
    """Translate a storage error into CollisionError or FatalIssuanceError."""

    if classify_insert_error(error) is InsertErrorKind.UNIQUE_VIOLATION:
        raise CollisionError(key)
    raise FatalIssuanceError(f"Failed to insert {entity}: {error}", code=_error_code(error))


class DiscountCodeStore(Protocol):
    """
    Persistence collaborator for discount codes.

    insert() performs one atomic, unique-constraint-enforced insert and returns
    the generated id. It raises CollisionError when the code already exists and
    FatalIssuanceError for every other failure.
    """

    def insert(self, record: Mapping[str, Any]) -> str: ...


class SupabaseDiscountCodeStore:
    """DiscountCodeStore backed by the Supabase `discount_codes` table."""

    def __init__(self, client: Client, table: str = _DISCOUNT_CODES_TABLE) -> None:
        self._client = client
        self._table = table

    def insert(self, record: Mapping[str, Any]) -> str:
        code = str(record.get("code", ""))
        payload = dict(record)

        try:
            response = self._client.table(self._table).insert(payload).execute()
        except APIError as exc:
            raise_for_insert_error(exc, key=code, entity="discount code")
        except Exception as exc:
            # Connectivity and client errors are never naming collisions.
            raise FatalIssuanceError(f"Failed to insert discount code: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise_for_insert_error(error, key=code, entity="discount code")

        rows = getattr(response, "data", None) or []
        if not rows or rows[0].get("id") is None:
            raise FatalIssuanceError(f"Insert of discount code {code} returned no id")

        discount_code_id = str(rows[0]["id"])
        logger.debug("Inserted discount code %s (id=%s)", code, discount_code_id)
        return discount_code_id


__all__ = [
    "InsertErrorKind",
    "UNIQUE_VIOLATION_SQLSTATE",
    "classify_insert_error",
    "raise_for_insert_error",
    "DiscountCodeStore",
    "SupabaseDiscountCodeStore",
]
