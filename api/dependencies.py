"""
FastAPI dependencies wiring the persistence adapters and alerter.

Tests replace these through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from supabase import Client  # type: ignore[import-not-found]

from repositories.client import Settings, create_supabase_client, load_settings
from repositories.discount_code_repository import DiscountCodeStore, SupabaseDiscountCodeStore
from repositories.webhook_event_repository import SupabaseWebhookEventLedger, WebhookEventLedger
from services.alerting import IssuanceAlerter, LoggingIssuanceAlerter


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    return create_supabase_client(get_settings())


def get_discount_code_store() -> DiscountCodeStore:
    return SupabaseDiscountCodeStore(get_supabase_client())


def get_webhook_event_ledger() -> WebhookEventLedger:
    return SupabaseWebhookEventLedger(get_supabase_client())


def get_alerter() -> IssuanceAlerter:
    return LoggingIssuanceAlerter()
