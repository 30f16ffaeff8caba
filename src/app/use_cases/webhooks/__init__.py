"""Stripe webhook reconciliation use cases"""
from .resolve_account import ResolveAccount
from .apply_subscription_state import ApplySubscriptionState
from .reconcile_stripe_event import ReconcileStripeEvent
from .process_stripe_webhook import ProcessStripeWebhook, CLIENT_ERROR_CODES
from .dtos import (
    IdentityHintsDTO,
    AccountResolutionDTO,
    ResolvedBy,
    SubscriptionStateCommandDTO,
    SubscriptionStateResultDTO,
    SubscriptionWriteOutcome,
    ReconcileOutcome,
    ReconcileResultDTO,
    WebhookAckDTO,
)

__all__ = [
    "ResolveAccount",
    "ApplySubscriptionState",
    "ReconcileStripeEvent",
    "ProcessStripeWebhook",
    "CLIENT_ERROR_CODES",
    "IdentityHintsDTO",
    "AccountResolutionDTO",
    "ResolvedBy",
    "SubscriptionStateCommandDTO",
    "SubscriptionStateResultDTO",
    "SubscriptionWriteOutcome",
    "ReconcileOutcome",
    "ReconcileResultDTO",
    "WebhookAckDTO",
]
