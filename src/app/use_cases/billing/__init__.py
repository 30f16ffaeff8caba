"""Billing domain use cases"""
from .grant_purchased_credits import GrantPurchasedCredits
from .get_balance import GetBalance
from .reconcile_ledger import ReconcileLedger
from .create_checkout_session import CreateCheckoutSession
from .verify_checkout_session import VerifyCheckoutSession
from .dtos import (
    GrantCreditsCommandDTO,
    GrantCreditsResponseDTO,
    BalanceResponseDTO,
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
    CreateCheckoutSessionCommandDTO,
    CheckoutSessionResponseDTO,
    CheckoutVerificationDTO,
    PurchaseOutcome,
)

__all__ = [
    "GrantPurchasedCredits",
    "GetBalance",
    "ReconcileLedger",
    "CreateCheckoutSession",
    "VerifyCheckoutSession",
    "GrantCreditsCommandDTO",
    "GrantCreditsResponseDTO",
    "BalanceResponseDTO",
    "LedgerDiscrepancyDTO",
    "ReconciliationResultDTO",
    "CreateCheckoutSessionCommandDTO",
    "CheckoutSessionResponseDTO",
    "CheckoutVerificationDTO",
    "PurchaseOutcome",
]
