"""Data Transfer Objects for Billing Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from src.domain.catalog import CreditPackage
from src.domain.subscription import SubscriptionStatus


CHECKOUT_SESSION_REFERENCE = "checkout_session"


class GrantCreditsCommandDTO(BaseModel):
    """
    Command DTO for granting purchased credits

    Used as input to GrantPurchasedCredits use case.
    """

    account_id: str = Field(
        ...,
        description="Account receiving the credits"
    )

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Credit amount to grant (must be > 0)"
    )

    idempotency_key: str = Field(
        ...,
        description="Unique key for idempotent operations (e.g., checkout_session:cs_123)"
    )

    description: Optional[str] = Field(
        default=None,
        description="Human-readable description shown in credit history"
    )

    reference_type: Optional[str] = Field(
        default=None,
        description="Type of reference (e.g., 'checkout_session')"
    )

    reference_id: Optional[str] = Field(
        default=None,
        description="ID of referenced entity (e.g., Stripe checkout session id)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77",
                "amount": "17",
                "idempotency_key": "checkout_session:cs_test_a1b2c3",
                "description": "Purchased Creator Pack (17 credits)",
                "reference_type": "checkout_session",
                "reference_id": "cs_test_a1b2c3",
            }
        }

    @classmethod
    def for_checkout_session(
        cls, account_id: str, session_id: str, package: CreditPackage
    ) -> "GrantCreditsCommandDTO":
        """
        Grant for a paid checkout session

        Keyed by the session id alone, so webhook deliveries and purchase
        verification of the same session grant once between them.
        """
        amount = package.total_credits
        credits = str(int(amount)) if amount == amount.to_integral_value() else str(amount)
        return cls(
            account_id=account_id,
            amount=amount,
            idempotency_key=f"{CHECKOUT_SESSION_REFERENCE}:{session_id}",
            description=f"Purchased {package.name} ({credits} credits)",
            reference_type=CHECKOUT_SESSION_REFERENCE,
            reference_id=session_id,
        )


class GrantCreditsResponseDTO(BaseModel):
    """
    Response DTO for a credit grant

    `created` is False when the grant already existed (redelivered event).
    """

    transaction_id: int
    account_id: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    idempotency_key: str
    created: bool = True
    created_at: datetime


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation

    Returned by GetBalance use case.
    """

    account_id: str = Field(
        ...,
        description="Account identifier"
    )

    balance: Decimal = Field(
        ...,
        description="Current credit balance"
    )

    last_updated: datetime = Field(
        ...,
        description="Timestamp of last balance update"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77",
                "balance": "22.000000",
                "last_updated": "2024-01-01T00:00:00Z"
            }
        }


class LedgerDiscrepancyDTO(BaseModel):
    """A ledger whose balance differs from the sum of its entries"""

    account_id: str
    ledger_id: int
    ledger_balance: Decimal
    calculated_balance: Decimal
    discrepancy: Decimal


class ReconciliationResultDTO(BaseModel):
    total_ledgers_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int


class CreateCheckoutSessionCommandDTO(BaseModel):
    """
    Command DTO for starting a Stripe checkout

    Exactly one of package_id (one-time credit purchase) or plan_id
    (subscription) is set.
    """

    account_id: str
    package_id: Optional[str] = None
    plan_id: Optional[str] = None
    success_url: str
    cancel_url: str


class CheckoutSessionResponseDTO(BaseModel):
    session_id: str = Field(
        ...,
        description="Stripe checkout session id"
    )

    url: Optional[str] = Field(
        default=None,
        description="Hosted checkout page to redirect the user to"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "cs_test_a1b2c3",
                "url": "https://checkout.stripe.com/c/pay/cs_test_a1b2c3"
            }
        }


class PurchaseOutcome(str, Enum):
    CREDITS_GRANTED = "credits_granted"
    ALREADY_GRANTED = "already_granted"    # Webhook (or an earlier verify) got there first
    SUBSCRIPTION_APPLIED = "subscription_applied"


class CheckoutVerificationDTO(BaseModel):
    """
    Response DTO for checkout verification

    Credit fields are set for payment checkouts, subscription fields for
    subscription checkouts.
    """

    session_id: str
    account_id: str
    outcome: PurchaseOutcome
    credits_granted: Optional[Decimal] = None
    transaction_id: Optional[int] = None
    subscription_status: Optional[SubscriptionStatus] = None
    plan_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "cs_test_a1b2c3",
                "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77",
                "outcome": "credits_granted",
                "credits_granted": "17",
                "transaction_id": 42,
                "subscription_status": None,
                "plan_id": None
            }
        }
