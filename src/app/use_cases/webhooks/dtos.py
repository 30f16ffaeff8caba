"""Data Transfer Objects for Stripe webhook use cases"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.subscription import SubscriptionStatus


class ResolvedBy(str, Enum):
    METADATA = "metadata"
    CUSTOMER_ID = "customer_id"
    EMAIL = "email"


class IdentityHintsDTO(BaseModel):
    """Identity hints embedded in one Stripe event"""

    event_id: str
    event_type: str
    metadata_account_id: Optional[str] = Field(
        default=None,
        description="Our account id, stamped into metadata at checkout creation"
    )
    stripe_customer_id: Optional[str] = None
    email: Optional[str] = None


class AccountResolutionDTO(BaseModel):
    """
    Outcome of identity resolution

    account_id is None when the event is unresolved; that is an outcome, not
    an error.
    """

    account_id: Optional[str] = None
    resolved_by: Optional[ResolvedBy] = None
    customer_id_backfilled: bool = False
    reason: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.account_id is not None


class SubscriptionStateCommandDTO(BaseModel):
    """Absolute subscription state as observed at `observed_at`"""

    account_id: str
    stripe_subscription_id: str
    provider_status: str
    price_id: Optional[str] = None
    plan_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    observed_at: datetime


class SubscriptionWriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STALE = "stale"            # Older than the applied state; only gaps filled
    TERMINAL = "terminal"      # Subscription already canceled; state ignored


class SubscriptionStateResultDTO(BaseModel):
    record_id: int
    account_id: str
    stripe_subscription_id: str
    status: SubscriptionStatus
    plan_id: Optional[str] = None
    outcome: SubscriptionWriteOutcome


class ReconcileOutcome(str, Enum):
    SUBSCRIPTION_APPLIED = "subscription_applied"
    CREDITS_GRANTED = "credits_granted"
    DUPLICATE = "duplicate"
    UNRESOLVED = "unresolved"
    CONFIGURATION_GAP = "configuration_gap"
    IGNORED = "ignored"


class ReconcileResultDTO(BaseModel):
    event_id: str
    event_type: str
    outcome: ReconcileOutcome
    account_id: Optional[str] = None
    detail: Optional[str] = None


class WebhookAckDTO(BaseModel):
    """Acknowledgement returned for every verified delivery"""

    received: bool = True
    event_id: str
    event_type: str
    outcome: ReconcileOutcome
