"""Subscription Domain Entity

Tracks the billing state of an account's Stripe subscription.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import String
from src.domain.base import BaseModel, id_column

logger = logging.getLogger(__name__)


class SubscriptionStatus(str, Enum):
    """Subscription status types"""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    UNKNOWN = "unknown"      # Provider status we do not model (raw value kept)


_PROVIDER_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "incomplete": SubscriptionStatus.INCOMPLETE,
}


def map_provider_status(provider_status: Optional[str]) -> SubscriptionStatus:
    """Translate a Stripe subscription status into our status"""
    status = _PROVIDER_STATUS_MAP.get((provider_status or "").lower())
    if status is None:
        logger.warning(f"Unknown provider subscription status: {provider_status!r}")
        return SubscriptionStatus.UNKNOWN
    return status


class Subscription(BaseModel, table=True):
    """
    Subscription - Billing state of one Stripe subscription for an account

    Domain Rules:
    - stripe_subscription_id is unique (one record per Stripe subscription)
    - At most one non-terminal (not canceled) record per account
    - Records are updated in place and never deleted
    - status_observed_at is the provider timestamp of the applied state;
      older states never overwrite newer ones
    - canceled is terminal for the same Stripe subscription
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        Index('ix_subscriptions_account_id', 'account_id'),
        Index('ix_subscriptions_status', 'status'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=id_column(),
        description="Unique subscription record identifier (auto-increment)"
    )

    account_id: str = Field(
        description="Owning account"
    )

    stripe_subscription_id: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
        description="Stripe subscription id"
    )

    plan_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
        description="Internal plan tier (basic, premium, ...)"
    )

    price_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Last seen Stripe price id"
    )

    status: SubscriptionStatus = Field(
        description="Subscription status (active, past_due, canceled, incomplete, unknown)"
    )

    provider_status: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Raw Stripe status"
    )

    current_period_start: Optional[datetime] = Field(
        default=None,
        description="Current billing period start"
    )

    current_period_end: Optional[datetime] = Field(
        default=None,
        description="Current billing period end"
    )

    status_observed_at: Optional[datetime] = Field(
        default=None,
        description="Provider timestamp of the last applied state"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Record creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )

    def is_terminal(self) -> bool:
        return self.status == SubscriptionStatus.CANCELED

    def is_stale(self, observed_at: datetime) -> bool:
        """True if a state observed at `observed_at` is older than the applied one"""
        return self.status_observed_at is not None and observed_at < self.status_observed_at
