"""Account Domain Entity

A platform user. Accounts are created at signup, outside the billing service;
the billing service only reads them and links them to a Stripe customer.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import String
from src.domain.base import BaseModel, generate_uuid


class Account(BaseModel, table=True):
    """
    Account - Platform user owning billing and credit state

    Domain Rules:
    - email is not guaranteed unique across time (lookups are case-insensitive)
    - stripe_customer_id is unique: at most one account claims a Stripe customer
    - stripe_customer_id is set lazily the first time a payment event resolves here
    """

    __tablename__ = "accounts"

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Internal account identifier (UUID)"
    )

    email: str = Field(
        index=True,
        description="Account email (case-insensitive match, not unique)"
    )

    stripe_customer_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), unique=True, nullable=True),
        description="Stripe customer id (unique when set)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )
