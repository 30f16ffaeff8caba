"""Credit Ledger Domain Entity

Tracks credit balance per account. Each account has exactly one ledger.
Balance always equals the sum of the account's CreditTransactions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Numeric
from src.domain.base import BaseModel, id_column


class CreditLedger(BaseModel, table=True):
    """
    Credit Ledger - Tracks account credit balance

    Domain Rules:
    - One ledger per account (account_id is unique)
    - Balance must be non-negative
    - Balance updates only through CreditTransactions
    - Created/updated timestamps track changes
    """

    __tablename__ = "credit_ledgers"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='balance_non_negative'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=id_column(),
        description="Unique ledger identifier (auto-increment)"
    )

    account_id: str = Field(
        index=True,
        unique=True,
        description="Account ID (unique - one ledger per account)"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Current credit balance (must be >= 0, precision: 18,6)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Ledger creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )
