"""Credit Transaction Domain Entity

Immutable append-only ledger entries. Each entry records a signed balance
change with complete context. Corrections are new offsetting entries.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, BigInteger, Integer, Numeric, String
from src.domain.base import BaseModel, id_column


class TransactionType(str, Enum):
    """Credit transaction types"""
    PURCHASE = "purchase"        # Credits bought through checkout
    REFUND = "refund"            # Credits returned to the account
    BONUS = "bonus"              # Promotional credits
    CONSUMPTION = "consumption"  # Credits spent (negative amount)


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Immutable ledger entry

    Domain Rules:
    - Transactions are immutable (append-only)
    - amount is signed: grants are positive, consumption is negative
    - idempotency_key must be unique (prevents double-granting on redelivery)
    - reference_type/reference_id link to the trigger (e.g., "checkout_session", cs_...)
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index('ix_credit_transactions_created_at', 'created_at'),
        Index('ix_credit_transactions_reference', 'reference_type', 'reference_id'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=id_column(),
        description="Unique transaction identifier (auto-increment)"
    )

    account_id: str = Field(
        index=True,
        description="Account ID for query optimization"
    )

    ledger_id: int = Field(
        sa_column=Column(
            BigInteger().with_variant(Integer, "sqlite"),
            ForeignKey("credit_ledgers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        description="Foreign key to CreditLedger"
    )

    transaction_type: TransactionType = Field(
        description="Type of transaction (purchase, refund, bonus, consumption)"
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Signed credit amount (precision: 18,6)"
    )

    balance_before: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Balance before transaction"
    )

    balance_after: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Balance after transaction"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Human-readable description (e.g., 'Purchased Creator Pack (17 credits)')"
    )

    reference_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Type of reference (e.g., 'checkout_session')"
    )

    reference_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="ID of referenced entity (e.g., Stripe checkout session id)"
    )

    idempotency_key: str = Field(
        unique=True,
        index=True,
        description="Unique key for idempotent operations (e.g., checkout_session:cs_123)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Transaction timestamp (immutable)"
    )
