"""Unit tests for CreditTransaction domain entity"""

import pytest
from datetime import datetime
from decimal import Decimal
from src.domain.credit_transaction import CreditTransaction, TransactionType


class TestCreditTransactionCreation:

    def test_create_purchase_transaction(self):
        """A checkout grant references the session it came from"""
        transaction = CreditTransaction(
            account_id="acc_abc",
            ledger_id=1,
            transaction_type=TransactionType.PURCHASE,
            amount=Decimal("17"),
            balance_before=Decimal("10"),
            balance_after=Decimal("27"),
            description="Purchased Creator Pack (17 credits)",
            reference_type="checkout_session",
            reference_id="cs_test_1",
            idempotency_key="checkout_session:cs_test_1",
        )

        assert transaction.transaction_type == TransactionType.PURCHASE
        assert transaction.balance_after - transaction.balance_before == transaction.amount
        assert transaction.reference_id == "cs_test_1"
        assert isinstance(transaction.created_at, datetime)

    def test_consumption_is_negative(self):
        transaction = CreditTransaction(
            account_id="acc_abc",
            ledger_id=1,
            transaction_type=TransactionType.CONSUMPTION,
            amount=Decimal("-1"),
            balance_before=Decimal("27"),
            balance_after=Decimal("26"),
            idempotency_key="generation:gen_1",
        )

        assert transaction.amount < 0
        assert transaction.reference_type is None
        assert transaction.description is None

    @pytest.mark.parametrize(
        "value, member",
        [
            ("purchase", TransactionType.PURCHASE),
            ("refund", TransactionType.REFUND),
            ("bonus", TransactionType.BONUS),
            ("consumption", TransactionType.CONSUMPTION),
        ],
    )
    def test_transaction_type_values(self, value, member):
        assert TransactionType(value) is member
