"""Integration tests for GrantPurchasedCredits against a real database

The unique idempotency_key is the last line of defence against double
granting; these tests exercise it through the SQLAlchemy repositories.
"""

import pytest
from decimal import Decimal
from sqlalchemy import func
from sqlmodel import select

from src.adapter.repositories.credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.billing.dtos import GrantCreditsCommandDTO
from src.app.use_cases.billing.grant_purchased_credits import GrantPurchasedCredits
from src.domain.credit_ledger import CreditLedger
from src.domain.credit_transaction import CreditTransaction


class BlindTransactionRepository(SqlAlchemyCreditTransactionRepository):
    """Misses the first idempotency lookup, as a racing delivery would"""

    def __init__(self, session):
        super().__init__(session)
        self.lookups = 0

    async def get_by_idempotency_key(self, idempotency_key):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return await super().get_by_idempotency_key(idempotency_key)


def grant_command(session_id="cs_test_1", amount="17"):
    return GrantCreditsCommandDTO(
        account_id="acc_1",
        amount=Decimal(amount),
        idempotency_key=f"checkout_session:{session_id}",
        description=f"Purchased Creator Pack ({amount} credits)",
        reference_type="checkout_session",
        reference_id=session_id,
    )


def make_use_case(db_session, transaction_repo=None):
    return GrantPurchasedCredits(
        uow=SqlAlchemyUnitOfWork(db_session),
        ledger_repo=SqlAlchemyCreditLedgerRepository(db_session),
        transaction_repo=transaction_repo or SqlAlchemyCreditTransactionRepository(db_session),
    )


async def entry_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(CreditTransaction))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_first_grant_creates_ledger(db_session):
    result = await make_use_case(db_session).execute(grant_command())

    assert result.is_ok()
    assert result.value.created is True
    assert result.value.balance_before == Decimal("0")
    assert result.value.balance_after == Decimal("17")
    ledger = (await db_session.execute(select(CreditLedger))).scalar_one()
    assert ledger.balance == Decimal("17")


@pytest.mark.asyncio
async def test_same_checkout_grants_once(db_session):
    use_case = make_use_case(db_session)

    first = await use_case.execute(grant_command())
    second = await use_case.execute(grant_command())

    assert first.value.created is True
    assert second.value.created is False
    assert second.value.transaction_id == first.value.transaction_id
    assert await entry_count(db_session) == 1


@pytest.mark.asyncio
async def test_racing_insert_hits_unique_constraint(db_session):
    """
    Given: The grant for cs_test_1 is already committed
    When: A second delivery misses the lookup and inserts the same key
    Then: The unique constraint rejects it and the committed entry is returned
    """
    first = await make_use_case(db_session).execute(grant_command())

    racing_repo = BlindTransactionRepository(db_session)
    second = await make_use_case(db_session, transaction_repo=racing_repo).execute(grant_command())

    assert second.is_ok()
    assert second.value.created is False
    assert second.value.transaction_id == first.value.transaction_id
    assert await entry_count(db_session) == 1
    ledger = (await db_session.execute(select(CreditLedger))).scalar_one()
    assert ledger.balance == Decimal("17")


@pytest.mark.asyncio
async def test_distinct_checkouts_accumulate(db_session):
    use_case = make_use_case(db_session)

    await use_case.execute(grant_command("cs_a", "5"))
    await use_case.execute(grant_command("cs_b", "17"))

    ledger = (await db_session.execute(select(CreditLedger))).scalar_one()
    assert ledger.balance == Decimal("22")
    assert await entry_count(db_session) == 2
