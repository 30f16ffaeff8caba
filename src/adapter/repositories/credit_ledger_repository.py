"""SQLAlchemy implementation of CreditLedgerRepository

Provides persistence for CreditLedger entities with pessimistic locking support
to prevent race conditions during concurrent credit operations.
"""

from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.domain.credit_ledger import CreditLedger


class SqlAlchemyCreditLedgerRepository(CreditLedgerRepository):
    """
    SQLAlchemy implementation of CreditLedgerRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Atomic balance updates
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_account_id(self, account_id: str, for_update: bool = False) -> Optional[CreditLedger]:
        """
        Retrieve ledger by account ID with optional row-level locking

        Args:
            account_id: Account identifier
            for_update: If True, locks the row with SELECT FOR UPDATE (prevents concurrent modifications)

        Returns:
            CreditLedger if found, None otherwise
        """
        stmt = select(CreditLedger).where(CreditLedger.account_id == account_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, ledger_id: int, for_update: bool = False) -> Optional[CreditLedger]:
        stmt = select(CreditLedger).where(CreditLedger.id == ledger_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self) -> List[CreditLedger]:
        result = await self.session.execute(select(CreditLedger).order_by(CreditLedger.id))
        return list(result.scalars().all())

    async def create(self, ledger: CreditLedger) -> CreditLedger:
        self.session.add(ledger)
        await self.session.flush()
        await self.session.refresh(ledger)
        return ledger

    async def update_balance(self, ledger_id: int, new_balance: Decimal) -> None:
        """
        Update ledger balance and updated_at timestamp

        Note:
            Should be called within a transaction with the ledger already locked
        """
        ledger = await self.get_by_id(ledger_id, for_update=False)
        if ledger:
            ledger.balance = new_balance
            ledger.updated_at = datetime.utcnow()
            self.session.add(ledger)
            await self.session.flush()
