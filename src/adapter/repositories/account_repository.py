"""SQLAlchemy implementation of AccountRepository"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.account_repository import AccountRepository
from src.domain.account import Account


class SqlAlchemyAccountRepository(AccountRepository):
    """
    SQLAlchemy implementation of AccountRepository

    Email lookups compare lower-cased values. The unique constraint on
    stripe_customer_id is the final guard against two accounts claiming
    the same Stripe customer.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        stmt = select(Account).where(Account.id == account_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Account]:
        stmt = select(Account).where(Account.stripe_customer_id == stripe_customer_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_email(self, email: str) -> List[Account]:
        stmt = (
            select(Account)
            .where(func.lower(Account.email) == email.strip().lower())
            .order_by(Account.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_stripe_customer_id(self, account_id: str, stripe_customer_id: str) -> None:
        """
        Store the Stripe customer id on the account

        Note:
            Flushes immediately so a uniqueness violation surfaces here
        """
        account = await self.get_by_id(account_id)
        if account:
            account.stripe_customer_id = stripe_customer_id
            account.updated_at = datetime.utcnow()
            self.session.add(account)
            await self.session.flush()
