"""SQLAlchemy Subscription Repository Implementation

Implements subscription persistence using SQLAlchemy async session.
"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.subscription import Subscription, SubscriptionStatus


class SqlAlchemySubscriptionRepository(SubscriptionRepository):
    """
    SQLAlchemy implementation of SubscriptionRepository

    Uses async session for database operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        statement = select(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id
        )

        if for_update:
            statement = statement.with_for_update()

        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_current_by_account_id(
        self, account_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.account_id == account_id)
            .where(Subscription.status != SubscriptionStatus.CANCELED)
            .order_by(Subscription.updated_at.desc())
            .limit(1)
        )

        if for_update:
            statement = statement.with_for_update()

        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def create(self, subscription: Subscription) -> Subscription:
        """
        Create a new subscription record

        Raises:
            IntegrityError: If the Stripe subscription id is already recorded
        """
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def update(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription
