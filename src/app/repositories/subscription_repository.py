"""Subscription Repository Interface

Defines the contract for subscription record persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.subscription import Subscription


class SubscriptionRepository(ABC):
    """
    Repository interface for Subscription persistence

    Records are keyed by Stripe subscription id and owned by an account.
    """

    @abstractmethod
    async def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        """
        Retrieve record by Stripe subscription id

        Args:
            stripe_subscription_id: Stripe subscription id (sub_...)
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Subscription if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_current_by_account_id(
        self, account_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        """
        Retrieve the account's non-terminal (not canceled) record

        Args:
            account_id: Account identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Subscription if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        """
        Create a new subscription record

        Args:
            subscription: Subscription entity to persist

        Returns:
            Created Subscription with generated ID

        Raises:
            IntegrityError: If the Stripe subscription id is already recorded
        """
        pass

    @abstractmethod
    async def update(self, subscription: Subscription) -> Subscription:
        """
        Update an existing subscription record

        Args:
            subscription: Subscription entity with updated values

        Returns:
            Updated Subscription
        """
        pass
