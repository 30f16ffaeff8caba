"""Account Repository Interface

Defines the contract for account lookups and Stripe customer linking.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.account import Account


class AccountRepository(ABC):
    """
    Repository interface for Account persistence

    Accounts are created outside the billing service; the only write is
    linking an account to its Stripe customer id.
    """

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Optional[Account]:
        """
        Retrieve account by internal ID

        Args:
            account_id: Account identifier

        Returns:
            Account if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Account]:
        """
        Retrieve the account that claims a Stripe customer id

        Args:
            stripe_customer_id: Stripe customer id (cus_...)

        Returns:
            Account if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_email(self, email: str) -> List[Account]:
        """
        Retrieve accounts by email, case-insensitively

        Email is not unique across time, so more than one account may match.

        Args:
            email: Email address

        Returns:
            Matching accounts (possibly empty)
        """
        pass

    @abstractmethod
    async def set_stripe_customer_id(self, account_id: str, stripe_customer_id: str) -> None:
        """
        Link an account to a Stripe customer id

        Args:
            account_id: Account identifier
            stripe_customer_id: Stripe customer id to store

        Raises:
            IntegrityError: If another account already claims the customer id
        """
        pass
