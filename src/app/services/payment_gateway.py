"""Payment Gateway Interface

Read access to Stripe objects the webhook payload does not carry (canonical
subscription state, customer email, purchased line items) and checkout
session creation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pydantic import BaseModel
from src.domain.stripe_event import StripeCheckoutSessionObject, StripeSubscriptionObject


class PaymentGatewayError(Exception):
    """Stripe could not be reached (or kept failing) after local retries"""


class CheckoutSessionRequest(BaseModel):
    mode: str  # "payment" or "subscription"
    price_id: str
    success_url: str
    cancel_url: str
    client_reference_id: str
    metadata: Dict[str, Any]
    customer: Optional[str] = None
    customer_email: Optional[str] = None


class CheckoutSessionCreated(BaseModel):
    session_id: str
    url: Optional[str] = None


class PaymentGateway(ABC):
    """
    Payment provider operations

    Every method returns None when the object does not exist and raises
    PaymentGatewayError on transient failures.
    """

    @abstractmethod
    async def get_customer_email(self, customer_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def get_subscription(self, subscription_id: str) -> Optional[StripeSubscriptionObject]:
        """Current (canonical) state of a subscription"""
        pass

    @abstractmethod
    async def get_checkout_session(self, session_id: str) -> Optional[StripeCheckoutSessionObject]:
        """Checkout session with its line items expanded"""
        pass

    @abstractmethod
    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSessionCreated:
        pass
