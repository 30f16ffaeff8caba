"""Notification Service Interface

Defines the contract for alerting operators about Stripe events that could
not be matched to an account.
"""

from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel


class UnresolvedEventAlert(BaseModel):
    """Everything an operator needs to match a payment by hand"""

    event_id: str
    event_type: str
    stripe_customer_id: Optional[str] = None
    email: Optional[str] = None
    metadata_account_id: Optional[str] = None
    reason: str


class NotificationService(ABC):
    """
    Abstract notification service for sending alerts

    Implementations can send notifications via:
    - Log
    - Webhook (HTTP POST)
    """

    @abstractmethod
    async def send_unresolved_event_alert(self, alert: UnresolvedEventAlert) -> bool:
        """
        Send alert for an event whose account could not be resolved

        Args:
            alert: Identity hints and reason

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
