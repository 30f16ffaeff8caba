"""Notification Service Implementations

Provides concrete implementations for sending operator alerts.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import NotificationService, UnresolvedEventAlert

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs alerts

    Always enabled, so every unresolved event is at least in the logs.
    """

    async def send_unresolved_event_alert(self, alert: UnresolvedEventAlert) -> bool:
        logger.warning(
            f"[UNRESOLVED STRIPE EVENT] Event: {alert.event_id} ({alert.event_type}), "
            f"Customer: {alert.stripe_customer_id}, "
            f"Email: {alert.email}, "
            f"Metadata account: {alert.metadata_account_id}, "
            f"Reason: {alert.reason}"
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends alerts via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 2.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_unresolved_event_alert(self, alert: UnresolvedEventAlert) -> bool:
        """
        Send alert via webhook

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {"type": "unresolved_stripe_event", **alert.model_dump()}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
                logger.info(
                    f"Webhook notification sent for event {alert.event_id} to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send webhook notification for event {alert.event_id}: {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """Delegates to multiple services (e.g., log + webhook)"""

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_unresolved_event_alert(self, alert: UnresolvedEventAlert) -> bool:
        """
        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_unresolved_event_alert(alert):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None, timeout: float = 2.0) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.
        timeout: Seconds per webhook call. Alerts are sent inline with a
                 Stripe delivery, so this must stay well under its timeout.
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url, timeout=timeout))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
