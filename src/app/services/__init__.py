from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, UnresolvedEventAlert
from .payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
    CheckoutSessionRequest,
    CheckoutSessionCreated,
)
from .webhook_verifier import WebhookVerifier, WebhookVerificationError, WebhookConfigurationError

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "UnresolvedEventAlert",
    "PaymentGateway",
    "PaymentGatewayError",
    "CheckoutSessionRequest",
    "CheckoutSessionCreated",
    "WebhookVerifier",
    "WebhookVerificationError",
    "WebhookConfigurationError",
]
