"""Stripe implementation of WebhookVerifier

Delegates to stripe.WebhookSignature, which checks the `t=...,v1=...` header:
HMAC-SHA256 over "<timestamp>.<raw body>" with the endpoint secret, compared
in constant time, and rejects timestamps outside the tolerance window.
"""

import stripe
from src.app.services.webhook_verifier import (
    WebhookConfigurationError,
    WebhookVerificationError,
    WebhookVerifier,
)


class StripeWebhookVerifier(WebhookVerifier):
    def __init__(self, secret: str, tolerance: int = 300):
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, payload: bytes, signature: str) -> None:
        if not self.secret:
            raise WebhookConfigurationError("Webhook signing secret is not configured")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookVerificationError("Payload is not valid UTF-8") from e
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(str(e)) from e
