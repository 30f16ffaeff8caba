"""ProcessStripeWebhook Use Case

Entry point for one Stripe webhook delivery: verify the signature over the
raw body, parse the event into its typed variant, and hand it to the
reconciler. Error codes tell the route whether Stripe should redeliver.
"""

import logging
from typing import Optional
from pydantic import ValidationError
from libs.result import Result, Return, Error
from src.app.services.webhook_verifier import (
    WebhookConfigurationError,
    WebhookVerificationError,
    WebhookVerifier,
)
from src.domain.stripe_event import StripeEventEnvelope, parse_event
from .dtos import ReconcileOutcome, WebhookAckDTO
from .reconcile_stripe_event import ReconcileStripeEvent

logger = logging.getLogger(__name__)


# Rejected for good: redelivering the same bytes cannot succeed
CLIENT_ERROR_CODES = ("MISSING_SIGNATURE", "INVALID_SIGNATURE", "INVALID_PAYLOAD")


class ProcessStripeWebhook:
    """
    Use Case: Process a Stripe webhook delivery

    Flow:
    1. Require the Stripe-Signature header
    2. Verify the signature over the unparsed body
    3. Parse the envelope; unknown event types are acknowledged untouched
    4. Reconcile the typed event; any failure becomes a retryable error
    """

    def __init__(self, verifier: WebhookVerifier, reconciler: ReconcileStripeEvent):
        self.verifier = verifier
        self.reconciler = reconciler

    async def execute(self, payload: bytes, signature: Optional[str]) -> Result[WebhookAckDTO]:
        """
        Errors:
            MISSING_SIGNATURE: No signature header
            INVALID_SIGNATURE: Signature does not verify
            WEBHOOK_NOT_CONFIGURED: Endpoint cannot verify signatures (retryable once fixed)
            INVALID_PAYLOAD: Body is not a well-formed Stripe event
            WEBHOOK_PROCESSING_FAILED: Handler failed after verification (retryable)
        """
        if not signature:
            logger.warning("Rejected Stripe webhook without signature header")
            return Return.err(
                Error(code="MISSING_SIGNATURE", message="Missing Stripe-Signature header")
            )

        try:
            self.verifier.verify(payload, signature)
        except WebhookVerificationError as e:
            logger.warning(f"Rejected Stripe webhook with invalid signature: {e}")
            return Return.err(
                Error(code="INVALID_SIGNATURE", message="Invalid webhook signature", reason=str(e))
            )
        except WebhookConfigurationError as e:
            logger.error(f"Cannot verify Stripe webhook: {e}")
            return Return.err(
                Error(code="WEBHOOK_NOT_CONFIGURED", message="Webhook endpoint is not configured", reason=str(e))
            )

        try:
            envelope = StripeEventEnvelope.model_validate_json(payload)
            event = parse_event(envelope)
        except ValidationError as e:
            logger.warning(f"Rejected malformed Stripe event: {e}")
            return Return.err(
                Error(code="INVALID_PAYLOAD", message="Malformed webhook payload", reason=str(e))
            )

        if event is None:
            logger.info(f"Ignoring Stripe event {envelope.id} of type {envelope.type}")
            return Return.ok(
                WebhookAckDTO(event_id=envelope.id, event_type=envelope.type, outcome=ReconcileOutcome.IGNORED)
            )

        logger.info(f"Processing Stripe event {event.event_id} ({event.event_type})")
        try:
            result = await self.reconciler.execute(event)
        except Exception as e:
            logger.exception(f"Stripe event {event.event_id} ({event.event_type}) failed")
            return Return.err(
                Error(
                    code="WEBHOOK_PROCESSING_FAILED",
                    message=f"Failed to process {event.event_type}",
                    reason=str(e),
                )
            )

        if result.is_err():
            logger.error(
                f"Stripe event {event.event_id} ({event.event_type}) failed: "
                f"{result.error.code} {result.error.reason or result.error.message}"
            )
            return Return.err(
                Error(
                    code="WEBHOOK_PROCESSING_FAILED",
                    message=f"Failed to process {event.event_type}: {result.error.code}",
                    reason=result.error.reason,
                )
            )

        return Return.ok(
            WebhookAckDTO(
                event_id=event.event_id,
                event_type=event.event_type,
                outcome=result.value.outcome,
            )
        )
