"""Stripe implementation of PaymentGateway

Uses the async resource methods of the official `stripe` library. The API key
is passed on every request; no module-level client state is configured.
Transient failures are retried locally with exponential backoff before
surfacing as PaymentGatewayError so the webhook delivery is retried by Stripe.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional
import stripe
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)
from src.app.services.payment_gateway import (
    CheckoutSessionCreated,
    CheckoutSessionRequest,
    PaymentGateway,
    PaymentGatewayError,
)
from src.domain.stripe_event import StripeCheckoutSessionObject, StripeSubscriptionObject

logger = logging.getLogger(__name__)


RETRYABLE_EXCEPTIONS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
)


def _to_dict(stripe_object: Any) -> Dict[str, Any]:
    if hasattr(stripe_object, "to_dict"):
        return stripe_object.to_dict()
    return dict(stripe_object)


class StripePaymentGateway(PaymentGateway):
    def __init__(
        self,
        api_key: str,
        max_attempts: int = 2,
        backoff_seconds: float = 0.25,
    ):
        self.api_key = api_key
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_seconds = backoff_seconds

    async def _call(self, operation: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Run one Stripe request with bounded retries

        Returns:
            The Stripe object, or None when Stripe answers 404

        Raises:
            PaymentGatewayError: On exhausted retries or any other Stripe failure
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.backoff_seconds, max=5),
                retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    return await func(*args, api_key=self.api_key, **kwargs)
        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                logger.info(f"Stripe {operation}: object not found ({e.user_message})")
                return None
            logger.error(f"Stripe {operation} rejected: {e}")
            raise PaymentGatewayError(f"Stripe {operation} rejected: {e}") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe {operation} failed after {self.max_attempts} attempt(s): {e}")
            raise PaymentGatewayError(f"Stripe {operation} failed: {e}") from e

    async def get_customer_email(self, customer_id: str) -> Optional[str]:
        customer = await self._call("customer retrieve", stripe.Customer.retrieve_async, customer_id)
        if customer is None:
            return None
        data = _to_dict(customer)
        if data.get("deleted"):
            return None
        return data.get("email")

    async def get_subscription(self, subscription_id: str) -> Optional[StripeSubscriptionObject]:
        subscription = await self._call(
            "subscription retrieve", stripe.Subscription.retrieve_async, subscription_id
        )
        if subscription is None:
            return None
        return StripeSubscriptionObject.model_validate(_to_dict(subscription))

    async def get_checkout_session(self, session_id: str) -> Optional[StripeCheckoutSessionObject]:
        session = await self._call(
            "checkout session retrieve",
            stripe.checkout.Session.retrieve_async,
            session_id,
            expand=["line_items"],
        )
        if session is None:
            return None
        return StripeCheckoutSessionObject.model_validate(_to_dict(session))

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSessionCreated:
        params: Dict[str, Any] = {
            "mode": request.mode,
            "line_items": [{"price": request.price_id, "quantity": 1}],
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "client_reference_id": request.client_reference_id,
            "metadata": request.metadata,
        }
        if request.customer:
            params["customer"] = request.customer
        elif request.customer_email:
            params["customer_email"] = request.customer_email
        if request.mode == "subscription":
            # Lets subscription events carry the account id too
            params["subscription_data"] = {"metadata": request.metadata}

        session = await self._call(
            "checkout session create", stripe.checkout.Session.create_async, **params
        )
        if session is None:
            raise PaymentGatewayError("Stripe checkout session create returned no session")
        data = _to_dict(session)
        return CheckoutSessionCreated(session_id=data["id"], url=data.get("url"))
