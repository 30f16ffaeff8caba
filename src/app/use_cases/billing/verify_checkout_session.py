"""VerifyCheckoutSession Use Case

Called by the checkout success page: confirms a Stripe checkout session and
applies the purchase right away instead of waiting for the webhook. Credit
grants use the same checkout_session:<id> key as the webhook reconciler, so
whichever arrives second finds the entry and grants nothing.
"""

import logging
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.account_repository import AccountRepository
from src.app.services.payment_gateway import PaymentGateway, PaymentGatewayError
from src.app.use_cases.webhooks.apply_subscription_state import ApplySubscriptionState
from src.app.use_cases.webhooks.dtos import IdentityHintsDTO, SubscriptionStateCommandDTO
from src.app.use_cases.webhooks.resolve_account import ResolveAccount
from src.domain.catalog import PricingCatalog
from src.domain.stripe_event import StripeCheckoutSessionObject
from .dtos import CheckoutVerificationDTO, GrantCreditsCommandDTO, PurchaseOutcome
from .grant_purchased_credits import GrantPurchasedCredits

logger = logging.getLogger(__name__)


SETTLED_PAYMENT_STATUSES = ("paid", "no_payment_required")


class VerifyCheckoutSession:
    """
    Use Case: Verify a completed checkout and apply the purchase

    Flow:
    1. Retrieve the session from Stripe with its line items
    2. Require a settled payment
    3. Resolve the payer exactly as for webhooks; it must be the caller
    4. Subscription mode: apply the canonical subscription state
       Payment mode: grant the package credits once per session
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        payment_gateway: PaymentGateway,
        catalog: PricingCatalog,
        resolve_account: ResolveAccount,
        apply_subscription_state: ApplySubscriptionState,
        grant_credits: GrantPurchasedCredits,
    ):
        self.account_repo = account_repo
        self.payment_gateway = payment_gateway
        self.catalog = catalog
        self.resolve_account = resolve_account
        self.apply_subscription_state = apply_subscription_state
        self.grant_credits = grant_credits

    async def execute(self, session_id: str, account_id: str) -> Result[CheckoutVerificationDTO]:
        """
        Errors:
            ACCOUNT_NOT_FOUND: No such account
            CHECKOUT_SESSION_NOT_FOUND: Stripe has no such session
            PAYMENT_NOT_COMPLETED: Session is not paid (yet)
            SESSION_ACCOUNT_MISMATCH: Session belongs to another account
            UNKNOWN_PACKAGE: Purchased package or price not in the catalog
            UNSUPPORTED_CHECKOUT_MODE: Neither a payment nor a subscription checkout
            PAYMENT_PROVIDER_UNAVAILABLE: Stripe call failed
        """
        account = await self.account_repo.get_by_id(account_id)
        if not account:
            return Return.err(Error(code="ACCOUNT_NOT_FOUND", message=f"Account {account_id} not found"))

        try:
            session = await self.payment_gateway.get_checkout_session(session_id)
            if session is None:
                return Return.err(
                    Error(code="CHECKOUT_SESSION_NOT_FOUND", message=f"Checkout session {session_id} not found")
                )

            if session.payment_status not in SETTLED_PAYMENT_STATUSES:
                return Return.err(
                    Error(
                        code="PAYMENT_NOT_COMPLETED",
                        message="Payment not completed",
                        reason=f"payment_status {session.payment_status!r}",
                    )
                )

            resolution = await self.resolve_account.execute(
                IdentityHintsDTO(
                    event_id=session.id,
                    event_type="checkout.session.verify",
                    metadata_account_id=session.metadata_account_id,
                    stripe_customer_id=session.customer,
                    email=session.email,
                )
            )
            if resolution.is_err():
                return Return.err(resolution.error)
            if resolution.value.account_id != account_id:
                logger.warning(
                    f"Checkout session {session.id} resolves to {resolution.value.account_id!r}, "
                    f"not to caller {account_id} ({resolution.value.reason or 'other account'})"
                )
                return Return.err(
                    Error(
                        code="SESSION_ACCOUNT_MISMATCH",
                        message=f"Checkout session {session.id} does not belong to account {account_id}",
                    )
                )

            if session.mode == "subscription":
                return await self._apply_subscription(session, account_id)
            if session.mode == "payment":
                return await self._grant_credits(session, account_id)
            return Return.err(
                Error(
                    code="UNSUPPORTED_CHECKOUT_MODE",
                    message=f"Checkout mode {session.mode!r} cannot be verified",
                )
            )

        except PaymentGatewayError as e:
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message="Could not verify checkout session",
                    reason=str(e),
                )
            )

    async def _grant_credits(
        self, session: StripeCheckoutSessionObject, account_id: str
    ) -> Result[CheckoutVerificationDTO]:
        package = self.catalog.package_for_checkout(session.package_id, session.price_id)
        if package is None:
            return Return.err(
                Error(
                    code="UNKNOWN_PACKAGE",
                    message="Purchased item is not a known credit package",
                    reason=f"package {session.package_id!r}, price {session.price_id!r}",
                )
            )

        command = GrantCreditsCommandDTO.for_checkout_session(account_id, session.id, package)
        result = await self.grant_credits.execute(command)
        if result.is_err():
            return Return.err(result.error)

        grant = result.value
        logger.info(
            f"Verified checkout {session.id} for account {account_id}: "
            f"{'granted' if grant.created else 'already granted'} {grant.amount} credits"
        )
        return Return.ok(
            CheckoutVerificationDTO(
                session_id=session.id,
                account_id=account_id,
                outcome=PurchaseOutcome.CREDITS_GRANTED if grant.created else PurchaseOutcome.ALREADY_GRANTED,
                credits_granted=grant.amount,
                transaction_id=grant.transaction_id,
            )
        )

    async def _apply_subscription(
        self, session: StripeCheckoutSessionObject, account_id: str
    ) -> Result[CheckoutVerificationDTO]:
        subscription = (
            await self.payment_gateway.get_subscription(session.subscription) if session.subscription else None
        )
        if subscription is None:
            return Return.err(
                Error(
                    code="CHECKOUT_SESSION_NOT_FOUND",
                    message=f"Checkout session {session.id} has no subscription at Stripe",
                )
            )

        # Fetched just now, so the state is current as of this moment
        command = SubscriptionStateCommandDTO(
            account_id=account_id,
            stripe_subscription_id=subscription.id,
            provider_status=subscription.status,
            price_id=subscription.price_id,
            plan_id=self.catalog.plan_for_price(subscription.price_id),
            current_period_start=subscription.period_start,
            current_period_end=subscription.period_end,
            observed_at=datetime.utcnow(),
        )
        result = await self.apply_subscription_state.execute(command)
        if result.is_err():
            return Return.err(result.error)

        state = result.value
        logger.info(f"Verified checkout {session.id} for account {account_id}: subscription {state.status.value}")
        return Return.ok(
            CheckoutVerificationDTO(
                session_id=session.id,
                account_id=account_id,
                outcome=PurchaseOutcome.SUBSCRIPTION_APPLIED,
                subscription_status=state.status,
                plan_id=state.plan_id,
            )
        )
