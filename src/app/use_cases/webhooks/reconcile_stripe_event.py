"""ReconcileStripeEvent Use Case

Applies the state transition a verified Stripe event calls for.

| Event                          | Action                                              |
|--------------------------------|-----------------------------------------------------|
| checkout (subscription mode)   | resolve; fetch canonical subscription; apply         |
| checkout (payment mode)        | resolve; grant package credits once per session     |
| subscription created / updated | resolve; apply the payload state                    |
| subscription deleted           | resolve; apply canceled                             |
| invoice paid                   | resolve; fetch canonical subscription; apply         |
| invoice payment failed         | resolve; apply past_due                             |

Invoices not tied to a subscription carry no subscription state and are
acknowledged without a lookup.
"""

import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.notification_service import NotificationService, UnresolvedEventAlert
from src.app.services.payment_gateway import PaymentGateway, PaymentGatewayError
from src.app.use_cases.billing.dtos import GrantCreditsCommandDTO
from src.app.use_cases.billing.grant_purchased_credits import GrantPurchasedCredits
from src.domain.catalog import PricingCatalog
from src.domain.stripe_event import (
    CheckoutSessionCompleted,
    InvoicePaid,
    InvoicePaymentFailed,
    ReconcilableEvent,
    StripeSubscriptionObject,
    SubscriptionChanged,
    SubscriptionDeleted,
)
from .apply_subscription_state import ApplySubscriptionState
from .dtos import (
    AccountResolutionDTO,
    IdentityHintsDTO,
    ReconcileOutcome,
    ReconcileResultDTO,
    SubscriptionStateCommandDTO,
)
from .resolve_account import ResolveAccount

logger = logging.getLogger(__name__)


class ReconcileStripeEvent:
    def __init__(
        self,
        resolve_account: ResolveAccount,
        apply_subscription_state: ApplySubscriptionState,
        grant_credits: GrantPurchasedCredits,
        payment_gateway: PaymentGateway,
        catalog: PricingCatalog,
        notification_service: NotificationService,
    ):
        self.resolve_account = resolve_account
        self.apply_subscription_state = apply_subscription_state
        self.grant_credits = grant_credits
        self.payment_gateway = payment_gateway
        self.catalog = catalog
        self.notification_service = notification_service
        self._handlers = {
            CheckoutSessionCompleted: self._checkout_completed,
            SubscriptionChanged: self._subscription_changed,
            SubscriptionDeleted: self._subscription_deleted,
            InvoicePaid: self._invoice_paid,
            InvoicePaymentFailed: self._invoice_payment_failed,
        }

    async def execute(self, event: ReconcilableEvent) -> Result[ReconcileResultDTO]:
        """
        Returns:
            Result[ReconcileResultDTO]: ok for every outcome the provider should
            not retry (including unresolved accounts and configuration gaps);
            err when a retry may help
        """
        handler = self._handlers[type(event)]
        try:
            return await handler(event)
        except PaymentGatewayError as e:
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message=f"Stripe unavailable while handling {event.event_type}",
                    reason=str(e),
                )
            )

    async def _checkout_completed(self, event: CheckoutSessionCompleted) -> Result[ReconcileResultDTO]:
        session = event.session
        resolution = await self._resolve(
            event,
            metadata_account_id=session.metadata_account_id,
            stripe_customer_id=session.customer,
            email=session.email,
        )
        if resolution.is_err():
            return Return.err(resolution.error)
        if not resolution.value.is_resolved:
            return self._done(event, ReconcileOutcome.UNRESOLVED, detail=resolution.value.reason)
        account_id = resolution.value.account_id

        if session.mode == "subscription":
            if not session.subscription:
                return self._done(event, ReconcileOutcome.IGNORED, account_id, "session has no subscription")
            return await self._apply_canonical(event, account_id, session.subscription)

        if session.mode != "payment":
            return self._done(event, ReconcileOutcome.IGNORED, account_id, f"mode {session.mode!r}")

        if not session.is_paid:
            # async_payment_succeeded follows once funds settle
            return self._done(
                event, ReconcileOutcome.IGNORED, account_id, f"payment_status {session.payment_status!r}"
            )

        price_id = None
        if not session.package_id:
            # Sessions created outside our checkout endpoint carry no packageId
            full_session = await self.payment_gateway.get_checkout_session(session.id)
            price_id = full_session.price_id if full_session else None

        package = self.catalog.package_for_checkout(session.package_id, price_id)
        if package is None:
            return self._done(
                event,
                ReconcileOutcome.CONFIGURATION_GAP,
                account_id,
                f"package {session.package_id!r}, price {price_id!r}",
            )

        command = GrantCreditsCommandDTO.for_checkout_session(account_id, session.id, package)
        result = await self.grant_credits.execute(command)
        if result.is_err():
            return Return.err(result.error)

        grant = result.value
        outcome = ReconcileOutcome.CREDITS_GRANTED if grant.created else ReconcileOutcome.DUPLICATE
        return self._done(event, outcome, account_id, f"transaction {grant.transaction_id}")

    async def _subscription_changed(self, event: SubscriptionChanged) -> Result[ReconcileResultDTO]:
        return await self._apply_payload(event, event.subscription, event.subscription.status)

    async def _subscription_deleted(self, event: SubscriptionDeleted) -> Result[ReconcileResultDTO]:
        return await self._apply_payload(event, event.subscription, "canceled")

    async def _invoice_paid(self, event: InvoicePaid) -> Result[ReconcileResultDTO]:
        invoice = event.invoice
        if not invoice.subscription_id:
            return self._done(event, ReconcileOutcome.IGNORED, detail="invoice not tied to a subscription")

        resolution = await self._resolve(
            event,
            metadata_account_id=invoice.metadata_account_id,
            stripe_customer_id=invoice.customer,
            email=invoice.customer_email,
        )
        if resolution.is_err():
            return Return.err(resolution.error)
        if not resolution.value.is_resolved:
            return self._done(event, ReconcileOutcome.UNRESOLVED, detail=resolution.value.reason)

        return await self._apply_canonical(event, resolution.value.account_id, invoice.subscription_id)

    async def _invoice_payment_failed(self, event: InvoicePaymentFailed) -> Result[ReconcileResultDTO]:
        invoice = event.invoice
        if not invoice.subscription_id:
            return self._done(event, ReconcileOutcome.IGNORED, detail="invoice not tied to a subscription")

        resolution = await self._resolve(
            event,
            metadata_account_id=invoice.metadata_account_id,
            stripe_customer_id=invoice.customer,
            email=invoice.customer_email,
        )
        if resolution.is_err():
            return Return.err(resolution.error)
        if not resolution.value.is_resolved:
            return self._done(event, ReconcileOutcome.UNRESOLVED, detail=resolution.value.reason)
        account_id = resolution.value.account_id

        command = SubscriptionStateCommandDTO(
            account_id=account_id,
            stripe_subscription_id=invoice.subscription_id,
            provider_status="past_due",
            observed_at=event.occurred_at,
        )
        return await self._apply(event, command)

    async def _apply_payload(
        self, event, subscription: StripeSubscriptionObject, provider_status: str
    ) -> Result[ReconcileResultDTO]:
        resolution = await self._resolve(
            event,
            metadata_account_id=subscription.metadata_account_id,
            stripe_customer_id=subscription.customer,
        )
        if resolution.is_err():
            return Return.err(resolution.error)
        if not resolution.value.is_resolved:
            return self._done(event, ReconcileOutcome.UNRESOLVED, detail=resolution.value.reason)

        command = self._state_command(
            resolution.value.account_id, subscription, provider_status, event.occurred_at
        )
        return await self._apply(event, command)

    async def _apply_canonical(self, event, account_id: str, subscription_id: str) -> Result[ReconcileResultDTO]:
        """Embedded snapshots may be stale; apply what Stripe holds now"""
        subscription = await self.payment_gateway.get_subscription(subscription_id)
        if subscription is None:
            logger.warning(f"Event {event.event_id}: subscription {subscription_id} not found at Stripe")
            return self._done(event, ReconcileOutcome.IGNORED, account_id, "subscription not found")

        command = self._state_command(account_id, subscription, subscription.status, event.occurred_at)
        return await self._apply(event, command)

    async def _apply(self, event, command: SubscriptionStateCommandDTO) -> Result[ReconcileResultDTO]:
        result = await self.apply_subscription_state.execute(command)
        if result.is_err():
            return Return.err(result.error)
        state = result.value
        return self._done(
            event,
            ReconcileOutcome.SUBSCRIPTION_APPLIED,
            command.account_id,
            f"{state.outcome.value}: {state.status.value}",
        )

    def _state_command(
        self, account_id: str, subscription: StripeSubscriptionObject, provider_status: str, observed_at
    ) -> SubscriptionStateCommandDTO:
        return SubscriptionStateCommandDTO(
            account_id=account_id,
            stripe_subscription_id=subscription.id,
            provider_status=provider_status,
            price_id=subscription.price_id,
            plan_id=self.catalog.plan_for_price(subscription.price_id),
            current_period_start=subscription.period_start,
            current_period_end=subscription.period_end,
            observed_at=observed_at,
        )

    async def _resolve(
        self,
        event,
        metadata_account_id: Optional[str] = None,
        stripe_customer_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Result[AccountResolutionDTO]:
        """Resolve the account, alerting operators when no account matches"""
        hints = IdentityHintsDTO(
            event_id=event.event_id,
            event_type=event.event_type,
            metadata_account_id=metadata_account_id,
            stripe_customer_id=stripe_customer_id,
            email=email,
        )
        result = await self.resolve_account.execute(hints)
        if result.is_ok() and not result.value.is_resolved:
            resolution = result.value
            await self.notification_service.send_unresolved_event_alert(
                UnresolvedEventAlert(
                    event_id=event.event_id,
                    event_type=event.event_type,
                    stripe_customer_id=stripe_customer_id,
                    email=email,
                    metadata_account_id=metadata_account_id,
                    reason=resolution.reason or "unresolved",
                )
            )
        return result

    def _done(
        self,
        event,
        outcome: ReconcileOutcome,
        account_id: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> Result[ReconcileResultDTO]:
        logger.info(f"Event {event.event_id} ({event.event_type}): {outcome.value} {detail or ''}".rstrip())
        return Return.ok(
            ReconcileResultDTO(
                event_id=event.event_id,
                event_type=event.event_type,
                outcome=outcome,
                account_id=account_id,
                detail=detail,
            )
        )
