"""CreateCheckoutSession Use Case

Starts a Stripe checkout for a credit package or a subscription plan. The
session carries our account id (client_reference_id and metadata) so the
webhook reconciler can resolve the payer without relying on email.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.account_repository import AccountRepository
from src.app.services.payment_gateway import (
    CheckoutSessionRequest,
    PaymentGateway,
    PaymentGatewayError,
)
from src.domain.catalog import PricingCatalog
from .dtos import CheckoutSessionResponseDTO, CreateCheckoutSessionCommandDTO

logger = logging.getLogger(__name__)


class CreateCheckoutSession:
    def __init__(
        self,
        account_repo: AccountRepository,
        payment_gateway: PaymentGateway,
        catalog: PricingCatalog,
    ):
        self.account_repo = account_repo
        self.payment_gateway = payment_gateway
        self.catalog = catalog

    async def execute(self, command: CreateCheckoutSessionCommandDTO) -> Result[CheckoutSessionResponseDTO]:
        """
        Errors:
            ACCOUNT_NOT_FOUND: No such account
            UNKNOWN_PACKAGE / UNKNOWN_PLAN: Not in the pricing catalog
            PRICE_NOT_CONFIGURED: Catalog entry has no Stripe price
            PAYMENT_PROVIDER_UNAVAILABLE: Stripe call failed
        """
        account = await self.account_repo.get_by_id(command.account_id)
        if not account:
            return Return.err(
                Error(
                    code="ACCOUNT_NOT_FOUND",
                    message=f"Account {command.account_id} not found",
                )
            )

        metadata = {"accountId": account.id}
        if command.package_id:
            package = self.catalog.get_package(command.package_id)
            if not package:
                return Return.err(
                    Error(code="UNKNOWN_PACKAGE", message=f"Unknown credit package {command.package_id}")
                )
            mode, price_id = "payment", package.price_id
            metadata["packageId"] = package.id
        else:
            plan = self.catalog.get_plan(command.plan_id)
            if not plan:
                return Return.err(
                    Error(code="UNKNOWN_PLAN", message=f"Unknown subscription plan {command.plan_id}")
                )
            mode, price_id = "subscription", plan.price_id
            metadata["planId"] = plan.id

        if not price_id:
            return Return.err(
                Error(
                    code="PRICE_NOT_CONFIGURED",
                    message="No Stripe price configured for this item",
                )
            )

        request = CheckoutSessionRequest(
            mode=mode,
            price_id=price_id,
            success_url=command.success_url,
            cancel_url=command.cancel_url,
            client_reference_id=account.id,
            metadata=metadata,
            customer=account.stripe_customer_id,
            customer_email=None if account.stripe_customer_id else account.email,
        )

        try:
            session = await self.payment_gateway.create_checkout_session(request)
        except PaymentGatewayError as e:
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message="Could not create checkout session",
                    reason=str(e),
                )
            )

        logger.info(f"Created {mode} checkout session {session.session_id} for account {account.id}")
        return Return.ok(CheckoutSessionResponseDTO(session_id=session.session_id, url=session.url))
