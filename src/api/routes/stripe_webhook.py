"""Stripe Webhook Route

Single POST endpoint receiving signed Stripe events. The body is read as raw
bytes because the signature covers the exact byte sequence.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import ClientError
from src.api.schemas.webhook_response import WebhookReceivedSchema
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.webhook_verifier import WebhookVerifier
from src.app.use_cases.billing.grant_purchased_credits import GrantPurchasedCredits
from src.app.use_cases.webhooks import (
    CLIENT_ERROR_CODES,
    ApplySubscriptionState,
    ProcessStripeWebhook,
    ReconcileStripeEvent,
    ResolveAccount,
)
from src.depends import (
    get_notification_service,
    get_payment_gateway,
    get_pricing_catalog,
    get_session,
    get_webhook_verifier,
)
from src.domain.catalog import PricingCatalog

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/stripe",
    response_model=WebhookReceivedSchema,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Missing or invalid signature, or malformed payload (Stripe will not retry)",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INVALID_SIGNATURE",
                            "message": "Invalid webhook signature"
                        }
                    }
                }
            }
        },
        500: {
            "description": "Processing failed after verification (Stripe will retry)",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "WEBHOOK_PROCESSING_FAILED",
                            "message": "Failed to process invoice.paid: PAYMENT_PROVIDER_UNAVAILABLE"
                        }
                    }
                }
            }
        }
    }
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    notification_service: NotificationService = Depends(get_notification_service),
    catalog: PricingCatalog = Depends(get_pricing_catalog),
):
    """
    Receive a Stripe event.

    **Returns:**
    - 200: Event processed, or acknowledged without action (unknown type,
      unresolved account, unknown package)
    - 400: Signature missing or invalid, or payload malformed
    - 500: Transient failure; Stripe redelivers the event
    """
    payload = await request.body()

    uow = SqlAlchemyUnitOfWork(session)
    reconciler = ReconcileStripeEvent(
        resolve_account=ResolveAccount(uow, SqlAlchemyAccountRepository(session), payment_gateway),
        apply_subscription_state=ApplySubscriptionState(uow, SqlAlchemySubscriptionRepository(session)),
        grant_credits=GrantPurchasedCredits(
            uow,
            SqlAlchemyCreditLedgerRepository(session),
            SqlAlchemyCreditTransactionRepository(session),
        ),
        payment_gateway=payment_gateway,
        catalog=catalog,
        notification_service=notification_service,
    )

    use_case = ProcessStripeWebhook(verifier, reconciler)
    result = await use_case.execute(payload, stripe_signature)

    if result.is_err():
        if result.error.code in CLIENT_ERROR_CODES:
            raise ClientError(result.error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ClientError(result.error, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return WebhookReceivedSchema(received=True)
