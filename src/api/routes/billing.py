"""Billing API Routes

FastAPI routes for checkout creation, checkout verification and credit
balance lookup.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.billing_request import CheckoutSessionRequestSchema, VerifyCheckoutRequestSchema
from src.app.use_cases.billing.dtos import (
    BalanceResponseDTO,
    CheckoutSessionResponseDTO,
    CheckoutVerificationDTO,
    CreateCheckoutSessionCommandDTO,
)
from src.app.use_cases.billing.create_checkout_session import CreateCheckoutSession
from src.app.use_cases.billing.get_balance import GetBalance
from src.app.use_cases.billing.grant_purchased_credits import GrantPurchasedCredits
from src.app.use_cases.billing.verify_checkout_session import VerifyCheckoutSession
from src.app.use_cases.webhooks.apply_subscription_state import ApplySubscriptionState
from src.app.use_cases.webhooks.resolve_account import ResolveAccount
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.depends import get_payment_gateway, get_pricing_catalog, get_session
from src.domain.catalog import PricingCatalog
from src.api.error import ClientError

router = APIRouter(prefix="/billing", tags=["Billing"])


CHECKOUT_ERROR_STATUS = {
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "UNKNOWN_PACKAGE": status.HTTP_400_BAD_REQUEST,
    "UNKNOWN_PLAN": status.HTTP_400_BAD_REQUEST,
    "PRICE_NOT_CONFIGURED": status.HTTP_400_BAD_REQUEST,
    "PAYMENT_PROVIDER_UNAVAILABLE": status.HTTP_502_BAD_GATEWAY,
}

VERIFY_ERROR_STATUS = {
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CHECKOUT_SESSION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PAYMENT_NOT_COMPLETED": status.HTTP_400_BAD_REQUEST,
    "SESSION_ACCOUNT_MISMATCH": status.HTTP_403_FORBIDDEN,
    "UNKNOWN_PACKAGE": status.HTTP_400_BAD_REQUEST,
    "UNSUPPORTED_CHECKOUT_MODE": status.HTTP_400_BAD_REQUEST,
    "PAYMENT_PROVIDER_UNAVAILABLE": status.HTTP_502_BAD_GATEWAY,
}


@router.post(
    "/checkout-sessions",
    response_model=CheckoutSessionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {
            "description": "Account not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "ACCOUNT_NOT_FOUND",
                            "message": "Account 3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77 not found"
                        }
                    }
                }
            }
        },
        400: {
            "description": "Unknown package or plan, or validation error",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "UNKNOWN_PACKAGE",
                            "message": "Unknown credit package credit-99"
                        }
                    }
                }
            }
        },
        502: {
            "description": "Stripe unavailable"
        }
    }
)
async def create_checkout_session(
    request: CheckoutSessionRequestSchema,
    session: AsyncSession = Depends(get_session),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    catalog: PricingCatalog = Depends(get_pricing_catalog),
):
    """
    Start a Stripe checkout for a credit package or a subscription plan.

    The session carries the account id in `client_reference_id` and metadata,
    so the resulting webhook events resolve to this account directly.

    **Example request:**
    ```json
    {
      "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77",
      "package_id": "credit-15",
      "success_url": "https://app.example.com/billing/success",
      "cancel_url": "https://app.example.com/billing"
    }
    ```

    **Returns:**
    - 201: Session created; redirect the user to `url`
    - 400: Unknown package / plan, no Stripe price configured, or invalid body
    - 404: Account not found
    - 502: Stripe unavailable
    """
    command = CreateCheckoutSessionCommandDTO(
        account_id=request.account_id,
        package_id=request.package_id,
        plan_id=request.plan_id,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )

    use_case = CreateCheckoutSession(SqlAlchemyAccountRepository(session), payment_gateway, catalog)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(
            result.error,
            status_code=CHECKOUT_ERROR_STATUS.get(result.error.code, status.HTTP_400_BAD_REQUEST),
        )

    return result.value


@router.post(
    "/checkout-sessions/{session_id}/verify",
    response_model=CheckoutVerificationDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Payment not completed, or purchased item unknown",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "PAYMENT_NOT_COMPLETED",
                            "message": "Payment not completed"
                        }
                    }
                }
            }
        },
        403: {
            "description": "Checkout session belongs to another account"
        },
        404: {
            "description": "Account or checkout session not found"
        },
        502: {
            "description": "Stripe unavailable"
        }
    }
)
async def verify_checkout_session(
    session_id: str,
    request: VerifyCheckoutRequestSchema,
    session: AsyncSession = Depends(get_session),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    catalog: PricingCatalog = Depends(get_pricing_catalog),
):
    """
    Verify a completed checkout and apply the purchase immediately.

    Called from the checkout success page. Safe to call repeatedly and safe
    to race the webhook: credits for one session are granted once.

    **Returns:**
    - 200: Purchase applied (or already applied)
    - 400: Payment not completed, or purchased item not in the catalog
    - 403: Session was paid by another account
    - 404: Account or checkout session not found
    - 502: Stripe unavailable
    """
    uow = SqlAlchemyUnitOfWork(session)
    account_repo = SqlAlchemyAccountRepository(session)
    use_case = VerifyCheckoutSession(
        account_repo=account_repo,
        payment_gateway=payment_gateway,
        catalog=catalog,
        resolve_account=ResolveAccount(uow, account_repo, payment_gateway),
        apply_subscription_state=ApplySubscriptionState(uow, SqlAlchemySubscriptionRepository(session)),
        grant_credits=GrantPurchasedCredits(
            uow,
            SqlAlchemyCreditLedgerRepository(session),
            SqlAlchemyCreditTransactionRepository(session),
        ),
    )
    result = await use_case.execute(session_id, request.account_id)

    if result.is_err():
        raise ClientError(
            result.error,
            status_code=VERIFY_ERROR_STATUS.get(result.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        )

    return result.value


    return result.value


@router.get(
    "/credits/balance/{account_id}",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "Account ledger not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "LEDGER_NOT_FOUND",
                            "message": "No credit ledger found for account 3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77"
                        }
                    }
                }
            }
        }
    }
)
async def get_balance(
    account_id: str,
    session: AsyncSession = Depends(get_session)
):
    """
    Get current credit balance for an account.

    **Returns:**
    - 200: Balance retrieved successfully
    - 404: Account has no credit ledger
    """
    use_case = GetBalance(SqlAlchemyCreditLedgerRepository(session))
    result = await use_case.execute(account_id)

    if result.is_err():
        if result.error.code == "LEDGER_NOT_FOUND":
            raise ClientError(result.error, status_code=status.HTTP_404_NOT_FOUND)
        raise ClientError(result.error)

    return result.value
