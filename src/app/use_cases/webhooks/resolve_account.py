"""ResolveAccount Use Case

Maps the identity hints of a Stripe event onto exactly one Account.
"""

import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.repositories.account_repository import AccountRepository
from src.app.services.payment_gateway import PaymentGateway, PaymentGatewayError
from src.app.services.unit_of_work import UnitOfWork
from .dtos import AccountResolutionDTO, IdentityHintsDTO, ResolvedBy

logger = logging.getLogger(__name__)


class ResolveAccount:
    """
    Use Case: Resolve the Account behind a Stripe event

    Resolution order (first match wins):
    1. Account id from metadata / client_reference_id, if that account exists
    2. Account already linked to the Stripe customer id
    3. Email (from the event, else fetched from Stripe) matched
       case-insensitively; more than one match is ambiguous

    After a match by metadata or email, the Stripe customer id is written to
    the account unless another account already claims it. A claim conflict
    or a failed write is logged and skipped; it never fails resolution.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: AccountRepository,
        payment_gateway: PaymentGateway,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.payment_gateway = payment_gateway

    async def execute(self, hints: IdentityHintsDTO) -> Result[AccountResolutionDTO]:
        """
        Errors:
            PAYMENT_PROVIDER_UNAVAILABLE: Customer email lookup failed (retryable)
            ACCOUNT_RESOLUTION_FAILED: Store failure (retryable)
        """
        try:
            account = None
            resolved_by: Optional[ResolvedBy] = None

            if hints.metadata_account_id:
                account = await self.account_repo.get_by_id(hints.metadata_account_id)
                if account:
                    resolved_by = ResolvedBy.METADATA
                else:
                    logger.warning(
                        f"Event {hints.event_id}: metadata account id "
                        f"{hints.metadata_account_id} matches no account"
                    )

            if account is None and hints.stripe_customer_id:
                account = await self.account_repo.get_by_stripe_customer_id(hints.stripe_customer_id)
                if account:
                    resolved_by = ResolvedBy.CUSTOMER_ID

            reason = None
            if account is None:
                email = hints.email
                if not email and hints.stripe_customer_id:
                    email = await self.payment_gateway.get_customer_email(hints.stripe_customer_id)

                if email:
                    matches = await self.account_repo.list_by_email(email)
                    if len(matches) == 1:
                        account = matches[0]
                        resolved_by = ResolvedBy.EMAIL
                    elif len(matches) > 1:
                        reason = f"email matches {len(matches)} accounts"
                    else:
                        reason = "email matches no account"
                else:
                    reason = "no usable identity hint"

            if account is None:
                logger.warning(f"Event {hints.event_id} ({hints.event_type}) unresolved: {reason}")
                return Return.ok(AccountResolutionDTO(reason=reason))

            account_id = account.id
            stored_customer_id = account.stripe_customer_id

            backfilled = False
            if hints.stripe_customer_id and stored_customer_id != hints.stripe_customer_id:
                backfilled = await self._backfill_customer_id(
                    account_id, stored_customer_id, hints.stripe_customer_id
                )

            logger.info(f"Event {hints.event_id} resolved to account {account_id} by {resolved_by.value}")
            return Return.ok(
                AccountResolutionDTO(
                    account_id=account_id,
                    resolved_by=resolved_by,
                    customer_id_backfilled=backfilled,
                )
            )

        except PaymentGatewayError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="PAYMENT_PROVIDER_UNAVAILABLE",
                    message="Could not look up the Stripe customer",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="ACCOUNT_RESOLUTION_FAILED",
                    message="Failed to resolve account",
                    reason=str(e),
                )
            )

    async def _backfill_customer_id(
        self, account_id: str, stored_customer_id: Optional[str], customer_id: str
    ) -> bool:
        claimant = await self.account_repo.get_by_stripe_customer_id(customer_id)
        if claimant and claimant.id != account_id:
            logger.warning(
                f"Stripe customer {customer_id} already claimed by account {claimant.id}; "
                f"not linking it to account {account_id}"
            )
            return False

        try:
            await self.account_repo.set_stripe_customer_id(account_id, customer_id)
            await self.uow.commit()
        except IntegrityError as e:
            await self.uow.rollback()
            logger.warning(
                f"Stripe customer {customer_id} claimed concurrently; "
                f"not linking it to account {account_id}: {e}"
            )
            return False
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to link Stripe customer {customer_id} to account {account_id}: {e}")
            return False

        if stored_customer_id:
            logger.warning(
                f"Account {account_id} Stripe customer corrected: {stored_customer_id} -> {customer_id}"
            )
        else:
            logger.info(f"Account {account_id} linked to Stripe customer {customer_id}")
        return True
