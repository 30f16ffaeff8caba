"""ApplySubscriptionState Use Case

Writes an absolute subscription state onto the account's Subscription record.
Replaying the same state converges on the same row, and states arriving out
of order never overwrite a newer one.
"""

import logging
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.subscription import Subscription, SubscriptionStatus, map_provider_status
from .dtos import SubscriptionStateCommandDTO, SubscriptionStateResultDTO, SubscriptionWriteOutcome

logger = logging.getLogger(__name__)


class ApplySubscriptionState:
    """
    Use Case: Apply provider subscription state

    Business Rules:
    1. Record selection: by Stripe subscription id; otherwise the account's
       current (non-canceled) record is rebound to the new subscription;
       otherwise a fresh record is inserted
    2. Ordering: a state observed before the applied one is stale; it only
       fills fields that are still empty
    3. canceled is terminal for the same Stripe subscription
    4. A canceled state for an unknown subscription never touches the
       account's current record
    5. Fields missing from the state (price, period) keep their stored value
    """

    def __init__(self, uow: UnitOfWork, subscription_repo: SubscriptionRepository):
        self.uow = uow
        self.subscription_repo = subscription_repo

    async def execute(self, command: SubscriptionStateCommandDTO) -> Result[SubscriptionStateResultDTO]:
        """
        Errors:
            SUBSCRIPTION_WRITE_CONFLICT: Concurrent insert of the same subscription (retryable)
            SUBSCRIPTION_UPDATE_FAILED: Any other store failure
        """
        status = map_provider_status(command.provider_status)

        try:
            record = await self.subscription_repo.get_by_stripe_subscription_id(
                command.stripe_subscription_id, for_update=True
            )

            if record is None and status != SubscriptionStatus.CANCELED:
                record = await self.subscription_repo.get_current_by_account_id(
                    command.account_id, for_update=True
                )
                if record is not None:
                    if record.is_stale(command.observed_at):
                        logger.info(
                            f"Ignoring {command.stripe_subscription_id} for account {command.account_id}: "
                            f"record {record.id} holds newer subscription {record.stripe_subscription_id}"
                        )
                        response = self._to_result(record, SubscriptionWriteOutcome.STALE)
                        await self.uow.commit()
                        return Return.ok(response)

                    logger.info(
                        f"Rebinding subscription record {record.id} of account {record.account_id}: "
                        f"{record.stripe_subscription_id} -> {command.stripe_subscription_id}"
                    )
                    record.stripe_subscription_id = command.stripe_subscription_id
                    self._apply(record, command, status)
                    record = await self.subscription_repo.update(record)
                    response = self._to_result(record, SubscriptionWriteOutcome.UPDATED)
                    await self.uow.commit()
                    return Return.ok(response)

            if record is None:
                record = Subscription(
                    account_id=command.account_id,
                    stripe_subscription_id=command.stripe_subscription_id,
                    status=status,
                )
                self._apply(record, command, status)
                record = await self.subscription_repo.create(record)
                response = self._to_result(record, SubscriptionWriteOutcome.CREATED)
                await self.uow.commit()
                logger.info(
                    f"Created subscription record {response.record_id} for account "
                    f"{response.account_id}: {response.status.value}"
                )
                return Return.ok(response)

            if record.account_id != command.account_id:
                logger.warning(
                    f"Subscription {command.stripe_subscription_id} belongs to account "
                    f"{record.account_id}, event resolved to {command.account_id}; keeping owner"
                )

            if record.is_terminal() and status != SubscriptionStatus.CANCELED:
                logger.info(
                    f"Subscription {command.stripe_subscription_id} is canceled; "
                    f"ignoring {command.provider_status!r}"
                )
                outcome = SubscriptionWriteOutcome.TERMINAL
            elif record.is_stale(command.observed_at):
                logger.info(
                    f"Stale state {command.provider_status!r} for {command.stripe_subscription_id} "
                    f"(observed {command.observed_at}, applied {record.status_observed_at})"
                )
                self._fill_missing(record, command)
                outcome = SubscriptionWriteOutcome.STALE
            else:
                previous = record.status
                self._apply(record, command, status)
                outcome = SubscriptionWriteOutcome.UPDATED
                if previous != status:
                    logger.info(
                        f"Subscription {command.stripe_subscription_id}: "
                        f"{previous.value} -> {status.value}"
                    )

            record = await self.subscription_repo.update(record)
            response = self._to_result(record, outcome)
            await self.uow.commit()
            return Return.ok(response)

        except IntegrityError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SUBSCRIPTION_WRITE_CONFLICT",
                    message=f"Concurrent write for subscription {command.stripe_subscription_id}",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SUBSCRIPTION_UPDATE_FAILED",
                    message="Failed to apply subscription state",
                    reason=str(e),
                )
            )

    def _apply(self, record: Subscription, command: SubscriptionStateCommandDTO, status: SubscriptionStatus):
        record.status = status
        record.provider_status = command.provider_status
        if command.price_id:
            record.price_id = command.price_id
        # Unmapped price: keep the plan we know
        if command.plan_id:
            record.plan_id = command.plan_id
        if command.current_period_start:
            record.current_period_start = command.current_period_start
        if command.current_period_end:
            record.current_period_end = command.current_period_end
        record.status_observed_at = command.observed_at
        record.updated_at = datetime.utcnow()

    def _fill_missing(self, record: Subscription, command: SubscriptionStateCommandDTO):
        for field in ("price_id", "plan_id", "current_period_start", "current_period_end"):
            if getattr(record, field) is None and getattr(command, field) is not None:
                setattr(record, field, getattr(command, field))
        record.updated_at = datetime.utcnow()

    def _to_result(self, record: Subscription, outcome: SubscriptionWriteOutcome) -> SubscriptionStateResultDTO:
        return SubscriptionStateResultDTO(
            record_id=record.id,
            account_id=record.account_id,
            stripe_subscription_id=record.stripe_subscription_id,
            status=record.status,
            plan_id=record.plan_id,
            outcome=outcome,
        )
