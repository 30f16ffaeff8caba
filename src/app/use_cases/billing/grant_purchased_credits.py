"""GrantPurchasedCredits Use Case

Adds purchased credits to an account's balance exactly once per checkout.
Used by the webhook reconciler when a one-time credit purchase completes.
"""

import logging
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.credit_ledger import CreditLedger
from .dtos import GrantCreditsCommandDTO, GrantCreditsResponseDTO

logger = logging.getLogger(__name__)


class GrantPurchasedCredits:
    """
    Use Case: Grant purchased credits to an account

    Business Rules:
    1. Idempotency: Same idempotency_key returns the existing entry, balance untouched
    2. Ledger creation: If no ledger exists, create one with zero balance
    3. Atomic updates: Entry and balance written in a single transaction
    4. Pessimistic locking: SELECT FOR UPDATE prevents race conditions
    5. Concurrent duplicate: the unique idempotency_key rejects the second
       insert; the loser returns the winner's entry

    Flow:
    1. Check idempotency (return existing if found)
    2. Get or create ledger with lock
    3. Create transaction record
    4. Update ledger balance (add credits)
    5. Commit transaction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: GrantCreditsCommandDTO) -> Result[GrantCreditsResponseDTO]:
        try:
            existing_transaction = await self.transaction_repo.get_by_idempotency_key(
                command.idempotency_key
            )
            if existing_transaction:
                logger.info(
                    f"Credits for {command.idempotency_key} already granted "
                    f"(transaction {existing_transaction.id}), skipping"
                )
                return Return.ok(self._to_response_dto(existing_transaction, created=False))

            ledger = await self.ledger_repo.get_by_account_id(
                command.account_id, for_update=True
            )

            if not ledger:
                ledger = CreditLedger(
                    account_id=command.account_id,
                    balance=Decimal("0"),
                )
                ledger = await self.ledger_repo.create(ledger)
                ledger = await self.ledger_repo.get_by_account_id(
                    command.account_id, for_update=True
                )

            balance_before = ledger.balance
            balance_after = balance_before + command.amount

            transaction = CreditTransaction(
                account_id=command.account_id,
                ledger_id=ledger.id,
                transaction_type=TransactionType.PURCHASE,
                amount=command.amount,
                balance_before=balance_before,
                balance_after=balance_after,
                description=command.description,
                reference_type=command.reference_type,
                reference_id=command.reference_id,
                idempotency_key=command.idempotency_key,
            )

            created_transaction = await self.transaction_repo.create(transaction)

            await self.ledger_repo.update_balance(ledger.id, balance_after)

            response = self._to_response_dto(created_transaction, created=True)

            await self.uow.commit()

            logger.info(
                f"Granted {command.amount} credits to account {command.account_id} "
                f"({command.idempotency_key}), balance {balance_before} -> {balance_after}"
            )
            return Return.ok(response)

        except IntegrityError as e:
            await self.uow.rollback()
            existing_transaction = await self.transaction_repo.get_by_idempotency_key(
                command.idempotency_key
            )
            if existing_transaction:
                logger.info(
                    f"Concurrent grant for {command.idempotency_key} won by transaction "
                    f"{existing_transaction.id}"
                )
                return Return.ok(self._to_response_dto(existing_transaction, created=False))
            return Return.err(
                Error(
                    code="GRANT_CREDITS_FAILED",
                    message="Failed to grant credits",
                    reason=str(e),
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="GRANT_CREDITS_FAILED",
                    message="Failed to grant credits",
                    reason=str(e),
                )
            )

    def _to_response_dto(self, transaction: CreditTransaction, created: bool) -> GrantCreditsResponseDTO:
        """Balance snapshots are stored in the transaction for perfect idempotency"""
        return GrantCreditsResponseDTO(
            transaction_id=transaction.id,
            account_id=transaction.account_id,
            amount=transaction.amount,
            balance_before=transaction.balance_before,
            balance_after=transaction.balance_after,
            idempotency_key=transaction.idempotency_key,
            created=created,
            created_at=transaction.created_at,
        )
