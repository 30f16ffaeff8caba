"""ReconcileLedger Use Case

Checks that every cached ledger balance equals the sum of its credit entries.
Read-only: discrepancies are reported, never corrected here.
"""

import logging
import time
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Verify ledger balances against the entry history

    Entry amounts are signed (grants positive, consumption negative), so the
    expected balance of a ledger is the plain sum of its entries.
    """

    def __init__(
        self,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        started = time.monotonic()
        reconciliation_time = datetime.utcnow()

        try:
            ledgers = await self.ledger_repo.get_all()
            logger.info(f"Reconciling {len(ledgers)} credit ledgers")

            discrepancies: list[LedgerDiscrepancyDTO] = []
            for ledger in ledgers:
                entry_sum = await self.transaction_repo.get_transaction_sum_by_ledger(ledger.id)
                if ledger.balance == entry_sum:
                    continue

                discrepancy = LedgerDiscrepancyDTO(
                    account_id=ledger.account_id,
                    ledger_id=ledger.id,
                    ledger_balance=ledger.balance,
                    calculated_balance=entry_sum,
                    discrepancy=ledger.balance - entry_sum,
                )
                discrepancies.append(discrepancy)
                logger.warning(
                    f"Ledger {ledger.id} of account {ledger.account_id} is off: "
                    f"balance={ledger.balance}, entries={entry_sum}, "
                    f"diff={discrepancy.discrepancy}"
                )

            execution_time_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Reconciliation finished in {execution_time_ms}ms: "
                f"{len(discrepancies)} of {len(ledgers)} ledgers out of balance"
            )

            return Return.ok(
                ReconciliationResultDTO(
                    total_ledgers_checked=len(ledgers),
                    discrepancies_found=len(discrepancies),
                    discrepancies=discrepancies,
                    reconciliation_time=reconciliation_time,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile credit ledger",
                    reason=str(e),
                )
            )
