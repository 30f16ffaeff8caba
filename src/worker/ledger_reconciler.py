"""Ledger Reconciliation Background Worker

Periodically checks that every credit ledger balance equals the sum of its
entries. Runs standalone, outside the webhook request path.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.app.use_cases.billing import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconciliationFailed(RuntimeError):
    pass


class LedgerReconcilerWorker:
    """
    Background worker for credit ledger reconciliation

    Usage:
        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        await worker.run_forever()  # Interval from RECONCILIATION_INTERVAL_SECONDS
    """

    def __init__(self, db_uri: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    async def run_once(self) -> ReconciliationResultDTO:
        """
        Raises:
            ReconciliationFailed: If the ledgers could not be read
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_ledgers_checked=0,
                discrepancies_found=0,
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            use_case = ReconcileLedger(
                ledger_repo=SqlAlchemyCreditLedgerRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
            )
            result = await use_case.execute()

        if result.is_err():
            raise ReconciliationFailed(f"{result.error.message}: {result.error.reason}")

        report = result.value
        for d in report.discrepancies:
            logger.error(
                f"Ledger discrepancy: account {d.account_id} (ledger_id={d.ledger_id}) "
                f"entries={d.calculated_balance}, balance={d.ledger_balance}, diff={d.discrepancy}"
            )
        return report

    async def run_forever(self, interval_seconds: Optional[int] = None):
        interval = interval_seconds or ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS
        logger.info(f"Starting ledger reconciliation every {interval}s")

        while True:
            try:
                report = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete: {report.discrepancies_found} of "
                    f"{report.total_ledgers_checked} ledgers out of balance"
                )
            except ReconciliationFailed as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.ledger_reconciler --once
        python -m src.worker.ledger_reconciler --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=getattr(logging, str(ApplicationConfig.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=None,
        help="Seconds between runs (default: RECONCILIATION_INTERVAL_SECONDS)"
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()
    try:
        if args.once:
            report = await worker.run_once()
            logger.info(
                f"Checked {report.total_ledgers_checked} ledgers, "
                f"{report.discrepancies_found} discrepancies, {report.execution_time_ms}ms"
            )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
