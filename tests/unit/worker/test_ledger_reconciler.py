"""Unit tests for LedgerReconcilerWorker

Tests cover:
- Worker initialization with configuration
- run_once execution with reconciliation
- Reconciliation disabled scenario
- run_forever continuous execution
- Shutdown and cleanup
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime

from libs.result import Return, Error
from src.worker.ledger_reconciler import LedgerReconcilerWorker, ReconciliationFailed
from src.app.use_cases.billing.dtos import ReconciliationResultDTO, LedgerDiscrepancyDTO


class StopLoop(Exception):
    pass


@pytest.fixture
def sample_reconciliation_result():
    return ReconciliationResultDTO(
        total_ledgers_checked=10,
        discrepancies_found=0,
        discrepancies=[],
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=150,
    )


@pytest.fixture
def sample_discrepancy_result():
    return ReconciliationResultDTO(
        total_ledgers_checked=10,
        discrepancies_found=1,
        discrepancies=[
            LedgerDiscrepancyDTO(
                account_id="acc_123",
                ledger_id=1,
                ledger_balance=Decimal("44"),
                calculated_balance=Decimal("27"),
                discrepancy=Decimal("17"),
            ),
        ],
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=250,
    )


def _session_factory():
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session)


class TestLedgerReconcilerWorkerInit:

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_default_config(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.return_value = MagicMock()

        worker = LedgerReconcilerWorker()

        assert worker.db_uri == "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_custom_db_uri(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.return_value = MagicMock()

        worker = LedgerReconcilerWorker(db_uri="postgresql+asyncpg://custom@localhost/custom_db")

        assert worker.db_uri == "postgresql+asyncpg://custom@localhost/custom_db"


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerRunOnce:

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_executes_reconciliation(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_use_case_class,
        mock_app_config,
        sample_reconciliation_result,
    ):
        """
        Given: Reconciliation is enabled
        When: run_once is called
        Then: Executes reconciliation use case and returns the report
        """
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(return_value=Return.ok(sample_reconciliation_result))
        mock_use_case_class.return_value = mock_use_case

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        result = await worker.run_once()

        assert result.total_ledgers_checked == 10
        assert result.discrepancies_found == 0
        mock_use_case.execute.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_once_skips_when_disabled(self, mock_create_engine, mock_app_config):
        mock_app_config.RECONCILIATION_ENABLED = False

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        result = await worker.run_once()

        assert result.total_ledgers_checked == 0
        assert result.discrepancies_found == 0
        assert result.execution_time_ms == 0

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_logs_discrepancies(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_use_case_class,
        mock_app_config,
        sample_discrepancy_result,
        caplog,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(return_value=Return.ok(sample_discrepancy_result))
        mock_use_case_class.return_value = mock_use_case

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        result = await worker.run_once()

        assert result.discrepancies_found == 1
        assert result.discrepancies[0].account_id == "acc_123"
        assert "Ledger discrepancy: account acc_123" in caplog.text

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_raises_on_use_case_error(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_use_case_class,
        mock_app_config,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(
            return_value=Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile credit ledger",
                    reason="Database connection failed",
                )
            )
        )
        mock_use_case_class.return_value = mock_use_case

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        with pytest.raises(ReconciliationFailed, match="Database connection failed"):
            await worker.run_once()


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerShutdown:

    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine):
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        await worker.shutdown()

        mock_engine.dispose.assert_called_once()


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerRunForever:

    @patch("src.worker.ledger_reconciler.asyncio.sleep")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_forever_continues_after_failed_cycle(
        self, mock_create_engine, mock_sleep, sample_reconciliation_result
    ):
        """
        Given: The first cycle fails
        When: run_forever is running
        Then: The failure is logged and the next cycle still runs
        """
        mock_sleep.side_effect = [None, StopLoop()]

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite://")
        worker.run_once = AsyncMock(
            side_effect=[ReconciliationFailed("boom"), sample_reconciliation_result]
        )

        with pytest.raises(StopLoop):
            await worker.run_forever(interval_seconds=3600)

        assert worker.run_once.call_count == 2
        mock_sleep.assert_called_with(3600)
