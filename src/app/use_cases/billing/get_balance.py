"""Get Balance Use Case

Retrieves an account's current credit balance.
"""

from libs.result import Result, Return, Error
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.use_cases.billing.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation that retrieves the current credit balance
    for a given account.
    """

    def __init__(self, ledger_repo: CreditLedgerRepository):
        self.ledger_repo = ledger_repo

    async def execute(self, account_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            account_id: The account identifier

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error

        Errors:
            LEDGER_NOT_FOUND: Account has no credit ledger
        """
        ledger = await self.ledger_repo.get_by_account_id(account_id)

        if not ledger:
            return Return.err(
                Error(
                    code="LEDGER_NOT_FOUND",
                    message=f"No credit ledger found for account {account_id}",
                )
            )

        return Return.ok(
            BalanceResponseDTO(
                account_id=ledger.account_id,
                balance=ledger.balance,
                last_updated=ledger.updated_at,
            )
        )
