from .account_repository import SqlAlchemyAccountRepository
from .credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from .credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from .subscription_repository import SqlAlchemySubscriptionRepository

__all__ = [
    "SqlAlchemyAccountRepository",
    "SqlAlchemyCreditLedgerRepository",
    "SqlAlchemyCreditTransactionRepository",
    "SqlAlchemySubscriptionRepository",
]
