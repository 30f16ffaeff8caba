from .account_repository import AccountRepository
from .credit_ledger_repository import CreditLedgerRepository
from .credit_transaction_repository import CreditTransactionRepository
from .subscription_repository import SubscriptionRepository

__all__ = [
    "AccountRepository",
    "CreditLedgerRepository",
    "CreditTransactionRepository",
    "SubscriptionRepository",
]
