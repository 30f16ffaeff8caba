from .base import BaseModel, generate_uuid
from .account import Account
from .credit_ledger import CreditLedger
from .credit_transaction import CreditTransaction, TransactionType
from .subscription import Subscription, SubscriptionStatus, map_provider_status
from .catalog import PricingCatalog, CreditPackage, SubscriptionPlan

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Account",
    "CreditLedger",
    "CreditTransaction",
    "TransactionType",
    "Subscription",
    "SubscriptionStatus",
    "map_provider_status",
    "PricingCatalog",
    "CreditPackage",
    "SubscriptionPlan",
]
