from .ledger import LedgerService
from .repository import (
    AccountRepository,
    AccountStore,
    TransactionLogRepository,
    TransactionLogStore,
)

__all__ = [
    "AccountRepository",
    "AccountStore",
    "LedgerService",
    "TransactionLogRepository",
    "TransactionLogStore",
]
