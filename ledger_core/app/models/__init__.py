from .db import Account as AccountModel
from .db import TransactionEntry as TransactionEntryModel
from .db import TransactionKind
from .schemas import (
    AccountCreate,
    AccountResponse,
    MoneyMovementRequest,
    MoneyMovementResponse,
    TransactionEntryResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "MoneyMovementRequest",
    "MoneyMovementResponse",
    "TransactionEntryResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
    "TransactionEntryModel",
    "TransactionKind",
]
