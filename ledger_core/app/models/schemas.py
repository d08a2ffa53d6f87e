from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .db import TransactionKind


class AccountCreate(BaseModel):
    user_id: int = Field(..., ge=1, description="Owner of the account")
    account_number: str = Field(..., min_length=1, max_length=20)


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    account_number: str
    balance: Decimal = Field(..., ge=0, description="Balance with two decimal places")
    created_at: datetime
    updated_at: datetime


class TransactionEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    kind: TransactionKind
    amount: Decimal
    description: str
    created_at: datetime


class MoneyMovementRequest(BaseModel):
    # Validated by the ledger service so every caller gets the same rules.
    amount: Decimal


class MoneyMovementResponse(BaseModel):
    message: str
    account: AccountResponse


class TransferRequest(BaseModel):
    from_account_number: str
    to_account_number: str
    amount: Decimal
    description: str = ""


class TransferResponse(BaseModel):
    message: str
