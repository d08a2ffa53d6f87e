from __future__ import annotations
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import Column
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from ..core.money import ZERO, MinorUnits


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TransactionKind(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    account_number: str = Field(max_length=20, unique=True, index=True)
    balance: Decimal = Field(default=ZERO, sa_column=Column(MinorUnits(), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class TransactionEntry(SQLModel, table=True):
    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="accounts.id", index=True)
    kind: TransactionKind = Field(
        sa_column=Column(
            SAEnum(
                TransactionKind,
                values_callable=lambda kinds: [kind.value for kind in kinds],
                native_enum=False,
                length=16,
            ),
            nullable=False,
        )
    )
    amount: Decimal = Field(sa_column=Column(MinorUnits(), nullable=False))
    description: str = Field(default="", max_length=255)
    created_at: datetime = Field(default_factory=_utcnow, index=True)
