from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from ..core.config import get_settings
from ..core.db import Database
from ..core.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidDescriptionError,
    NotFoundTarget,
    SameAccountError,
)
from ..core.money import MAX_AMOUNT, to_amount
from ..models import (
    AccountModel,
    AccountResponse,
    TransactionEntryResponse,
    TransactionKind,
)
from .repository import (
    AccountRepository,
    AccountStore,
    TransactionLogRepository,
    TransactionLogStore,
)


logger = logging.getLogger(__name__)

DEPOSIT_DESCRIPTION = "Deposit funds"
WITHDRAW_DESCRIPTION = "Withdrawal funds"


class LedgerService:
    """Applies deposits, withdrawals and transfers to account balances.

    Every mutating call runs inside one exclusive unit-of-work: the rows it
    adjusts are locked before their balances are read, and the balance
    changes and their log entries are committed together or not at all. The
    service keeps no state of its own between calls.
    """

    def __init__(
        self,
        database: Database,
        accounts: Optional[AccountStore] = None,
        transactions: Optional[TransactionLogStore] = None,
        *,
        description_max_length: Optional[int] = None,
    ) -> None:
        self.database = database
        self.accounts = accounts or AccountRepository(database)
        self.transactions = transactions or TransactionLogRepository(database)
        if description_max_length is None:
            description_max_length = get_settings().description_max_length
        self.description_max_length = description_max_length

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _account_to_response(self, account: AccountModel) -> AccountResponse:
        return AccountResponse.model_validate(account)

    def _lock_account(self, session, account_id: int) -> AccountModel:
        account = self.accounts.lock(session, [account_id]).get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def _check_headroom(self, account: AccountModel, amount: Decimal) -> None:
        if account.balance + amount > MAX_AMOUNT:
            raise InvalidAmountError(
                f"Crediting {amount} would push account {account.id} past the maximum balance"
            )

    def _check_description(self, description: str) -> str:
        if len(description) > self.description_max_length:
            raise InvalidDescriptionError(
                f"Description must be at most {self.description_max_length} characters"
            )
        return description

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_account(self, user_id: int, account_number: str) -> AccountResponse:
        account = self.accounts.create(user_id, account_number)
        logger.info(
            "account.created",
            extra={"account_id": account.id, "account_number": account.account_number},
        )
        return self._account_to_response(account)

    def get_account(self, account_id: int) -> AccountResponse:
        return self._account_to_response(self.accounts.get_by_id(account_id))

    def get_account_by_number(self, account_number: str) -> AccountResponse:
        return self._account_to_response(self.accounts.get_by_number(account_number))

    def deposit(self, account_id: int, amount: Any) -> AccountResponse:
        amount = to_amount(amount)

        with self.database.unit_of_work(exclusive=True) as session:
            account = self._lock_account(session, account_id)
            self._check_headroom(account, amount)
            self.accounts.adjust_balance(session, account_id, amount)
            self.transactions.append(
                session, account_id, TransactionKind.DEPOSIT, amount, DEPOSIT_DESCRIPTION
            )

        account = self.accounts.get_by_id(account_id)
        logger.info(
            "account.deposit",
            extra={
                "account_id": account_id,
                "amount": str(amount),
                "balance": str(account.balance),
            },
        )
        return self._account_to_response(account)

    def withdraw(self, account_id: int, amount: Any) -> AccountResponse:
        amount = to_amount(amount)

        with self.database.unit_of_work(exclusive=True) as session:
            account = self._lock_account(session, account_id)
            if account.balance < amount:
                logger.warning(
                    "account.withdraw.rejected",
                    extra={"account_id": account_id, "amount": str(amount)},
                )
                raise InsufficientFundsError("Insufficient funds for withdrawal")

            self.accounts.adjust_balance(session, account_id, -amount)
            self.transactions.append(
                session, account_id, TransactionKind.WITHDRAW, amount, WITHDRAW_DESCRIPTION
            )

        account = self.accounts.get_by_id(account_id)
        logger.info(
            "account.withdraw",
            extra={
                "account_id": account_id,
                "amount": str(amount),
                "balance": str(account.balance),
            },
        )
        return self._account_to_response(account)

    def transfer(
        self,
        from_account_number: str,
        to_account_number: str,
        amount: Any,
        description: str = "",
    ) -> None:
        amount = to_amount(amount)
        if from_account_number == to_account_number:
            raise SameAccountError("Cannot transfer to the same account")
        description = self._check_description(description)

        with self.database.unit_of_work(exclusive=True) as session:
            source = self.accounts.find_by_number(session, from_account_number)
            if source is None:
                raise AccountNotFoundError(
                    f"Source account {from_account_number} not found",
                    which=NotFoundTarget.SOURCE,
                )
            dest = self.accounts.find_by_number(session, to_account_number)
            if dest is None:
                raise AccountNotFoundError(
                    f"Destination account {to_account_number} not found",
                    which=NotFoundTarget.DESTINATION,
                )

            locked = self.accounts.lock(session, [source.id, dest.id])
            source, dest = locked[source.id], locked[dest.id]

            if source.balance < amount:
                logger.warning(
                    "account.transfer.rejected",
                    extra={
                        "source_account_id": source.id,
                        "dest_account_id": dest.id,
                        "amount": str(amount),
                    },
                )
                raise InsufficientFundsError("Insufficient funds for transfer")
            self._check_headroom(dest, amount)

            self.accounts.adjust_balance(session, source.id, -amount)
            self.accounts.adjust_balance(session, dest.id, amount)

            self.transactions.append(
                session,
                source.id,
                TransactionKind.TRANSFER_OUT,
                amount,
                f"Transfer to {dest.account_number}: {description}",
            )
            self.transactions.append(
                session,
                dest.id,
                TransactionKind.TRANSFER_IN,
                amount,
                f"Transfer from {source.account_number}: {description}",
            )

        logger.info(
            "account.transfer",
            extra={
                "source_account_id": source.id,
                "dest_account_id": dest.id,
                "amount": str(amount),
            },
        )

    def get_account_transactions(self, account_id: int) -> list[TransactionEntryResponse]:
        self.accounts.get_by_id(account_id)
        entries = self.transactions.list_by_account(account_id)
        return [TransactionEntryResponse.model_validate(entry) for entry in entries]
