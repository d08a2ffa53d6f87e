from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.db import Database
from ..core.errors import AccountNotFoundError, DuplicateAccountNumberError
from ..models import AccountModel, TransactionEntryModel, TransactionKind


class AccountStore(Protocol):
    """Account records: point lookups plus the balance-adjustment primitive."""

    def create(self, user_id: int, account_number: str) -> AccountModel: ...

    def get_by_id(
        self, account_id: int, session: Optional[Session] = None
    ) -> AccountModel: ...

    def get_by_number(
        self, account_number: str, session: Optional[Session] = None
    ) -> AccountModel: ...

    def find_by_number(
        self, session: Session, account_number: str
    ) -> Optional[AccountModel]: ...

    def lock(
        self, session: Session, account_ids: Iterable[int]
    ) -> dict[int, AccountModel]: ...

    def adjust_balance(
        self, session: Session, account_id: int, amount: Decimal
    ) -> None: ...


class TransactionLogStore(Protocol):
    """Append-only transaction history keyed by account."""

    def append(
        self,
        session: Session,
        account_id: int,
        kind: TransactionKind,
        amount: Decimal,
        description: str,
    ) -> int: ...

    def list_by_account(self, account_id: int) -> list[TransactionEntryModel]: ...


class _Repository:
    def __init__(self, database: Database) -> None:
        self.database = database

    @contextmanager
    def _reading(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with self.database.session() as own_session:
            yield own_session


class AccountRepository(_Repository):
    """SQL implementation of :class:`AccountStore`."""

    def create(self, user_id: int, account_number: str) -> AccountModel:
        try:
            with self.database.unit_of_work(exclusive=True) as session:
                account = AccountModel(user_id=user_id, account_number=account_number)
                session.add(account)
                session.flush()
                session.refresh(account)
        except IntegrityError as exc:
            raise DuplicateAccountNumberError(
                f"Account number {account_number} already exists"
            ) from exc
        return account

    def get_by_id(
        self, account_id: int, session: Optional[Session] = None
    ) -> AccountModel:
        with self._reading(session) as reader:
            account = reader.get(AccountModel, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def get_by_number(
        self, account_number: str, session: Optional[Session] = None
    ) -> AccountModel:
        with self._reading(session) as reader:
            account = self.find_by_number(reader, account_number)
        if account is None:
            raise AccountNotFoundError(f"Account {account_number} not found")
        return account

    def find_by_number(
        self, session: Session, account_number: str
    ) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.account_number == account_number)
        return session.exec(stmt).first()

    def lock(
        self, session: Session, account_ids: Iterable[int]
    ) -> dict[int, AccountModel]:
        """Lock rows exclusively for the rest of the unit-of-work.

        Rows are always locked in ascending id order so that two operations
        touching the same pair of accounts cannot wait on each other in a
        cycle. Balances are re-read under the lock; ids with no row are left
        out of the result.
        """
        locked: dict[int, AccountModel] = {}
        for account_id in sorted(set(account_ids)):
            stmt = (
                select(AccountModel)
                .where(AccountModel.id == account_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            account = session.exec(stmt).first()
            if account is not None:
                locked[account_id] = account
        return locked

    def adjust_balance(
        self, session: Session, account_id: int, amount: Decimal
    ) -> None:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(
                balance=AccountModel.balance + amount,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)
        if result.rowcount == 0:
            raise AccountNotFoundError(f"Account {account_id} not found")


class TransactionLogRepository(_Repository):
    """SQL implementation of :class:`TransactionLogStore`."""

    def append(
        self,
        session: Session,
        account_id: int,
        kind: TransactionKind,
        amount: Decimal,
        description: str,
    ) -> int:
        entry = TransactionEntryModel(
            account_id=account_id,
            kind=kind,
            amount=amount,
            description=description,
        )
        session.add(entry)
        session.flush()
        return entry.id

    def list_by_account(self, account_id: int) -> list[TransactionEntryModel]:
        stmt = (
            select(TransactionEntryModel)
            .where(TransactionEntryModel.account_id == account_id)
            .order_by(
                TransactionEntryModel.created_at.desc(),
                TransactionEntryModel.id.desc(),
            )
        )
        with self.database.session() as session:
            return list(session.exec(stmt))
