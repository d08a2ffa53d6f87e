import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from ..core.db import Database
from ..core.errors import InsufficientFundsError, StoreUnavailableError
from ..models import TransactionKind
from ..services import LedgerService


def test_concurrent_withdrawals_cannot_both_succeed(service: LedgerService) -> None:
    account = service.create_account(1, "0001")
    service.deposit(account.id, "75.00")
    barrier = threading.Barrier(2)

    def attempt(_: int) -> str:
        barrier.wait()
        try:
            service.withdraw(account.id, "75.00")
        except InsufficientFundsError:
            return "insufficient"
        return "ok"

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = sorted(pool.map(attempt, range(2), timeout=30))

    assert outcomes == ["insufficient", "ok"]
    assert service.get_account(account.id).balance == Decimal("0.00")
    kinds = [entry.kind for entry in service.get_account_transactions(account.id)]
    assert kinds.count(TransactionKind.WITHDRAW) == 1


def test_many_concurrent_withdrawals_never_overdraw(service: LedgerService) -> None:
    account = service.create_account(1, "0001")
    service.deposit(account.id, "10.00")
    barrier = threading.Barrier(8)

    def attempt(_: int) -> bool:
        barrier.wait()
        try:
            service.withdraw(account.id, "3.00")
        except InsufficientFundsError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        succeeded = sum(pool.map(attempt, range(8), timeout=60))

    assert succeeded == 3
    assert service.get_account(account.id).balance == Decimal("1.00")


def test_opposite_transfers_do_not_deadlock(service: LedgerService) -> None:
    first = service.create_account(1, "0001")
    second = service.create_account(2, "0002")
    service.deposit(first.id, "100.00")
    service.deposit(second.id, "100.00")
    rounds = 15
    barrier = threading.Barrier(2)

    def shuttle(direction: tuple[str, str]) -> None:
        barrier.wait()
        for _ in range(rounds):
            service.transfer(direction[0], direction[1], "1.00", "ping-pong")

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(shuttle, ("0001", "0002")),
            pool.submit(shuttle, ("0002", "0001")),
        ]
        for future in futures:
            future.result(timeout=60)

    assert service.get_account(first.id).balance == Decimal("100.00")
    assert service.get_account(second.id).balance == Decimal("100.00")
    for account_id in (first.id, second.id):
        kinds = [entry.kind for entry in service.get_account_transactions(account_id)]
        assert kinds.count(TransactionKind.TRANSFER_OUT) == rounds
        assert kinds.count(TransactionKind.TRANSFER_IN) == rounds


def test_lock_wait_timeout_surfaces_as_retryable_error(tmp_path) -> None:
    path = tmp_path / "locked.db"
    database = Database.from_url(f"sqlite:///{path}", lock_timeout=0.1)
    database.init_schema()
    service = LedgerService(database)
    account = service.create_account(1, "0001")

    blocker = sqlite3.connect(path, isolation_level=None)
    blocker.execute("BEGIN IMMEDIATE")
    try:
        with pytest.raises(StoreUnavailableError) as excinfo:
            service.deposit(account.id, "10.00")
        assert excinfo.value.retryable
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()

    assert service.get_account(account.id).balance == Decimal("0.00")
    assert service.deposit(account.id, "10.00").balance == Decimal("10.00")
    assert len(service.get_account_transactions(account.id)) == 1
    database.close()


def test_concurrent_deposits_on_in_memory_store_stay_consistent() -> None:
    database = Database.from_url("sqlite://", lock_timeout=30)
    database.init_schema()
    service = LedgerService(database)
    account = service.create_account(1, "0001")
    workers, rounds = 8, 20
    barrier = threading.Barrier(workers)

    def depositor(_: int) -> None:
        barrier.wait()
        for _ in range(rounds):
            service.deposit(account.id, "1.00")

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(depositor, range(workers), timeout=120))

        entries = service.get_account_transactions(account.id)
        assert service.get_account(account.id).balance == Decimal(workers * rounds)
        assert len(entries) == workers * rounds
        assert {entry.kind for entry in entries} == {TransactionKind.DEPOSIT}
    finally:
        database.close()


def test_interrupted_deposit_releases_the_write_lock(tmp_path, monkeypatch) -> None:
    database = Database.from_url(f"sqlite:///{tmp_path / 'interrupted.db'}", lock_timeout=0.5)
    database.init_schema()
    service = LedgerService(database)
    account = service.create_account(1, "0001")
    service.deposit(account.id, "20.00")

    def interrupted_append(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(service.transactions, "append", interrupted_append)
    with pytest.raises(KeyboardInterrupt):
        service.deposit(account.id, "5.00")
    monkeypatch.undo()

    try:
        assert service.get_account(account.id).balance == Decimal("20.00")
        assert len(service.get_account_transactions(account.id)) == 1

        assert service.deposit(account.id, "5.00").balance == Decimal("25.00")
        assert len(service.get_account_transactions(account.id)) == 2
    finally:
        database.close()
