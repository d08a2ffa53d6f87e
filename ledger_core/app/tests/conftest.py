import pytest

from ..core.db import Database
from ..services import LedgerService


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database.from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.init_schema()
    yield db
    db.close()


@pytest.fixture
def service(database: Database) -> LedgerService:
    return LedgerService(database)
