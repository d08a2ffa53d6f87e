from fastapi import Depends, Request

from ..services import LedgerService
from .config import Settings
from .db import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ledger_service(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> LedgerService:
    return LedgerService(
        database,
        description_max_length=settings.description_max_length,
    )
