from fastapi import APIRouter, Depends, status

from ..core.dependencies import get_ledger_service
from ..models import (
    AccountCreate,
    AccountResponse,
    MoneyMovementRequest,
    MoneyMovementResponse,
    TransactionEntryResponse,
    TransferRequest,
    TransferResponse,
)
from ..services import LedgerService


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.create_account(payload.user_id, payload.account_number)

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.get_account(account_id)

@router.post("/{account_id}/deposit", response_model=MoneyMovementResponse)
def deposit(
    account_id: int,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> MoneyMovementResponse:
    account = service.deposit(account_id, payload.amount)
    return MoneyMovementResponse(message="Deposit successful", account=account)

@router.post("/{account_id}/withdraw", response_model=MoneyMovementResponse)
def withdraw(
    account_id: int,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> MoneyMovementResponse:
    account = service.withdraw(account_id, payload.amount)
    return MoneyMovementResponse(message="Withdrawal successful", account=account)

@router.get("/{account_id}/transactions", response_model=list[TransactionEntryResponse])
def get_account_transactions(
    account_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> list[TransactionEntryResponse]:
    return service.get_account_transactions(account_id)

transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])

@transaction_router.post("/transfer", response_model=TransferResponse)
def create_transfer(
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> TransferResponse:
    service.transfer(
        payload.from_account_number,
        payload.to_account_number,
        payload.amount,
        payload.description,
    )
    return TransferResponse(message="Transfer successful")

__all__ = ["router", "transaction_router"]
