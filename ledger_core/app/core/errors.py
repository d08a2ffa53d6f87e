from __future__ import annotations

from enum import Enum


class NotFoundTarget(str, Enum):
    ACCOUNT = "account"
    SOURCE = "source"
    DESTINATION = "destination"


class LedgerError(Exception):
    """Base class for every failure the ledger core reports to its callers."""

    retryable = False


class InvalidRequestError(LedgerError):
    """Input rejected before touching the store."""


class InvalidAmountError(InvalidRequestError):
    """Raised when an amount is not a positive two-place decimal."""


class SameAccountError(InvalidRequestError):
    """Raised when a transfer names the same account on both sides."""


class InvalidDescriptionError(InvalidRequestError):
    """Raised when caller-supplied transfer text exceeds the allowed length."""


class AccountNotFoundError(LedgerError):
    """Raised when an account id or number is missing from the store."""

    def __init__(self, message: str, which: NotFoundTarget = NotFoundTarget.ACCOUNT) -> None:
        super().__init__(message)
        self.which = which


class InsufficientFundsError(LedgerError):
    """Raised when a withdrawal/transfer would drop balance below zero."""


class DuplicateAccountNumberError(LedgerError):
    """Raised when an account number is already taken."""


class StoreUnavailableError(LedgerError):
    """Transient store failure (lock-wait timeout, lost connection, failed commit).

    Nothing from the failed operation was committed, so the whole operation
    can be retried from scratch.
    """

    retryable = True
