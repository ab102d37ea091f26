"""Ledger exceptions.

Services raise these; the HTTP layer maps them to status codes in
``bizledger.main``.
"""
from typing import List


class LedgerError(Exception):
    """Base exception for ledger operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """Referenced account, client, debt, invoice, payment or period does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = str(entity_id)


class LedgerValidationError(LedgerError):
    """Input rejected before any write (bad amount, missing reference, bad transition)."""

    status_code = 400


class LockedRecordError(LedgerError):
    """Write attempted on a locked invoice/payment or inside a closed period."""

    status_code = 403


class InsufficientBalanceError(LedgerError):
    """Source account cannot cover a transfer."""

    status_code = 400

    def __init__(self, account_id: object, balance_cents: int, requested_cents: int):
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"{balance_cents} < {requested_cents} cents"
        )
        self.account_id = str(account_id)
        self.balance_cents = balance_cents
        self.requested_cents = requested_cents


class PartialCascadeError(LedgerError):
    """A cascade failed and some applied steps could not be undone."""

    status_code = 500

    def __init__(self, operation: str, cause: BaseException, uncompensated: List[str]):
        super().__init__(
            f"{operation} failed ({cause}); steps left applied: {', '.join(uncompensated)}"
        )
        self.operation = operation
        self.cause = cause
        self.uncompensated = uncompensated
