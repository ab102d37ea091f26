import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.config import settings
from bizledger.core.exceptions import LedgerValidationError
from bizledger.db.session import LedgerTransaction, run_ledger_operation
from bizledger.models.account import Account, AccountStatus
from bizledger.models.base import _utcnow, as_naive_utc
from bizledger.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from bizledger.repositories.account_repo import AccountRepository
from bizledger.repositories.counter_repo import CounterRepository
from bizledger.repositories.payment_repo import PaymentRepository
from bizledger.repositories.period_repo import FinancialPeriodRepository
from bizledger.schemas.account import AccountCreate, AccountUpdate, TransferRequest

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.accounts = AccountRepository(db)
        self.payments = PaymentRepository(db)
        self.counters = CounterRepository(db)
        self.periods = FinancialPeriodRepository(db)

    async def create_account(self, owner_id: ObjectId, account_in: AccountCreate) -> Account:
        account = Account(
            owner_id=owner_id,
            balance_cents=account_in.initial_balance_cents,
            **account_in.model_dump(),
        )
        await self.accounts.insert(account)
        logger.info("Account created", extra={"account_id": str(account.id), "owner_id": str(owner_id)})
        return account

    async def get_account(self, account_id: str, owner_id: ObjectId) -> Account:
        return await self.accounts.require(account_id, owner_id)

    async def list_accounts(
        self,
        owner_id: ObjectId,
        type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Account]:
        query = {"owner_id": owner_id}
        if type:
            query["type"] = type
        if status:
            query["status"] = status
        return await self.accounts.find(query, sort=[("name", 1)])

    async def update_account(self, account_id: str, owner_id: ObjectId, account_in: AccountUpdate) -> Account:
        account = await self.accounts.require(account_id, owner_id)
        updates = account_in.changes()
        if not updates:
            return account
        return await self.accounts.set_fields(account.id, updates)

    async def update_status(self, account_id: str, owner_id: ObjectId, status: AccountStatus) -> Account:
        account = await self.accounts.require(account_id, owner_id)
        updated = await self.accounts.set_fields(account.id, {"status": AccountStatus(status).value})
        logger.info("Account status changed", extra={"account_id": account_id, "status": updated.status})
        return updated

    async def total_balance(self, owner_id: ObjectId) -> dict:
        """Balance over active accounts, overall and per type."""
        by_type = await self.accounts.total_balance_by_type(owner_id)
        return {
            "total_balance_cents": sum(by_type.values()),
            "by_type": by_type,
            "currency": settings.DEFAULT_CURRENCY,
        }

    async def get_movements(
        self,
        account_id: str,
        owner_id: ObjectId,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Payment]:
        """Payments touching an account, newest first."""
        account = await self.accounts.require(account_id, owner_id)
        query = {"account_id": account.id}
        window = {}
        if start_date:
            window["$gte"] = as_naive_utc(start_date)
        if end_date:
            window["$lte"] = as_naive_utc(end_date)
        if window:
            query["payment_date"] = window
        return await self.payments.find(query, sort=[("payment_date", -1)], skip=skip, limit=limit)

    async def transfer(self, owner_id: ObjectId, transfer_in: TransferRequest) -> dict:
        """
        Move money between two active accounts of the same owner.

        Records a completed expense on the source and a completed income on
        the target; both balances move in the same transaction.
        """
        if transfer_in.from_account_id == transfer_in.to_account_id:
            raise LedgerValidationError("Cannot transfer to the same account")

        source = await self.accounts.require(transfer_in.from_account_id, owner_id)
        target = await self.accounts.require(transfer_in.to_account_id, owner_id)
        for account in (source, target):
            if account.status != AccountStatus.ACTIVE:
                raise LedgerValidationError(f"Account {account.name} is not active")
        if source.currency != target.currency:
            raise LedgerValidationError("Transfers between currencies are not supported")

        now = _utcnow()
        await self.periods.ensure_open(now)
        amount = transfer_in.amount_cents
        payment_date = transfer_in.payment_date or now
        description = transfer_in.description or f"Transfer {source.name} -> {target.name}"

        async def operation(tx: LedgerTransaction) -> dict:
            debited = await self.accounts.withdraw(source.id, amount, tx)
            credited = await self.accounts.apply_delta(target.id, amount, 1, tx)

            outgoing = Payment(
                owner_id=owner_id,
                payment_number=await self.counters.next_number("PAY-OUT", 4, now.year, tx),
                type=PaymentType.EXPENSE,
                status=PaymentStatus.COMPLETED,
                method=PaymentMethod.TRANSFER,
                amount_cents=amount,
                currency=source.currency,
                description=description,
                category="transfer",
                payment_date=payment_date,
                account_id=source.id,
                notes=transfer_in.notes,
                applied_account_id=source.id,
                applied_delta_cents=-amount,
            )
            incoming = Payment(
                owner_id=owner_id,
                payment_number=await self.counters.next_number("PAY-IN", 4, now.year, tx),
                type=PaymentType.INCOME,
                status=PaymentStatus.COMPLETED,
                method=PaymentMethod.TRANSFER,
                amount_cents=amount,
                currency=target.currency,
                description=description,
                category="transfer",
                payment_date=payment_date,
                account_id=target.id,
                notes=transfer_in.notes,
                applied_account_id=target.id,
                applied_delta_cents=amount,
            )
            await self.payments.insert(outgoing, tx)
            await self.payments.insert(incoming, tx)
            return {
                "from_account": debited,
                "to_account": credited,
                "outgoing_payment_id": outgoing.id,
                "incoming_payment_id": incoming.id,
            }

        result = await run_ledger_operation(self.db, "transfer", operation)
        logger.info(
            "Transfer completed",
            extra={
                "from_account_id": str(source.id),
                "to_account_id": str(target.id),
                "amount_cents": amount,
            },
        )
        return result
