"""
AccountRepository - account documents and the balance mutation protocol.

Balances move only through apply_delta/revert_delta. Both are a single
atomic $inc, so concurrent payments on one account cannot lose updates.
"""
from typing import Any, Dict, Optional

from bson import ObjectId

from bizledger.core.exceptions import InsufficientBalanceError, NotFoundError
from bizledger.db.session import LedgerTransaction
from bizledger.models.account import Account, AccountStatus
from bizledger.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    collection_name = "accounts"
    model = Account
    entity = "Account"

    async def apply_delta(
        self,
        account_id: Any,
        amount_cents: int,
        sign: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> Account:
        """
        Add ``sign * amount_cents`` to the balance.

        sign is +1 for money in (income, transfer in) and -1 for money out.
        Raises NotFoundError when the account does not exist.
        """
        if sign not in (1, -1):
            raise ValueError(f"sign must be +1 or -1, got {sign}")
        updated = await self.increment(account_id, {"balance_cents": sign * amount_cents}, tx)
        if updated is None:
            raise NotFoundError(self.entity, account_id)
        return updated

    async def revert_delta(
        self,
        account_id: Any,
        amount_cents: int,
        sign: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> Account:
        """Undo an earlier apply_delta with the same arguments."""
        return await self.apply_delta(account_id, amount_cents, -sign, tx)

    async def withdraw(
        self,
        account_id: Any,
        amount_cents: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> Account:
        """Debit only if the balance covers it; used for transfers."""
        updated = await self.increment(
            account_id,
            {"balance_cents": -amount_cents},
            tx,
            conditions={"balance_cents": {"$gte": amount_cents}},
        )
        if updated is None:
            current = await self.require(account_id, tx=tx)
            raise InsufficientBalanceError(account_id, current.balance_cents, amount_cents)
        return updated

    async def total_balance_by_type(self, owner_id: ObjectId) -> Dict[str, int]:
        """Sum of active account balances, keyed by account type."""
        pipeline = [
            {"$match": {"owner_id": owner_id, "status": AccountStatus.ACTIVE.value}},
            {"$group": {"_id": "$type", "total": {"$sum": "$balance_cents"}}},
        ]
        rows = await self.collection.aggregate(pipeline).to_list(None)
        return {row["_id"]: row["total"] for row in rows}
