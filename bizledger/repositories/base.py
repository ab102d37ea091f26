"""
Shared collection access for ledger repositories.

Every write takes an optional LedgerTransaction. Inside a Mongo transaction
the session is passed through; otherwise the write records how to undo
itself so a failing cascade can be compensated.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from bizledger.core.exceptions import LedgerError, LockedRecordError, NotFoundError
from bizledger.db.session import LedgerTransaction, session_of
from bizledger.models.base import MongoModel, _utcnow, parse_object_id

ModelT = TypeVar("ModelT", bound=MongoModel)


class BaseRepository(Generic[ModelT]):
    collection_name: str
    model: Type[ModelT]
    entity: str

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[self.collection_name]

    def object_id(self, value: Any) -> ObjectId:
        return parse_object_id(value, self.entity)

    # ===== READS =====

    async def get(
        self,
        doc_id: Any,
        owner_id: Optional[Any] = None,
        tx: Optional[LedgerTransaction] = None,
    ) -> Optional[ModelT]:
        """Get a document by id, scoped to an owner when given."""
        query: Dict[str, Any] = {"_id": self.object_id(doc_id)}
        if owner_id is not None:
            query["owner_id"] = ObjectId(str(owner_id))
        doc = await self.collection.find_one(query, session=session_of(tx))
        if doc:
            return self.model(**doc)
        return None

    async def require(
        self,
        doc_id: Any,
        owner_id: Optional[Any] = None,
        tx: Optional[LedgerTransaction] = None,
    ) -> ModelT:
        """Like get, but a missing document raises NotFoundError."""
        found = await self.get(doc_id, owner_id, tx)
        if found is None:
            raise NotFoundError(self.entity, doc_id)
        return found

    async def find(
        self,
        query: Dict[str, Any],
        sort: Optional[List[tuple]] = None,
        skip: int = 0,
        limit: int = 0,
        tx: Optional[LedgerTransaction] = None,
    ) -> List[ModelT]:
        cursor = self.collection.find(
            query,
            sort=sort or [("created_at", -1)],
            skip=skip,
            limit=limit,
            session=session_of(tx),
        )
        docs = await cursor.to_list(None)
        return [self.model(**doc) for doc in docs]

    async def count(self, query: Dict[str, Any], tx: Optional[LedgerTransaction] = None) -> int:
        return await self.collection.count_documents(query, session=session_of(tx))

    # ===== WRITES =====

    async def insert(self, item: ModelT, tx: Optional[LedgerTransaction] = None) -> ModelT:
        doc = item.to_document()
        await self.collection.insert_one(doc, session=session_of(tx))
        if tx is not None:
            async def undo(doc_id=doc["_id"]):
                await self.collection.delete_one({"_id": doc_id})
            tx.record(f"insert {self.entity} {doc['_id']}", undo)
        return item

    async def set_fields(
        self,
        doc_id: Any,
        updates: Dict[str, Any],
        tx: Optional[LedgerTransaction] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelT]:
        """
        $set fields on one document.

        Returns the updated model, or None when nothing matched the id plus
        ``conditions``.
        """
        oid = self.object_id(doc_id)
        query = {"_id": oid, **(conditions or {})}
        changes = {**updates, "updated_at": _utcnow()}
        before = await self.collection.find_one_and_update(
            query,
            {"$set": changes},
            return_document=ReturnDocument.BEFORE,
            session=session_of(tx),
        )
        if before is None:
            return None
        if tx is not None:
            restore: Dict[str, Dict[str, Any]] = {}
            previous = {key: before[key] for key in changes if key in before}
            absent = {key: "" for key in changes if key not in before}
            if previous:
                restore["$set"] = previous
            if absent:
                restore["$unset"] = absent

            async def undo():
                await self.collection.update_one({"_id": oid}, restore)
            tx.record(f"update {self.entity} {oid} {sorted(updates)}", undo)
        return self.model(**{**before, **changes})

    async def increment(
        self,
        doc_id: Any,
        increments: Dict[str, int],
        tx: Optional[LedgerTransaction] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelT]:
        """Atomic $inc; None when nothing matched."""
        oid = self.object_id(doc_id)
        query = {"_id": oid, **(conditions or {})}
        after = await self.collection.find_one_and_update(
            query,
            {"$inc": increments, "$set": {"updated_at": _utcnow()}},
            return_document=ReturnDocument.AFTER,
            session=session_of(tx),
        )
        if after is None:
            return None
        if tx is not None:
            reverse = {key: -value for key, value in increments.items()}

            async def undo():
                await self.collection.update_one({"_id": oid}, {"$inc": reverse})
            tx.record(f"increment {self.entity} {oid} {increments}", undo)
        return self.model(**after)

    async def delete(
        self,
        doc_id: Any,
        tx: Optional[LedgerTransaction] = None,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelT]:
        """Remove one document and return what was removed."""
        oid = self.object_id(doc_id)
        removed = await self.collection.find_one_and_delete(
            {"_id": oid, **(conditions or {})},
            session=session_of(tx),
        )
        if removed is None:
            return None
        if tx is not None:
            async def undo():
                await self.collection.insert_one(removed)
            tx.record(f"delete {self.entity} {oid}", undo)
        return self.model(**removed)

    async def set_flag(
        self,
        query: Dict[str, Any],
        field: str,
        value: bool,
        tx: Optional[LedgerTransaction] = None,
    ) -> int:
        """
        Set a boolean ``field`` on every document matching ``query``.

        Only documents whose flag actually changes are touched, so the undo
        flips exactly those back. Returns how many documents changed.
        """
        pending = {**query, field: {"$ne": value}}
        cursor = self.collection.find(pending, projection={"_id": 1}, session=session_of(tx))
        ids = [doc["_id"] for doc in await cursor.to_list(None)]
        if not ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": ids}},
            {"$set": {field: value, "updated_at": _utcnow()}},
            session=session_of(tx),
        )
        if tx is not None:
            async def undo():
                await self.collection.update_many({"_id": {"$in": ids}}, {"$set": {field: not value}})
            tx.record(f"set {field}={value} on {len(ids)} {self.entity}", undo)
        return result.modified_count


class LockableRepository(BaseRepository[ModelT]):
    """Repository for documents frozen by a closed period (``is_locked``)."""

    async def _locked_or_missing(self, doc_id: Any, tx: Optional[LedgerTransaction]) -> LedgerError:
        current = await self.get(doc_id, tx=tx)
        if current is None:
            return NotFoundError(self.entity, doc_id)
        return LockedRecordError(f"{self.entity} {doc_id} is locked by a closed period")

    async def set_unlocked(
        self,
        doc_id: Any,
        updates: Dict[str, Any],
        tx: Optional[LedgerTransaction] = None,
    ) -> ModelT:
        """set_fields that refuses locked documents."""
        updated = await self.set_fields(doc_id, updates, tx, conditions={"is_locked": {"$ne": True}})
        if updated is None:
            raise await self._locked_or_missing(doc_id, tx)
        return updated

    async def delete_unlocked(self, doc_id: Any, tx: Optional[LedgerTransaction] = None) -> ModelT:
        removed = await self.delete(doc_id, tx, conditions={"is_locked": {"$ne": True}})
        if removed is None:
            raise await self._locked_or_missing(doc_id, tx)
        return removed

    async def count_in_window(self, start: datetime, end: datetime, tx: Optional[LedgerTransaction] = None) -> int:
        return await self.count({"created_at": {"$gte": start, "$lt": end}}, tx)

    async def lock_window(self, start: datetime, end: datetime, locked: bool, tx: Optional[LedgerTransaction] = None) -> int:
        """Lock (or unlock) every document created in [start, end)."""
        return await self.set_flag({"created_at": {"$gte": start, "$lt": end}}, "is_locked", locked, tx)
