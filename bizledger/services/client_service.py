import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.models.client import Client
from bizledger.repositories.client_repo import ClientRepository
from bizledger.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.clients = ClientRepository(db)

    async def create_client(self, owner_id: ObjectId, client_in: ClientCreate) -> Client:
        client = Client(owner_id=owner_id, **client_in.model_dump())
        await self.clients.insert(client)
        logger.info("Client created", extra={"client_id": str(client.id), "owner_id": str(owner_id)})
        return client

    async def get_client(self, client_id: str, owner_id: ObjectId) -> Client:
        return await self.clients.require(client_id, owner_id)

    async def list_clients(
        self,
        owner_id: ObjectId,
        status: Optional[str] = None,
        type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Client]:
        query = {"owner_id": owner_id}
        if status:
            query["status"] = status
        if type:
            query["type"] = type
        return await self.clients.find(query, sort=[("name", 1)], skip=skip, limit=limit)

    async def update_client(self, client_id: str, owner_id: ObjectId, client_in: ClientUpdate) -> Client:
        """Descriptive fields only; the debt aggregates are not writable."""
        client = await self.clients.require(client_id, owner_id)
        updates = client_in.changes()
        if not updates:
            return client
        return await self.clients.set_fields(client.id, updates)

    async def reconcile_totals(self, client_id: str, owner_id: ObjectId) -> Client:
        """
        Recompute total_debt_cents/total_paid_cents from the client's debts.

        Repairs drift left behind by a PartialCascadeError.
        """
        client = await self.clients.require(client_id, owner_id)
        totals = await self.clients.debt_totals(client.id)
        if (
            totals["total_debt_cents"] != client.total_debt_cents
            or totals["total_paid_cents"] != client.total_paid_cents
        ):
            logger.warning(
                "Client aggregates drifted",
                extra={
                    "client_id": client_id,
                    "stored_debt_cents": client.total_debt_cents,
                    "actual_debt_cents": totals["total_debt_cents"],
                    "stored_paid_cents": client.total_paid_cents,
                    "actual_paid_cents": totals["total_paid_cents"],
                },
            )
        return await self.clients.set_fields(client.id, totals)
