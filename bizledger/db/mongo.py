import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from bizledger.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URI)
    mongodb.db = mongodb.client[settings.MONGODB_DB]

    # Create indexes
    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB", extra={"database": settings.MONGODB_DB})

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Accounts
    await db["accounts"].create_index("owner_id")
    await db["accounts"].create_index([("type", ASCENDING), ("status", ASCENDING)])

    # Clients
    await db["clients"].create_index("owner_id")
    await db["clients"].create_index("status")

    # Invoices
    await db["invoices"].create_index("invoice_number", unique=True)
    await db["invoices"].create_index([("owner_id", ASCENDING), ("type", ASCENDING), ("status", ASCENDING)])
    await db["invoices"].create_index([("due_date", ASCENDING), ("status", ASCENDING)])
    await db["invoices"].create_index([("created_at", ASCENDING), ("is_locked", ASCENDING)])

    # Payments
    await db["payments"].create_index("payment_number", unique=True)
    await db["payments"].create_index([("owner_id", ASCENDING), ("type", ASCENDING), ("status", ASCENDING)])
    await db["payments"].create_index([("account_id", ASCENDING), ("created_at", DESCENDING)])
    await db["payments"].create_index("invoice_id")
    await db["payments"].create_index([("created_at", ASCENDING), ("is_locked", ASCENDING)])

    # Debts
    await db["debts"].create_index("debt_number", unique=True)
    await db["debts"].create_index([("client_id", ASCENDING), ("status", ASCENDING)])
    await db["debts"].create_index([("owner_id", ASCENDING), ("due_date", ASCENDING)])

    # Debt payments
    await db["debt_payments"].create_index("payment_number", unique=True)
    await db["debt_payments"].create_index("debt_id")
    await db["debt_payments"].create_index("client_id")

    # Financial periods
    await db["financial_periods"].create_index(
        [("year", ASCENDING), ("month", ASCENDING)], unique=True
    )
    await db["financial_periods"].create_index("status")

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
