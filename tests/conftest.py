import pytest
import pytest_asyncio
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.config import settings
from bizledger.db.mongo import create_indexes
from bizledger.models.account import AccountType
from bizledger.schemas.account import AccountCreate
from bizledger.schemas.client import ClientCreate
from bizledger.services.account_service import AccountService
from bizledger.services.client_service import ClientService

TEST_MONGODB_DB = "bizledger_test"


@pytest.fixture(autouse=True)
def compensating_writes(monkeypatch):
    """The in-memory Mongo has no sessions; cascades run as sagas."""
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", False)


@pytest_asyncio.fixture
async def test_db() -> AsyncIOMotorDatabase:
    """Fresh in-memory database per test, with the production indexes."""
    client = AsyncMongoMockClient()
    db = client[TEST_MONGODB_DB]
    await create_indexes(db)
    return db


@pytest.fixture
def owner_id() -> ObjectId:
    return ObjectId()


@pytest_asyncio.fixture
async def bank_account(test_db, owner_id):
    """Bank account opened with 1000.00."""
    return await AccountService(test_db).create_account(
        owner_id,
        AccountCreate(name="Operating", type=AccountType.BANK, initial_balance_cents=100000),
    )


@pytest_asyncio.fixture
async def cash_account(test_db, owner_id):
    return await AccountService(test_db).create_account(
        owner_id,
        AccountCreate(name="Petty cash", type=AccountType.CASH, initial_balance_cents=0),
    )


@pytest_asyncio.fixture
async def client(test_db, owner_id):
    return await ClientService(test_db).create_client(
        owner_id,
        ClientCreate(name="Acme Corp", type="company", email="billing@acme.test"),
    )
