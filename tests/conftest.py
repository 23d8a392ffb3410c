import uuid

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient
from motor.motor_asyncio import AsyncIOMotorDatabase

from wallet.db.mongo import ACCOUNTS, LEDGER_ENTRIES, create_indexes
from wallet.models.account import Account
from wallet.repositories.account_repo import AccountRepository
from wallet.services.transfer_service import TransferEngine

ALICE_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
BOB_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
CAROL_ID = "16fd2706-8baf-433b-82eb-8c7fada847da"


@pytest_asyncio.fixture
async def test_db() -> AsyncIOMotorDatabase:
    """In-memory Motor database, fresh for every test."""
    client = AsyncMongoMockClient()
    db = client[f"wallet_test_{uuid.uuid4().hex[:8]}"]

    await create_indexes(db)

    yield db


@pytest_asyncio.fixture
async def account_repo(test_db) -> AccountRepository:
    return AccountRepository(test_db)


@pytest_asyncio.fixture
async def alice(account_repo) -> Account:
    """Alice holds 1,000.00."""
    return await account_repo.create_account("Alice Reyes", "alice", balance_cents=100000, account_id=ALICE_ID)


@pytest_asyncio.fixture
async def bob(account_repo) -> Account:
    """Bob holds 50.00."""
    return await account_repo.create_account("Bob Santos", "@Bob", balance_cents=5000, account_id=BOB_ID)


@pytest_asyncio.fixture
async def carol(account_repo) -> Account:
    """Carol holds nothing."""
    return await account_repo.create_account("Carol Cruz", "carol", balance_cents=0, account_id=CAROL_ID)


@pytest.fixture
def engine(test_db) -> TransferEngine:
    """Engine on the compensating strategy (the in-memory store has no transactions)."""
    return TransferEngine(test_db, strategy="compensating", currency="PHP")


async def balance_of(db, account_id: str) -> int:
    doc = await db[ACCOUNTS].find_one({"_id": account_id})
    return doc["balance_cents"]


async def ledger_count(db) -> int:
    return await db[LEDGER_ENTRIES].count_documents({})
