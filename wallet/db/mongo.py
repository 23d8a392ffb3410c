from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from wallet.core.config import settings
from wallet.core.logging_config import get_logger

logger = get_logger("wallet.db")

ACCOUNTS = "accounts"
LEDGER_ENTRIES = "ledger_entries"
IDEMPOTENCY_KEYS = "idempotency_keys"


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        timeoutMS=settings.MONGODB_TIMEOUT_MS,
    )
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    # Create indexes
    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)
    return mongodb.db

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
        logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Handle lookups are case-insensitive through the normalized copy
    await db[ACCOUNTS].create_index("handle_normalized", unique=True)

    # History reads: either side of the transfer, newest first
    await db[LEDGER_ENTRIES].create_index([("sender_id", ASCENDING), ("created_at", DESCENDING)])
    await db[LEDGER_ENTRIES].create_index([("receiver_id", ASCENDING), ("created_at", DESCENDING)])

    # One claim per (sender, key)
    await db[IDEMPOTENCY_KEYS].create_index(
        [("sender_id", ASCENDING), ("key", ASCENDING)],
        unique=True
    )