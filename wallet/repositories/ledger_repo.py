"""
LedgerRepository - append-only transfer records.

Entries are inserted once and never updated or deleted. History reads
stream from a bounded cursor, newest first.
"""

from typing import AsyncIterator, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from wallet.db.mongo import LEDGER_ENTRIES
from wallet.models.ledger import LedgerEntry
from wallet.repositories.account_repo import session_kwargs, store_errors


class LedgerRepository:
    """Repository for ledger entries (completed transfers)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[LEDGER_ENTRIES]

    async def insert_entry(self, entry: LedgerEntry, session=None) -> LedgerEntry:
        """Append one entry and return it with its id."""
        doc = entry.model_dump(exclude={"id"})
        doc["_id"] = ObjectId()
        with store_errors("insert_entry"):
            await self.collection.insert_one(doc, **session_kwargs(session))
        return LedgerEntry.from_doc(doc)

    async def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        if not ObjectId.is_valid(entry_id):
            return None
        with store_errors("get_entry"):
            doc = await self.collection.find_one({"_id": ObjectId(entry_id)})
        if doc:
            return LedgerEntry.from_doc(doc)
        return None

    async def iter_for_account(self, account_id: str, limit: int) -> AsyncIterator[LedgerEntry]:
        """
        Yield entries where the account is sender or receiver.

        Ordered by created_at descending, ties broken by id (newest first).
        At most `limit` entries; each call opens a fresh cursor.
        """
        cursor = self.collection.find({
            "$or": [
                {"sender_id": account_id},
                {"receiver_id": account_id}
            ]
        }).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)

        with store_errors("iter_for_account"):
            async for doc in cursor:
                yield LedgerEntry.from_doc(doc)
