from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from wallet.db.mongo import IDEMPOTENCY_KEYS
from wallet.models.base import _utcnow
from wallet.models.ledger import IdempotencyRecord, IdempotencyStatus
from wallet.repositories.account_repo import store_errors


class IdempotencyRepository:
    """Claims on caller-supplied idempotency keys, one per (sender, key)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[IDEMPOTENCY_KEYS]

    async def get(self, sender_id: str, key: str) -> Optional[IdempotencyRecord]:
        with store_errors("idempotency_get"):
            doc = await self.collection.find_one({"sender_id": sender_id, "key": key})
        if doc:
            return IdempotencyRecord.from_doc(doc)
        return None

    async def claim(self, sender_id: str, key: str, receiver_id: str, amount_cents: int) -> Optional[IdempotencyRecord]:
        """
        Insert a pending claim.

        Returns the new record, or None if another request already holds
        the key (the unique index decides the race).
        """
        record = IdempotencyRecord(
            sender_id=sender_id,
            key=key,
            receiver_id=receiver_id,
            amount_cents=amount_cents,
        )
        doc = record.model_dump(exclude={"id"}, mode="python")
        doc["status"] = record.status.value
        try:
            with store_errors("idempotency_claim"):
                result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            return None
        doc["_id"] = result.inserted_id
        return IdempotencyRecord.from_doc(doc)

    async def mark(self, sender_id: str, key: str, status: IdempotencyStatus, entry_id: Optional[str] = None) -> Optional[IdempotencyRecord]:
        update = {"status": status.value, "updated_at": _utcnow()}
        if entry_id is not None:
            update["entry_id"] = entry_id
        with store_errors("idempotency_mark"):
            doc = await self.collection.find_one_and_update(
                {"sender_id": sender_id, "key": key},
                {"$set": update},
                return_document=ReturnDocument.AFTER
            )
        if doc:
            return IdempotencyRecord.from_doc(doc)
        return None

    async def release(self, sender_id: str, key: str) -> bool:
        """Drop a pending claim after a transfer that changed nothing."""
        with store_errors("idempotency_release"):
            result = await self.collection.delete_one({
                "sender_id": sender_id,
                "key": key,
                "status": IdempotencyStatus.PENDING.value
            })
        return result.deleted_count > 0
