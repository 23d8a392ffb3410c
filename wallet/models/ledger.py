"""
Ledger model - one immutable record per completed transfer.

Design principles:
- Exactly one entry per transfer (no mirrored send/receive rows)
- Append-only: written once by the transfer engine, never updated or deleted
- Perspective (sent vs received) is derived at read time
- All amounts in integer cents
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from wallet.models.base import MongoModel, _utcnow


class Perspective(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class LedgerEntry(MongoModel):
    """
    sender_id moved amount_cents to receiver_id at created_at.

    Invariants:
    - sender_id != receiver_id
    - amount_cents > 0
    """

    sender_id: str
    receiver_id: str
    amount_cents: int = Field(gt=0)
    currency: str
    note: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    def perspective_for(self, account_id: str) -> Perspective:
        return Perspective.SENT if self.sender_id == account_id else Perspective.RECEIVED

    def counterparty_for(self, account_id: str) -> str:
        return self.receiver_id if self.sender_id == account_id else self.sender_id


class HistoryEntry(LedgerEntry):
    """A ledger entry as seen from one account. Never stored."""

    perspective: Perspective
    counterparty_id: str

    @classmethod
    def for_account(cls, entry: LedgerEntry, account_id: str) -> "HistoryEntry":
        return cls(
            **entry.model_dump(),
            perspective=entry.perspective_for(account_id),
            counterparty_id=entry.counterparty_for(account_id),
        )


class IdempotencyStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    UNCONFIRMED = "unconfirmed"


class IdempotencyRecord(MongoModel):
    """Caller-supplied key claimed by one transfer request."""

    sender_id: str
    key: str
    receiver_id: str
    amount_cents: int
    status: IdempotencyStatus = IdempotencyStatus.PENDING
    entry_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
