from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from wallet.core.config import settings
from wallet.models.ledger import HistoryEntry, LedgerEntry, Perspective
from wallet.utils.money import from_minor_units


class TransferRequest(BaseModel):
    """Request body to send funds."""
    receiver_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("receiver_id", "receiver"),
        examples=["@juan"]
    )
    amount: Decimal = Field(..., examples=["250.00"])
    currency: Optional[str] = None
    note: Optional[str] = Field(
        None,
        max_length=settings.NOTE_MAX_LENGTH,
        validation_alias=AliasChoices("note", "description")
    )
    idempotency_key: Optional[str] = Field(None, max_length=128)
    # Defaults to the authenticated account
    sender_id: Optional[str] = None


class LedgerEntryResponse(BaseModel):
    """Ledger entry as returned to clients."""
    id: str
    sender_id: str
    receiver_id: str
    amount: Decimal
    amount_cents: int
    currency: str
    note: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            sender_id=entry.sender_id,
            receiver_id=entry.receiver_id,
            amount=from_minor_units(entry.amount_cents),
            amount_cents=entry.amount_cents,
            currency=entry.currency,
            note=entry.note,
            created_at=entry.created_at
        )


class HistoryEntryResponse(LedgerEntryResponse):
    perspective: Perspective
    counterparty_id: str

    @classmethod
    def from_history(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(
            **LedgerEntryResponse.from_entry(entry).model_dump(),
            perspective=entry.perspective,
            counterparty_id=entry.counterparty_id
        )


class TransferResponse(BaseModel):
    success: bool = True
    replayed: bool = False
    transaction: LedgerEntryResponse


class ErrorDetail(BaseModel):
    code: str
    message: str
    outcome: str
    retryable: bool


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
