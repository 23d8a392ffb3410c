from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status

from wallet.api.deps import get_transfer_engine
from wallet.core.auth import get_current_account_id
from wallet.core.config import settings
from wallet.core.errors import ForbiddenSenderError
from wallet.schemas.transfer import (
    ErrorResponse,
    HistoryEntryResponse,
    LedgerEntryResponse,
    TransferRequest,
    TransferResponse,
)
from wallet.services.transfer_service import TransferEngine
from wallet.utils.money import to_minor_units

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def send_funds(
    payload: TransferRequest,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Send funds from the authenticated account."""
    if payload.sender_id and payload.sender_id.strip().lower() != current_account_id:
        raise ForbiddenSenderError()

    result = await engine.transfer(
        sender_id=current_account_id,
        receiver_id=payload.receiver_id,
        amount_cents=to_minor_units(payload.amount),
        note=payload.note,
        currency=payload.currency,
        idempotency_key=payload.idempotency_key or idempotency_key
    )
    if result.replayed:
        response.status_code = status.HTTP_200_OK

    return TransferResponse(
        replayed=result.replayed,
        transaction=LedgerEntryResponse.from_entry(result.entry)
    )


@router.get("/history", response_model=List[HistoryEntryResponse])
async def get_history(
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Transfers sent or received by the authenticated account, newest first."""
    return [
        HistoryEntryResponse.from_history(entry)
        async for entry in engine.iter_history(current_account_id, limit)
    ]
