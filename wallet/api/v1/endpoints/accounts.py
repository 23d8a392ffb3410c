from fastapi import APIRouter, Depends, Query

from wallet.api.deps import get_transfer_engine
from wallet.core.auth import get_current_account_id
from wallet.schemas.account import (
    AccountResponse,
    QRPayloadResponse,
    QRResolveRequest,
    RecipientResponse,
)
from wallet.services.transfer_service import TransferEngine

router = APIRouter()

@router.get("/me", response_model=AccountResponse)
async def get_my_account(
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Get current account and balance"""
    account = await engine.get_account(current_account_id)
    return AccountResponse.from_account(account)

@router.get("/me/receive-qr", response_model=QRPayloadResponse)
async def get_receive_qr(
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Payload to render as the receive-funds QR code"""
    return QRPayloadResponse(payload=await engine.receive_payload(current_account_id))

@router.get("/resolve", response_model=RecipientResponse)
async def resolve_recipient(
    identifier: str = Query(..., min_length=1, description="Account id, @handle or handle"),
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Find a recipient before asking for an amount"""
    account = await engine.resolve_recipient(identifier)
    return RecipientResponse.from_account(account)

@router.post("/resolve-qr", response_model=RecipientResponse)
async def resolve_qr_recipient(
    body: QRResolveRequest,
    current_account_id: str = Depends(get_current_account_id),
    engine: TransferEngine = Depends(get_transfer_engine)
):
    """Find the recipient encoded in a scanned QR payload"""
    account = await engine.resolve_qr_recipient(body.payload)
    return RecipientResponse.from_account(account)
