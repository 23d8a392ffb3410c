"""
Receive-funds QR payload.

The QR component encodes a small JSON object:

    {"type": "lapore-finance-transfer", "userId": "...", "username": "...", "timestamp": 1700000000000}

Only the account id matters for a transfer. Freshness of the timestamp
is left to callers that want to enforce it.
"""
import json
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wallet.core.config import settings
from wallet.core.errors import InvalidQRPayloadError


class QRPayload(BaseModel):
    type: str
    user_id: str = Field(alias="userId", min_length=1)
    username: Optional[str] = None
    timestamp: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)


def build_receive_payload(account_id: str, handle: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
    """Serialize the payload shown as a QR code on the receive screen."""
    payload = QRPayload(
        type=settings.QR_PAYLOAD_TYPE,
        user_id=account_id,
        username=handle,
        timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
    )
    return json.dumps(payload.model_dump(by_alias=True))


def parse_payload(raw: str) -> QRPayload:
    """
    Parse a scanned payload.

    Raises InvalidQRPayloadError if the text is not JSON, has the wrong
    type discriminator, or carries no account id.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidQRPayloadError()

    if not isinstance(data, dict) or data.get("type") != settings.QR_PAYLOAD_TYPE:
        raise InvalidQRPayloadError()

    try:
        return QRPayload.model_validate(data)
    except ValidationError:
        raise InvalidQRPayloadError()
