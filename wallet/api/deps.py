from fastapi import Request

from wallet.core.errors import StoreUnavailableError
from wallet.services.transfer_service import TransferEngine


def get_transfer_engine(request: Request) -> TransferEngine:
    """The engine built at start-up, bound to the open Mongo client."""
    engine = getattr(request.app.state, "transfer_engine", None)
    if engine is None:
        raise StoreUnavailableError()
    return engine
