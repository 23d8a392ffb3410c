from fastapi import APIRouter
from wallet.api.v1.endpoints import accounts, transfers

api_router = APIRouter()

api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(transfers.router, prefix="/transfers", tags=["transfers"])
