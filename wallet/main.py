from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wallet.api.v1.api import api_router
from wallet.core.config import settings
from wallet.core.errors import Outcome, WalletError
from wallet.core.logging_config import get_logger, setup_logging
from wallet.db.mongo import close_mongo_connection, connect_to_mongo
from wallet.schemas.transfer import ErrorDetail, ErrorResponse
from wallet.services.transfer_service import TransferEngine

# Configure logging before creating the app
setup_logging()
logger = get_logger("wallet")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = await connect_to_mongo()
    app.state.transfer_engine = TransferEngine(db)
    logger.info("Wallet API starting up (strategy=%s)", app.state.transfer_engine.strategy.value)
    try:
        yield
    finally:
        app.state.transfer_engine = None
        await close_mongo_connection()
        logger.info("Wallet API shutting down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WalletError)
async def wallet_error_handler(request: Request, exc: WalletError):
    if exc.outcome is Outcome.UNCONFIRMED:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.info("%s %s -> %s", request.method, request.url.path, exc.code)
    body = ErrorResponse(error=ErrorDetail(**exc.to_dict()))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.get("/")
async def root():
    return {"message": "Welcome to Wallet API"}


@app.get("/api/health")
async def health():
    return {"status": "healthy"}


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
