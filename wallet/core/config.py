from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # API Settings
    PROJECT_NAME: str = "Wallet API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Peer-to-peer wallet transfers, recipient lookup and history"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017/?replicaSet=rs0"
    DATABASE_NAME: str = "wallet"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    MONGODB_TIMEOUT_MS: int = 10000

    # Transfers
    CURRENCY: str = "PHP"
    # "transaction" needs a replica set; "compensating" works on a standalone server
    TRANSFER_STRATEGY: str = "transaction"
    NOTE_MAX_LENGTH: int = 280
    HISTORY_DEFAULT_LIMIT: int = 50
    HISTORY_MAX_LIMIT: int = 200
    QR_PAYLOAD_TYPE: str = "lapore-finance-transfer"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # JWT (tokens are issued by the auth service, verified here)
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
