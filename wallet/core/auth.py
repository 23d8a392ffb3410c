from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from wallet.core.config import settings

security = HTTPBearer()

def create_access_token(account_id: str, expires_delta: timedelta | None = None) -> str:
    """Create JWT access token (the auth service issues these in production)."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": account_id,
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp())
    }

    encoded_jwt = jwt.encode(
        payload,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt

async def get_current_account_id(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """Get the caller's account id from the JWT subject."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        raise credentials_exception

    account_id = payload.get("sub")
    if not account_id:
        raise credentials_exception
    return str(account_id).lower()
