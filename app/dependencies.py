import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from models.Blacklisted_tokens_model import BlacklistedToken
from sqlalchemy.orm import Session
from database import get_db
from models.user_model import User
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from utils.auth import decode_access_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


def get_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> str:
    token = credentials.credentials if credentials else request.cookies.get("jwt")
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_current_user(request: Request, token: str = Depends(get_token), db: Session = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    db_blacklisted_tokens = db.query(BlacklistedToken).filter(token == BlacklistedToken.token).first()

    if db_blacklisted_tokens:
        raise HTTPException(status_code=400, detail="Token has been revoked, please login again")

    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")

    device_token = request.headers.get("X-Device-Token") or request.cookies.get("deviceToken")
    if not device_token:
        logger.warning("No device token presented by user %s", user.id)
    elif device_token != user.device_token:
        logger.warning("Device mismatch for user %s", user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized device. Please log in again.")

    return user


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning("Admin access denied for user %s", user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access Denied. Admins only.")
    return user


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "Unknown"


def client_country(request: Request) -> str:
    return request.headers.get("CF-IPCountry") or "Unknown"
