from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from uuid import uuid4
from jose import JWTError, jwt
import os

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def secret_key():
    return os.getenv("SECRET_KEY", "change-me")

def algorithm():
    return os.getenv("ALGORITHM", "HS256")

def hash_password(password: str):
    return pwd_context.hash(password)

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_delta: timedelta = timedelta(hours=1)):
    to_encode = data.copy()
    to_encode.setdefault("jti", str(uuid4()))
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": int(expire.timestamp()), "typ": "access"})
    return jwt.encode(to_encode, secret_key(), algorithm=algorithm())

def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, secret_key(), algorithms=[algorithm()])
    if payload.get("typ") != "access":
        raise JWTError("Not an access token")
    return payload
