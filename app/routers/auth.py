import logging
import os
from uuid import uuid4

from dependencies import get_current_user, get_token, client_country, client_ip
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from models.Blacklisted_tokens_model import BlacklistedToken
from models.device_model import AllowedDevice, PendingDevice, LoginHistory

from schemas.user_schema import UserCreate, UserLogin, LoginResponse, MeResponse, MessageResponse
from models.user_model import User
from sqlalchemy.orm import Session
from database import get_db
from datetime import datetime, timezone
from sqlalchemy import func
from starlette.responses import JSONResponse
from utils.auth import hash_password, verify_password, create_access_token, decode_access_token
from jose import JWTError, ExpiredSignatureError

logger = logging.getLogger(__name__)

router = APIRouter()

SESSION_MAX_AGE = 60 * 60


def _secure_cookies():
    return os.getenv("ENV", "development") == "production"


@router.post("/register", summary="new user registration", response_model=MessageResponse,
             description=
             """
                Creates a new user based on the data provided. The email address must be unique,
                and the password is stored in hashed form. The account configured as ADMIN_EMAIL
                is registered with the admin role.
             """,
             responses={
                 400: {"description": "User already exists"},
                 422: {"description": "password does not meet the requirements"},
                 201: {"description": "User created"},
             },
             status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(func.lower(User.email) == func.lower(user.email)).first()
    if existing_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    admin_email = os.getenv("ADMIN_EMAIL", "")
    role = "admin" if admin_email and user.email.lower() == admin_email.lower() else "user"

    new_user = User(
        name=user.name,
        email=user.email,
        password_hash=hash_password(user.password),
        role=role,
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered user %s as %s", new_user.id, role)

    return {"detail": f"User registered successfully as {role}"}


def login_for_role(credentials: UserLogin, request: Request, response: Response, db: Session, role: str):
    db_user = db.query(User).filter(func.lower(User.email) == func.lower(credentials.email)).first()

    if not db_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    if db_user.role != role:
        logger.warning("Wrong login portal for user %s: expected %s, found %s", db_user.id, role, db_user.role)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail=f"Access denied. Use /{db_user.role}/login instead.")

    if not verify_password(credentials.password, db_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent", "Unknown")
    country = client_country(request)
    device_token = credentials.device_token or str(uuid4())

    allowed = db.query(AllowedDevice).filter(AllowedDevice.user_id == db_user.id,
                                             AllowedDevice.device_token == device_token).first()
    if not allowed:
        pending = db.query(PendingDevice).filter(PendingDevice.user_id == db_user.id,
                                                 PendingDevice.device_token == device_token).first()
        if not pending:
            logger.info("Recording new device for user %s", db_user.id)
            db.add(PendingDevice(user_id=db_user.id, device_token=device_token, ip_address=ip_address,
                                 user_agent=user_agent, country=country, approved=False))

    db.add(LoginHistory(user_id=db_user.id, device_token=device_token, ip_address=ip_address,
                        user_agent=user_agent, country=country))

    db_user.last_login = datetime.now(timezone.utc)
    db_user.ip_address = ip_address
    db_user.user_agent = user_agent
    db_user.country = country
    db_user.device_token = device_token
    db.commit()
    db.refresh(db_user)

    token = create_access_token({"sub": str(db_user.id), "role": db_user.role})

    response.set_cookie("jwt", token, max_age=SESSION_MAX_AGE, httponly=True,
                        secure=_secure_cookies(), samesite="lax")
    response.set_cookie("deviceToken", device_token, max_age=SESSION_MAX_AGE, httponly=True,
                        secure=_secure_cookies(), samesite="lax")

    return {"access_token": token, "token_type": "bearer", "user": db_user}


@router.post("/login", response_model=LoginResponse, summary="User login to account",
             description="""
                User logs into the account with email and password.
                Returns a JWT access token and the device token bound to the session,
                both are also set as cookies. Admin accounts must use /admin/login.
             """,
             responses={
                 400: {"description": "Invalid credentials"},
                 403: {"description": "Access denied. Use /admin/login instead."}
             })
def login_user(credentials: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    return login_for_role(credentials, request, response, db, "user")


@router.post("/admin/login", response_model=LoginResponse, summary="Admin login to account",
             responses={
                 400: {"description": "Invalid credentials"},
                 403: {"description": "Access denied. Use /user/login instead."}
             })
def login_admin(credentials: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    return login_for_role(credentials, request, response, db, "admin")


@router.post("/logout",
             response_model=MessageResponse,
             summary="Logging out of your user account",
             description="""
                            Used to log the user out of the account and block the active JWT token
                          """,
             responses={
                 401: {"description": "Token has already expired",
                       "content": {
                           "application/json": {
                               "examples": {
                                   "invalid": {"value": {"detail": "Token is invalid"}},
                                   "expired": {"value": {"detail": "Token has already expired"}},
                               }
                           }
                       }
                       },
                 200: {"description": "User logged out successfully",
                       "content": {
                           "application/json": {
                               "examples": {
                                   "logout": {"value": {"detail": "User logged out successfully"}},
                                    "already_logged_out": {"value": {"detail": "User already logged out"}}
                               }}
                       }
                       }
             })
def logout(access_token: str = Depends(get_token), db: Session = Depends(get_db)):
    try:
        decoded_payload = decode_access_token(access_token)
    except ExpiredSignatureError:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": "Token has already expired"})
    except JWTError:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": "Token is invalid"})

    existing = db.query(BlacklistedToken).filter(BlacklistedToken.token == access_token).first()
    if existing:
        response = JSONResponse(status_code=status.HTTP_200_OK, content={"detail": "User already logged out"})
    else:
        db.add(BlacklistedToken(
            user_id=int(decoded_payload.get("sub")),
            token=access_token,
            expires_at=datetime.fromtimestamp(decoded_payload.get("exp"), tz=timezone.utc),
        ))
        db.commit()
        response = JSONResponse(status_code=status.HTTP_200_OK, content={"detail": "User logged out successfully"})

    response.delete_cookie("jwt")
    response.delete_cookie("deviceToken")
    return response


@router.get("/me", response_model=MeResponse, summary="Displaying user information",
            responses={
                401: {"description": "Not authenticated"}
            })
def get_me(user: User = Depends(get_current_user)):
    return {"user": user}
