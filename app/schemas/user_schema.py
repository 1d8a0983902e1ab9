import string

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from schemas.base import CamelModel


def password_validator(value: str) -> str:
    errors = []
    if len(value) < 8:
       errors.append("Password must be at least 8 characters long")
    if not any(char.isdigit() for char in value):
        errors.append("Password must contain at least one digit")
    if not any(char.isupper() for char in value):
        errors.append("Password must contain at least one uppercase letter")
    if not any(char.islower() for char in value):
        errors.append("Password must contain at least one lowercase letter")
    if not any(char in string.punctuation for char in value):
        errors.append("Password must contain at least one special character")

    if errors:
        raise ValueError("; ".join(errors))
    return value


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, example="Jane", description="Display name of the user")
    email: EmailStr = Field(..., example="user@example.com", description="Unique email of the user")
    password: str = Field(..., example="Password1!", description="Password for the user account")

    _validate_password = field_validator("password")(password_validator)

class UserLogin(CamelModel):
    email: EmailStr = Field(..., example="user@example.com", description="Unique email of the user")
    password: str = Field(..., example="Password1!", description="Password for the user account")
    device_token: Optional[str] = Field(None, example="6f1c1f9e-0c55-4a4e-9b0b-0c7d2b0d9a11",
                                        description="Device token from a previous login, a new one is issued if omitted")

class UserSummary(CamelModel):
    id: int = Field(..., example=1, description="User identification number")
    name: str = Field(..., example="Jane")
    email: EmailStr = Field(..., example="user@example.com")
    role: str = Field(..., example="user", description="Either 'user' or 'admin'")
    device_token: Optional[str] = Field(None, description="Device token bound to the current session")

class UserResponse(CamelModel):
    id: int = Field(..., example=1, description="User identification number")
    name: str = Field(..., example="Jane")
    email: EmailStr = Field(..., example="user@example.com", description="User's email address")
    role: str = Field(..., example="user")
    country: Optional[str] = Field(None, example="DE")
    created_at: Optional[datetime] = Field(None, example="2025-09-03T12:34:56Z",
                                           description="Date of creation of the user account")
    last_login: Optional[datetime] = Field(None, example="2025-09-03T12:34:56Z",
                                           description="Date of the user's last login")
    download_limit: float = Field(..., example=4.5, description="Remaining download quota in GB")
    total_purchased_storage: float = Field(..., example=10.0, description="Total GB purchased over time")
    total_downloads: float = Field(..., example=5.5, description="Total GB downloaded")

class MeResponse(CamelModel):
    user: UserResponse

class LoginResponse(CamelModel):
    access_token: str = Field(..., example="eyJhbGciOiJIUzI1NiIsInR", description="JWT access token")
    token_type: str = Field(..., example="bearer", description="Type of the token")
    user: UserSummary

class MessageResponse(BaseModel):
    detail: str = Field(..., example="Operation completed successfully",
                        description="Message displayed after the command has been successfully executed ")
    class Config:
        from_attributes = True

class DeviceRequest(CamelModel):
    device_token: Optional[str] = Field(None, example="6f1c1f9e-0c55-4a4e-9b0b-0c7d2b0d9a11")

class DevicesResponse(CamelModel):
    allowed_devices: list[str]
