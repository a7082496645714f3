"""
Pydantic schemas for registration and login.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from society.fsm.states import UserRole


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    # Indian mobile numbers
    phone: str = Field(..., pattern=r"^[6-9]\d{9}$")
    flat_number: str = Field(..., min_length=1, max_length=10)
    wing: Optional[str] = Field(None, max_length=5)
    floor: Optional[int] = Field(None, ge=0)

    @field_validator("name", "flat_number", "wing")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    phone: str
    flat_number: str
    wing: Optional[str] = None
    floor: Optional[int] = None
    role: UserRole
    is_email_verified: bool
    last_login: Optional[datetime] = None


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: UserOut
    token: str
