# auth_service/schemas.py
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

Username = Annotated[str, Field(min_length=3, max_length=50)]
NewPassword = Annotated[str, Field(min_length=8, max_length=100)]


def normalize_email(email: str) -> str:
    # One policy for every write and lookup: trimmed, lower-cased
    return email.strip().lower()


# --- Session claims (never persisted) ---
class SessionClaims(BaseModel):
    account_id: int
    email: str
    is_admin: bool
    iat: int
    exp: int
    jti: Optional[str] = None


# --- Requests ---
class RegisterData(BaseModel):
    email: EmailStr
    username: Username
    password: NewPassword
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginData(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordData(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str
    new_password: NewPassword


class PasswordChange(BaseModel):
    current_password: str
    new_password: NewPassword


class ProfileUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""

    username: Optional[Username] = None
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("username", "email")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class AdminCreateData(RegisterData):
    is_admin: bool = False
    is_active: bool = True
    email_verified: bool = False


class AdminUpdateData(ProfileUpdate):
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None
    email_verified: Optional[bool] = None

    @field_validator("is_admin", "is_active", "email_verified")
    @classmethod
    def _flag_not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


# --- Responses ---
class PublicAccount(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_admin: bool
    is_active: bool
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuthResponse(BaseModel):
    account: PublicAccount
    token: str
    token_type: str = "bearer"


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class PaginatedAccounts(BaseModel):
    users: List[PublicAccount]
    total: int
    page: int
    limit: int
    total_pages: int
