from datetime import datetime
from typing import Optional
from pydantic import Field
from ehr_portal.models.user import Role
from ehr_portal.schemas.common import CamelModel, StrId


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=1, max_length=320)
    wallet_address: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class UserUpdate(CamelModel):
    role: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    wallet_address: Optional[str] = Field(default=None, max_length=100)


class ChangePasswordRequest(CamelModel):
    current_password: str = ""
    new_password: str = ""


class UserResponse(CamelModel):
    id: StrId
    name: str
    email: str
    role: Role
    wallet_address: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserListResponse(CamelModel):
    users: list[UserResponse]


class DoctorListResponse(CamelModel):
    doctors: list[UserResponse]


class UserMessageResponse(CamelModel):
    message: str
    user: UserResponse


class LoginResponse(CamelModel):
    message: str = "Login successful"
    token: str
    user: UserResponse
