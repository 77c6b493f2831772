from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import get_current_user, require_roles, UserPrincipal
from ehr_portal.config import Settings, get_app_settings
from ehr_portal.database import get_db
from ehr_portal.models.user import Role
from ehr_portal.schemas.common import MessageResponse
from ehr_portal.schemas.user import (
    ChangePasswordRequest,
    DoctorListResponse,
    UserListResponse,
    UserMessageResponse,
    UserResponse,
    UserUpdate,
)
from ehr_portal.services.user_service import user_service

router = APIRouter()
admin_only = require_roles(Role.ADMIN)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[Role] = Query(None, description="Filter: Patient, Doctor, Admin"),
    current_user: UserPrincipal = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db, role)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: UserPrincipal = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, current_user, user_id)
    return MessageResponse(message="User deleted successfully")


@router.put("/users/{user_id}", response_model=UserMessageResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    message, user = await user_service.update_user(db, current_user, user_id, data, settings)
    return UserMessageResponse(message=message, user=UserResponse.model_validate(user))


@router.put("/users/{user_id}/change-password", response_model=MessageResponse)
async def change_password(
    user_id: str,
    data: ChangePasswordRequest,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, current_user, user_id, data)
    return MessageResponse(message="Password changed successfully")


@router.get("/doctors", response_model=DoctorListResponse)
async def list_doctors(
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Doctors a patient can book with, by name."""
    doctors = await user_service.list_doctors(db)
    return DoctorListResponse(doctors=[UserResponse.model_validate(d) for d in doctors])
