from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from ehr_portal.config import Settings, get_app_settings
from ehr_portal.database import get_db, get_sessionmaker
from ehr_portal.exceptions import Forbidden
from ehr_portal.models.user import Role
from ehr_portal.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserMessageResponse, UserResponse
from ehr_portal.services.ledger_service import LedgerMirror, get_ledger
from ehr_portal.services.user_service import user_service

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
    settings: Settings = Depends(get_app_settings),
):
    """Exchange email + password for a one-hour bearer token."""
    token, profile = await user_service.login(sessionmaker, settings, body.email.strip(), body.password)
    return LoginResponse(token=token, user=profile)


@router.post("/registerPatient", response_model=UserMessageResponse)
async def register_patient(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    ledger: LedgerMirror = Depends(get_ledger),
):
    user = await user_service.register(db, body, Role.PATIENT, settings)
    background_tasks.add_task(ledger.add_patient, user.wallet_address)
    return UserMessageResponse(message="Patient registered successfully", user=UserResponse.model_validate(user))


@router.post("/registerDoctor", response_model=UserMessageResponse)
async def register_doctor(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    ledger: LedgerMirror = Depends(get_ledger),
):
    user = await user_service.register(db, body, Role.DOCTOR, settings)
    background_tasks.add_task(ledger.add_doctor, user.wallet_address)
    return UserMessageResponse(message="Doctor registered successfully", user=UserResponse.model_validate(user))


@router.post("/registerAdmin")
async def register_admin():
    raise Forbidden("Admin registration is disabled. Only predefined admin accounts exist.")
