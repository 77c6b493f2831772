from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import get_current_user, UserPrincipal
from ehr_portal.database import get_db
from ehr_portal.schemas.appointment import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentMessageResponse,
    AppointmentRecordsResponse,
    AppointmentResponse,
    AppointmentSummary,
    DoctorResponseRequest,
    StatusUpdate,
)
from ehr_portal.schemas.record import PatientSummary, RecordResponse
from ehr_portal.services.appointment_service import appointment_service

router = APIRouter()


@router.post("", response_model=AppointmentMessageResponse)
async def create_appointment(
    data: AppointmentCreate,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await appointment_service.create(db, current_user, data)
    return AppointmentMessageResponse(
        message="Appointment scheduled successfully",
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Permission filter: patients see their own, doctors their assigned, admin all
    appointments = await appointment_service.list_for(db, current_user)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments]
    )


@router.put("/{appointment_id}/status", response_model=AppointmentMessageResponse)
async def update_appointment_status(
    appointment_id: str,
    data: StatusUpdate,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await appointment_service.update_status(db, current_user, appointment_id, data.status)
    return AppointmentMessageResponse(
        message="Appointment status updated successfully",
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.put("/{appointment_id}/response", response_model=AppointmentMessageResponse)
async def add_doctor_response(
    appointment_id: str,
    data: DoctorResponseRequest,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await appointment_service.respond(db, current_user, appointment_id, data)
    return AppointmentMessageResponse(
        message="Doctor response added successfully",
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.get("/{appointment_id}/patient-records", response_model=AppointmentRecordsResponse)
async def get_patient_records_for_appointment(
    appointment_id: str,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records, patient, appointment = await appointment_service.patient_records_for(db, current_user, appointment_id)
    return AppointmentRecordsResponse(
        records=[RecordResponse.model_validate(r) for r in records],
        patient=PatientSummary.model_validate(patient),
        appointment=AppointmentSummary.model_validate(appointment),
    )
