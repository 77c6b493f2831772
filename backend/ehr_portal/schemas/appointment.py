from datetime import datetime
from typing import Optional
from pydantic import Field
from ehr_portal.models.appointment import AppointmentStatus, Priority
from ehr_portal.schemas.common import CamelModel, StrId
from ehr_portal.schemas.record import PatientSummary, RecordResponse


class AttachedFile(CamelModel):
    file_name: str = Field(..., min_length=1)
    file_hash: str = Field(..., min_length=1)
    upload_date: Optional[datetime] = None


class AppointmentCreate(CamelModel):
    doctor_id: StrId
    health_problem: str = Field(..., max_length=1000)
    appointment_date: datetime
    priority: Priority = Priority.MEDIUM
    attached_files: list[AttachedFile] = []


class StatusUpdate(CamelModel):
    status: str = ""


class DoctorResponseRequest(CamelModel):
    doctor_message: Optional[str] = Field(default=None, max_length=1000)
    doctor_notes: Optional[str] = Field(default=None, max_length=2000)


class PartySummary(CamelModel):
    id: StrId
    name: str
    email: str
    wallet_address: str


class AppointmentResponse(CamelModel):
    id: StrId
    patient_id: StrId
    doctor_id: StrId
    patient: Optional[PartySummary] = None
    doctor: Optional[PartySummary] = None
    patient_wallet_address: str
    doctor_wallet_address: str
    health_problem: str
    appointment_date: datetime
    status: AppointmentStatus
    attached_files: list[AttachedFile] = []
    doctor_notes: Optional[str] = None
    doctor_message: Optional[str] = None
    doctor_response_date: Optional[datetime] = None
    priority: Priority
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentListResponse(CamelModel):
    appointments: list[AppointmentResponse]


class AppointmentMessageResponse(CamelModel):
    message: str
    appointment: AppointmentResponse


class AppointmentSummary(CamelModel):
    id: StrId
    health_problem: str
    appointment_date: datetime
    status: AppointmentStatus
    priority: Priority


class AppointmentRecordsResponse(CamelModel):
    records: list[RecordResponse]
    patient: PatientSummary
    appointment: AppointmentSummary
