from datetime import datetime
from typing import Optional
from pydantic import Field
from ehr_portal.schemas.common import CamelModel, StrId


class RecordCreate(CamelModel):
    patient_address: str = Field(..., min_length=1)
    file_hash: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: datetime


class DoctorNoteUpdate(CamelModel):
    record_id: StrId
    notes: str = ""


class RecordResponse(CamelModel):
    id: StrId
    patient_address: str
    file_hash: str
    file_name: str
    description: Optional[str] = ""
    date: datetime
    doctor_note: Optional[str] = ""
    uploaded_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecordListResponse(CamelModel):
    records: list[RecordResponse]


class RecordMessageResponse(CamelModel):
    message: str
    record: RecordResponse


class NoteMessageResponse(CamelModel):
    message: str
    document: RecordResponse


class PatientSummary(CamelModel):
    name: str
    email: str
    wallet_address: str


class PatientRecordsResponse(CamelModel):
    records: list[RecordResponse]
    patient: PatientSummary
