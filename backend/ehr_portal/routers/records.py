from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import get_current_user, UserPrincipal
from ehr_portal.database import get_db
from ehr_portal.schemas.record import (
    DoctorNoteUpdate,
    NoteMessageResponse,
    PatientRecordsResponse,
    PatientSummary,
    RecordCreate,
    RecordListResponse,
    RecordMessageResponse,
    RecordResponse,
)
from ehr_portal.services.ledger_service import LedgerMirror, get_ledger
from ehr_portal.services.record_service import record_service

router = APIRouter()


@router.post("/uploadRecord", response_model=RecordMessageResponse)
async def upload_record(
    data: RecordCreate,
    background_tasks: BackgroundTasks,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerMirror = Depends(get_ledger),
):
    record = await record_service.upload(db, current_user, data)
    background_tasks.add_task(ledger.upload_record, record.file_hash, record.file_name, data.date.isoformat())
    return RecordMessageResponse(message="Record uploaded successfully", record=RecordResponse.model_validate(record))


@router.get("/records", response_model=RecordListResponse)
async def list_own_records(
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await record_service.list_own(db, current_user)
    return RecordListResponse(records=[RecordResponse.model_validate(r) for r in records])


@router.get("/records/{patient_address}", response_model=PatientRecordsResponse)
async def list_patient_records(
    patient_address: str,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records, patient = await record_service.list_for(db, current_user, patient_address)
    return PatientRecordsResponse(
        records=[RecordResponse.model_validate(r) for r in records],
        patient=PatientSummary.model_validate(patient),
    )


@router.post("/addNotes", response_model=NoteMessageResponse)
async def add_doctor_note(
    data: DoctorNoteUpdate,
    current_user: UserPrincipal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await record_service.set_doctor_note(db, current_user, data.record_id, data.notes)
    return NoteMessageResponse(message="Notes updated successfully", document=RecordResponse.model_validate(record))
