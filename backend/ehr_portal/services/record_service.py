import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import UserPrincipal
from ehr_portal.exceptions import Forbidden, NotFound
from ehr_portal.models.record import MedicalRecord
from ehr_portal.models.user import User, Role
from ehr_portal.schemas.record import RecordCreate
from ehr_portal.services.appointment_service import as_utc
from ehr_portal.services.user_service import user_service, parse_id

logger = logging.getLogger(__name__)


def _newest_first(query):
    return query.order_by(MedicalRecord.date.desc(), MedicalRecord.id.desc())


class RecordService:
    async def upload(self, db: AsyncSession, principal: UserPrincipal, data: RecordCreate) -> MedicalRecord:
        if principal.role is not Role.PATIENT or principal.wallet_address != data.patient_address:
            raise Forbidden("You can only upload records for your own wallet address")
        patient = await user_service.get_patient_by_wallet(db, data.patient_address)
        if not patient:
            raise NotFound("Patient not found")

        record = MedicalRecord(
            patient_address=data.patient_address,
            file_hash=data.file_hash,
            file_name=data.file_name,
            description=data.description or "",
            date=as_utc(data.date),
            uploaded_by=principal.wallet_address,
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        logger.info("Record %s stored for patient %s", record.id, patient.id)
        return record

    async def list_own(self, db: AsyncSession, principal: UserPrincipal) -> list[MedicalRecord]:
        if principal.role is not Role.PATIENT:
            raise Forbidden("Only patients can access their own records")
        result = await db.execute(
            _newest_first(select(MedicalRecord).where(MedicalRecord.patient_address == principal.wallet_address))
        )
        return list(result.scalars().all())

    async def list_for(
        self, db: AsyncSession, principal: UserPrincipal, patient_address: str
    ) -> tuple[list[MedicalRecord], User]:
        if principal.role not in (Role.DOCTOR, Role.ADMIN):
            raise Forbidden("Only doctors and admins can access patient records")
        # Records whose wallet no longer belongs to a Patient are not served.
        patient = await user_service.get_patient_by_wallet(db, patient_address)
        if not patient:
            raise NotFound("Patient not found")
        result = await db.execute(
            _newest_first(select(MedicalRecord).where(MedicalRecord.patient_address == patient_address))
        )
        return list(result.scalars().all()), patient

    async def set_doctor_note(
        self, db: AsyncSession, principal: UserPrincipal, record_id: str, note: str
    ) -> MedicalRecord:
        if principal.role not in (Role.DOCTOR, Role.ADMIN):
            raise Forbidden("Only doctors and admins can add notes to records")
        pk = parse_id(record_id)
        record = await db.get(MedicalRecord, pk) if pk is not None else None
        if not record:
            raise NotFound("Document not found")
        record.doctor_note = note or ""
        await db.commit()
        await db.refresh(record)
        logger.info("Doctor note on record %s updated by %s", record_id, principal.user_id)
        return record


record_service = RecordService()
