import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import UserPrincipal
from ehr_portal.exceptions import Forbidden, InvalidArgument, NotFound
from ehr_portal.models.appointment import Appointment, AppointmentStatus, TRANSITIONS
from ehr_portal.models.record import MedicalRecord
from ehr_portal.models.user import User, Role
from ehr_portal.schemas.appointment import AppointmentCreate, DoctorResponseRequest
from ehr_portal.services.user_service import parse_id

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes (and SQLite round trips) are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_status(value: str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise InvalidArgument("Invalid status")


def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Re-asserting the current status is allowed; otherwise the edge must exist."""
    if current == target or target in TRANSITIONS[current]:
        return
    raise InvalidArgument(f"Cannot change appointment status from {current.value} to {target.value}")


class AppointmentService:
    async def _load(self, db: AsyncSession, appointment_id: str) -> Appointment:
        pk = parse_id(appointment_id)
        appointment = None
        if pk is not None:
            appointment = await db.scalar(
                select(Appointment)
                .where(Appointment.id == pk)
                .execution_options(populate_existing=True)
            )
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    def _require_assigned_doctor(self, principal: UserPrincipal, appointment: Appointment, action: str) -> None:
        # Admins get no override here: only the doctor on the appointment may act on it.
        if principal.role is not Role.DOCTOR or not principal.is_user(appointment.doctor_id):
            raise Forbidden(f"You can only {action} your own appointments")

    async def create(self, db: AsyncSession, principal: UserPrincipal, data: AppointmentCreate) -> Appointment:
        if principal.role is not Role.PATIENT:
            raise Forbidden("Only patients can create appointments")
        if not data.health_problem or not data.health_problem.strip():
            raise InvalidArgument("Doctor, health problem, and appointment date are required")

        doctor_pk = parse_id(data.doctor_id)
        doctor = await db.get(User, doctor_pk) if doctor_pk is not None else None
        if not doctor or doctor.role is not Role.DOCTOR:
            raise InvalidArgument("Doctor not found")

        appointment_date = as_utc(data.appointment_date)
        if appointment_date <= datetime.now(timezone.utc):
            raise InvalidArgument("Appointment date must be in the future")

        now = datetime.now(timezone.utc).isoformat()
        appointment = Appointment(
            patient_id=int(principal.user_id),
            doctor_id=doctor.id,
            patient_wallet_address=principal.wallet_address,
            doctor_wallet_address=doctor.wallet_address,
            health_problem=data.health_problem.strip(),
            appointment_date=appointment_date,
            status=AppointmentStatus.PENDING,
            attached_files=[
                {
                    "fileName": f.file_name,
                    "fileHash": f.file_hash,
                    "uploadDate": f.upload_date.isoformat() if f.upload_date else now,
                }
                for f in data.attached_files
            ],
            priority=data.priority,
        )
        db.add(appointment)
        await db.commit()
        logger.info("Appointment %s booked: patient=%s doctor=%s", appointment.id, principal.user_id, doctor.id)
        return await self._load(db, str(appointment.id))

    async def list_for(self, db: AsyncSession, principal: UserPrincipal) -> list[Appointment]:
        query = select(Appointment).order_by(Appointment.created_at.desc(), Appointment.id.desc())
        if principal.role is Role.PATIENT:
            query = query.where(Appointment.patient_id == parse_id(principal.user_id))
        elif principal.role is Role.DOCTOR:
            query = query.where(Appointment.doctor_id == parse_id(principal.user_id))
        elif principal.role is not Role.ADMIN:
            raise Forbidden("Unauthorized")
        result = await db.execute(query)
        return list(result.scalars().all())

    async def update_status(
        self, db: AsyncSession, principal: UserPrincipal, appointment_id: str, new_status: str
    ) -> Appointment:
        if principal.role is not Role.DOCTOR:
            raise Forbidden("Only doctors can update appointment status")
        appointment = await self._load(db, appointment_id)
        self._require_assigned_doctor(principal, appointment, "update")
        target = parse_status(new_status)
        check_transition(appointment.status, target)

        previous = appointment.status
        appointment.status = target
        await db.commit()
        logger.info("Appointment %s: %s -> %s", appointment_id, previous.value, target.value)
        return await self._load(db, appointment_id)

    async def respond(
        self, db: AsyncSession, principal: UserPrincipal, appointment_id: str, data: DoctorResponseRequest
    ) -> Appointment:
        if principal.role is not Role.DOCTOR:
            raise Forbidden("Only doctors can add responses")
        appointment = await self._load(db, appointment_id)
        self._require_assigned_doctor(principal, appointment, "respond to")

        if data.doctor_notes:
            appointment.doctor_notes = data.doctor_notes
        if data.doctor_message:
            appointment.doctor_message = data.doctor_message
        appointment.doctor_response_date = datetime.now(timezone.utc)
        # the first response confirms a pending appointment
        if appointment.status is AppointmentStatus.PENDING:
            appointment.status = AppointmentStatus.CONFIRMED
        await db.commit()
        return await self._load(db, appointment_id)

    async def patient_records_for(
        self, db: AsyncSession, principal: UserPrincipal, appointment_id: str
    ) -> tuple[list[MedicalRecord], User, Appointment]:
        if principal.role not in (Role.DOCTOR, Role.ADMIN):
            raise Forbidden("Only doctors and admins can access patient records")
        appointment = await self._load(db, appointment_id)
        if principal.role is Role.DOCTOR and not principal.is_user(appointment.doctor_id):
            raise Forbidden("You can only access records for your own appointments")

        patient: Optional[User] = appointment.patient
        if patient is None or patient.role is not Role.PATIENT:
            raise NotFound("Patient not found")
        result = await db.execute(
            select(MedicalRecord)
            .where(MedicalRecord.patient_address == patient.wallet_address)
            .order_by(MedicalRecord.date.desc(), MedicalRecord.id.desc())
        )
        return list(result.scalars().all()), patient, appointment


appointment_service = AppointmentService()
