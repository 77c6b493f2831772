from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.models.appointment import Appointment, AppointmentStatus
from ehr_portal.models.record import MedicalRecord
from ehr_portal.models.user import User, Role
from ehr_portal.schemas.dashboard import AppointmentStats, DashboardStats


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class DashboardService:
    async def compute_stats(self, db: AsyncSession, now: Optional[datetime] = None) -> DashboardStats:
        total_patients = await db.scalar(select(func.count(User.id)).where(User.role == Role.PATIENT)) or 0
        total_doctors = await db.scalar(select(func.count(User.id)).where(User.role == Role.DOCTOR)) or 0
        new_members = await db.scalar(
            select(func.count(User.id)).where(
                User.role.in_([Role.PATIENT, Role.DOCTOR]),
                User.created_at >= start_of_month(now),
            )
        ) or 0
        total_appointments = await db.scalar(select(func.count(Appointment.id))) or 0
        total_records = await db.scalar(select(func.count(MedicalRecord.id))) or 0

        by_status = await db.execute(
            select(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status)
        )
        counts = {status.value: 0 for status in AppointmentStatus}
        for status, count in by_status.all():
            counts[AppointmentStatus(status).value] = count

        return DashboardStats(
            total_patients=total_patients,
            total_doctors=total_doctors,
            new_members_this_month=new_members,
            total_appointments=total_appointments,
            total_records=total_records,
            appointment_stats=AppointmentStats(**counts),
        )


dashboard_service = DashboardService()
