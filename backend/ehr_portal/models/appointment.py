import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ehr_portal.database import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Allowed status moves; completed and cancelled are terminal.
TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


def _enum_column(enum_cls):
    return Enum(enum_cls, native_enum=False, values_callable=lambda e: [m.value for m in e])


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    # Plain references: deleting an account leaves its appointments in place.
    patient_id = Column(Integer, nullable=False, index=True)
    doctor_id = Column(Integer, nullable=False, index=True)
    patient_wallet_address = Column(String(100), nullable=False)
    doctor_wallet_address = Column(String(100), nullable=False)
    health_problem = Column(Text, nullable=False)
    appointment_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(_enum_column(AppointmentStatus), nullable=False, default=AppointmentStatus.PENDING, index=True)
    attached_files = Column(JSON, default=list)  # [{"fileName", "fileHash", "uploadDate"}]
    doctor_notes = Column(Text)
    doctor_message = Column(Text)
    doctor_response_date = Column(DateTime(timezone=True))
    priority = Column(_enum_column(Priority), nullable=False, default=Priority.MEDIUM)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    patient = relationship(
        "User",
        primaryjoin="foreign(Appointment.patient_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )
    doctor = relationship(
        "User",
        primaryjoin="foreign(Appointment.doctor_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )
