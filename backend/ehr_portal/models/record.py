from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from ehr_portal.database import Base


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_address = Column(String(100), nullable=False, index=True)
    file_hash = Column(String(500), nullable=False)
    file_name = Column(String(500), nullable=False)
    description = Column(Text, default="")
    date = Column(DateTime(timezone=True), nullable=False)
    doctor_note = Column(Text, default="")
    uploaded_by = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
