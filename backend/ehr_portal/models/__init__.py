from ehr_portal.models.user import User, Role
from ehr_portal.models.appointment import Appointment, AppointmentStatus, Priority
from ehr_portal.models.record import MedicalRecord

__all__ = ["User", "Role", "Appointment", "AppointmentStatus", "Priority", "MedicalRecord"]
