from ehr_portal.schemas.common import CamelModel


class AppointmentStats(CamelModel):
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0


class DashboardStats(CamelModel):
    total_patients: int
    total_doctors: int
    new_members_this_month: int
    total_appointments: int
    total_records: int
    appointment_stats: AppointmentStats
