from datetime import datetime, timezone

from ehr_portal.services.dashboard_service import start_of_month

from conftest import PATIENT_A_WALLET, auth, tomorrow


def test_start_of_month():
    now = datetime(2025, 3, 17, 14, 5, 9, 123, tzinfo=timezone.utc)
    assert start_of_month(now) == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_empty_dashboard(client, admin_token):
    stats = client.get("/dashboard/stats", headers=auth(admin_token)).json()
    assert stats == {
        "totalPatients": 0,
        "totalDoctors": 0,
        "newMembersThisMonth": 0,
        "totalAppointments": 0,
        "totalRecords": 0,
        "appointmentStats": {"pending": 0, "confirmed": 0, "completed": 0, "cancelled": 0},
    }


def test_dashboard_counts(client, admin_token, appointment, patient_a, doctor_b, doctor_c):
    _, patient_token = patient_a
    _, doctor_token = doctor_b
    doctor_c_user, _ = doctor_c

    second = client.post(
        "/appointments",
        json={"doctorId": doctor_c_user["id"], "healthProblem": "Rash", "appointmentDate": tomorrow()},
        headers=auth(patient_token),
    ).json()["appointment"]
    client.put(f"/appointments/{appointment['id']}/status", json={"status": "confirmed"}, headers=auth(doctor_token))
    client.post(
        "/uploadRecord",
        json={"patientAddress": PATIENT_A_WALLET, "fileHash": "h1", "fileName": "a.pdf", "date": "2025-01-01T00:00:00Z"},
        headers=auth(patient_token),
    )

    stats = client.get("/dashboard/stats", headers=auth(admin_token)).json()
    assert stats["totalPatients"] == 1
    assert stats["totalDoctors"] == 2
    assert stats["newMembersThisMonth"] == 3
    assert stats["totalAppointments"] == 2
    assert stats["totalRecords"] == 1
    assert stats["appointmentStats"] == {"pending": 1, "confirmed": 1, "completed": 0, "cancelled": 0}
    assert second["status"] == "pending"


def test_dashboard_is_admin_only(client, patient_a, doctor_b):
    _, patient_token = patient_a
    _, doctor_token = doctor_b
    assert client.get("/dashboard/stats").status_code == 401
    assert client.get("/dashboard/stats", headers=auth(patient_token)).status_code == 403
    assert client.get("/dashboard/stats", headers=auth(doctor_token)).status_code == 403
