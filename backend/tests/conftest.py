import os

# ehr_portal.main builds a module-level app from the environment on import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./ehr_portal_import.db")
os.environ.setdefault("JWT_SECRET_KEY", "import-time-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from ehr_portal.config import Settings
from ehr_portal.main import create_app

ADMIN_EMAIL = "admin@ehr.test"
ADMIN_PASSWORD = "admin-secret"
ADMIN_WALLET = "0x" + "f" * 40

PATIENT_A_WALLET = "0x" + "a" * 40
DOCTOR_B_WALLET = "0x" + "b" * 40
DOCTOR_C_WALLET = "0x" + "c" * 40


class RecordingLedger:
    """Stands in for LedgerMirror and remembers what would have been mirrored."""

    enabled = True

    def __init__(self):
        self.calls = []

    async def add_patient(self, wallet_address):
        self.calls.append(("addPatient", wallet_address))

    async def add_doctor(self, wallet_address):
        self.calls.append(("addDoctor", wallet_address))

    async def upload_record(self, file_hash, file_name, date):
        self.calls.append(("uploadRecord", file_hash, file_name))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ehr.db'}",
        jwt_secret_key="test-secret",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_wallet_address=ADMIN_WALLET,
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, role, name, email, wallet, password="password1"):
    endpoint = "/registerPatient" if role == "Patient" else "/registerDoctor"
    response = client.post(
        endpoint,
        json={"name": name, "email": email, "walletAddress": wallet, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["user"]


def login(client, email, password="password1"):
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def tomorrow():
    return (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()


@pytest.fixture
def admin_token(client):
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def patient_a(client):
    user = register(client, "Patient", "Patient A", "a@ehr.test", PATIENT_A_WALLET)
    return user, login(client, "a@ehr.test")


@pytest.fixture
def doctor_b(client):
    user = register(client, "Doctor", "Doctor B", "b@ehr.test", DOCTOR_B_WALLET)
    return user, login(client, "b@ehr.test")


@pytest.fixture
def doctor_c(client):
    user = register(client, "Doctor", "Doctor C", "c@ehr.test", DOCTOR_C_WALLET)
    return user, login(client, "c@ehr.test")


@pytest.fixture
def appointment(client, patient_a, doctor_b):
    _, patient_token = patient_a
    doctor, _ = doctor_b
    response = client.post(
        "/appointments",
        json={
            "doctorId": doctor["id"],
            "healthProblem": "Persistent headache",
            "appointmentDate": tomorrow(),
            "priority": "high",
        },
        headers=auth(patient_token),
    )
    assert response.status_code == 200, response.text
    return response.json()["appointment"]
