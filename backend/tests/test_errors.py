from fastapi.testclient import TestClient

from ehr_portal.database import build_engine, build_sessionmaker

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, auth


def unreachable_sessionmaker(tmp_path):
    # sqlite cannot create a database file inside a directory that does not exist
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'ehr.db'}")
    return build_sessionmaker(engine)


def test_unreachable_database_is_unavailable(client, app, patient_a, tmp_path):
    _, patient_token = patient_a
    app.state.sessionmaker = unreachable_sessionmaker(tmp_path)

    response = client.get("/records", headers=auth(patient_token))
    assert response.status_code == 503
    assert response.json() == {"error": "Database not connected"}

    login = client.post("/login", json={"email": "a@ehr.test", "password": "password1"})
    assert login.status_code == 503


def test_builtin_admin_logs_in_without_the_database(client, app, tmp_path):
    app.state.sessionmaker = unreachable_sessionmaker(tmp_path)
    response = client.post("/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200


def test_authentication_is_checked_before_the_database(client, app, tmp_path):
    app.state.sessionmaker = unreachable_sessionmaker(tmp_path)
    assert client.get("/records").status_code == 401


def test_unexpected_error_is_a_generic_500(app):
    @app.get("/explode")
    async def explode():
        raise RuntimeError("secret stack detail")

    with TestClient(app, raise_server_exceptions=False) as c:
        response = c.get("/explode")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
