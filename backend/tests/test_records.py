from conftest import PATIENT_A_WALLET, DOCTOR_B_WALLET, auth, register, login


def upload(client, token, wallet=PATIENT_A_WALLET, **overrides):
    body = {
        "patientAddress": wallet,
        "fileHash": "1700000000000_abc_xray.png",
        "fileName": "xray.png",
        "description": "Chest x-ray",
        "date": "2025-03-01T10:00:00Z",
    }
    body.update(overrides)
    return client.post("/uploadRecord", json=body, headers=auth(token))


def test_patient_upload_is_visible_to_patient_and_any_doctor(client, patient_a, doctor_b, doctor_c):
    _, patient_token = patient_a
    _, doctor_b_token = doctor_b
    _, doctor_c_token = doctor_c

    response = upload(client, patient_token)
    assert response.status_code == 200
    record = response.json()["record"]
    assert record["uploadedBy"] == PATIENT_A_WALLET
    assert record["doctorNote"] == ""

    own = client.get("/records", headers=auth(patient_token)).json()["records"]
    assert [r["fileName"] for r in own] == ["xray.png"]

    for token in (doctor_b_token, doctor_c_token):
        body = client.get(f"/records/{PATIENT_A_WALLET}", headers=auth(token)).json()
        assert [r["id"] for r in body["records"]] == [record["id"]]
        assert body["patient"]["name"] == "Patient A"


def test_own_records_are_newest_first(client, patient_a):
    _, patient_token = patient_a
    upload(client, patient_token, fileName="old.pdf", date="2024-01-01T00:00:00Z")
    upload(client, patient_token, fileName="new.pdf", date="2025-06-01T00:00:00Z")
    upload(client, patient_token, fileName="mid.pdf", date="2024-09-01T00:00:00Z")
    names = [r["fileName"] for r in client.get("/records", headers=auth(patient_token)).json()["records"]]
    assert names == ["new.pdf", "mid.pdf", "old.pdf"]


def test_upload_only_for_own_wallet(client, patient_a, doctor_b):
    _, patient_token = patient_a
    _, doctor_token = doctor_b
    register(client, "Patient", "Patient D", "d@ehr.test", "0x" + "d" * 40)

    assert upload(client, patient_token, wallet="0x" + "d" * 40).status_code == 403
    assert upload(client, doctor_token, wallet=DOCTOR_B_WALLET).status_code == 403


def test_upload_requires_fields(client, patient_a):
    _, patient_token = patient_a
    response = client.post(
        "/uploadRecord",
        json={"patientAddress": PATIENT_A_WALLET, "fileName": "x.pdf", "date": "2025-01-01"},
        headers=auth(patient_token),
    )
    assert response.status_code == 400


def test_upload_for_deleted_patient_is_not_found(client, admin_token, patient_a):
    patient, patient_token = patient_a
    client.delete(f"/users/{patient['id']}", headers=auth(admin_token))
    assert upload(client, patient_token).status_code == 404


def test_own_records_are_patient_only(client, doctor_b, admin_token):
    _, doctor_token = doctor_b
    assert client.get("/records", headers=auth(doctor_token)).status_code == 403
    assert client.get("/records", headers=auth(admin_token)).status_code == 403


def test_patient_cannot_read_records_by_wallet(client, patient_a):
    _, patient_token = patient_a
    assert client.get(f"/records/{PATIENT_A_WALLET}", headers=auth(patient_token)).status_code == 403


def test_records_for_unknown_or_non_patient_wallet(client, admin_token, doctor_b):
    _, doctor_token = doctor_b
    assert client.get("/records/0xnobody", headers=auth(doctor_token)).status_code == 404
    assert client.get(f"/records/{DOCTOR_B_WALLET}", headers=auth(admin_token)).status_code == 404


def test_records_hidden_once_wallet_stops_being_a_patient(client, admin_token, patient_a, doctor_b):
    patient, patient_token = patient_a
    _, doctor_token = doctor_b
    upload(client, patient_token)
    client.put(f"/users/{patient['id']}", json={"role": "Doctor"}, headers=auth(admin_token))
    assert client.get(f"/records/{PATIENT_A_WALLET}", headers=auth(doctor_token)).status_code == 404


def test_doctor_note(client, patient_a, doctor_b):
    _, patient_token = patient_a
    _, doctor_token = doctor_b
    record = upload(client, patient_token).json()["record"]

    response = client.post(
        "/addNotes", json={"recordId": record["id"], "notes": "No fracture"}, headers=auth(doctor_token)
    )
    assert response.status_code == 200
    assert response.json()["document"]["doctorNote"] == "No fracture"

    own = client.get("/records", headers=auth(patient_token)).json()["records"]
    assert own[0]["doctorNote"] == "No fracture"


def test_doctor_note_requires_doctor_or_admin(client, admin_token, patient_a):
    _, patient_token = patient_a
    record = upload(client, patient_token).json()["record"]
    body = {"recordId": record["id"], "notes": "tampered"}

    assert client.post("/addNotes", json=body).status_code == 401
    assert client.post("/addNotes", json=body, headers=auth(patient_token)).status_code == 403
    assert client.post("/addNotes", json=body, headers=auth(admin_token)).status_code == 200


def test_doctor_note_on_missing_record(client, doctor_b):
    _, doctor_token = doctor_b
    response = client.post("/addNotes", json={"recordId": "9999", "notes": "x"}, headers=auth(doctor_token))
    assert response.status_code == 404


def test_upload_is_mirrored_after_commit(client, app, patient_a):
    from conftest import RecordingLedger

    _, patient_token = patient_a
    ledger = RecordingLedger()
    app.state.ledger = ledger
    upload(client, patient_token)
    assert ledger.calls == [("uploadRecord", "1700000000000_abc_xray.png", "xray.png")]


def test_login_again_after_patient_profile_change_still_sees_records(client, patient_a):
    patient, patient_token = patient_a
    upload(client, patient_token)
    client.put(f"/users/{patient['id']}", json={"name": "Renamed"}, headers=auth(patient_token))
    token = login(client, "a@ehr.test")
    assert len(client.get("/records", headers=auth(token)).json()["records"]) == 1


def test_doctor_note_on_out_of_range_record_id(client, doctor_b):
    _, doctor_token = doctor_b
    response = client.post("/addNotes", json={"recordId": "9" * 23, "notes": "x"}, headers=auth(doctor_token))
    assert response.status_code == 404
