from conftest import auth


def upload_file(client, token, name="scan.png", content=b"\x89PNG fake", content_type="image/png"):
    return client.post(
        "/upload-file",
        files={"file": (name, content, content_type)},
        headers=auth(token),
    )


def test_upload_then_fetch(client, patient_a):
    _, token = patient_a
    response = upload_file(client, token)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    stored = body["file"]
    assert stored["fileName"] == "scan.png"
    assert stored["fileHash"].endswith("_scan.png")

    fetched = client.get(f"/file/{stored['fileHash']}", headers=auth(token))
    assert fetched.status_code == 200
    assert fetched.content == b"\x89PNG fake"
    assert fetched.headers["content-type"] == "image/png"


def test_each_upload_gets_its_own_hash(client, patient_a):
    _, token = patient_a
    first = upload_file(client, token).json()["file"]["fileHash"]
    second = upload_file(client, token).json()["file"]["fileHash"]
    assert first != second


def test_upload_rejects_unknown_type(client, patient_a):
    _, token = patient_a
    response = upload_file(client, token, name="run.sh", content=b"#!/bin/sh", content_type="application/x-sh")
    assert response.status_code == 400


def test_upload_rejects_oversized_file(client, app, patient_a):
    _, token = patient_a
    app.state.settings.max_upload_bytes = 8
    response = upload_file(client, token, content=b"x" * 9)
    assert response.status_code == 400
    assert "too large" in response.json()["error"]


def test_upload_strips_directories_from_name(client, patient_a):
    _, token = patient_a
    stored = upload_file(client, token, name="../../etc/scan.png").json()["file"]
    assert stored["fileName"] == "scan.png"
    assert "/" not in stored["fileHash"]


def test_legacy_image_hash_serves_placeholder(client, patient_a):
    _, token = patient_a
    response = client.get("/file/QmMockHash123_chest.png", headers=auth(token))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert "chest.png" in response.text


def test_legacy_document_hash_serves_text(client, patient_a):
    _, token = patient_a
    response = client.get("/file/QmMockHash456_labs.pdf", headers=auth(token))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "QmMockHash456_labs.pdf" in response.text


def test_unknown_file_is_not_found(client, patient_a):
    _, token = patient_a
    assert client.get("/file/1700000000000_missing.pdf", headers=auth(token)).status_code == 404
    assert client.get("/file/..", headers=auth(token)).status_code == 404


def test_files_require_authentication(client):
    assert client.get("/file/QmMockHash123_chest.png").status_code == 401
    response = client.post("/upload-file", files={"file": ("a.txt", b"hi", "text/plain")})
    assert response.status_code == 401
