import os

from conftest import auth
from core import config


def test_upload_stores_file(client, worker):
    res = client.post(
        "/api/upload",
        files={"file": ("site.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
        headers=auth(worker),
    )
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    assert data["url"].startswith("/uploads/") and data["url"].endswith(".jpg")
    assert data["filename"] == "site.jpg"
    assert data["size"] == len(b"\xff\xd8\xff fake jpeg")
    assert os.path.exists(os.path.join(config.UPLOAD_DIR, os.path.basename(data["url"])))

    served = client.get(data["url"])
    assert served.status_code == 200
    assert served.content == b"\xff\xd8\xff fake jpeg"


def test_upload_rejects_unknown_types(client, worker):
    res = client.post(
        "/api/upload",
        files={"file": ("run.exe", b"MZ", "application/octet-stream")},
        headers=auth(worker),
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_upload_rejects_oversized_files(client, worker, monkeypatch):
    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 10)
    before = set(os.listdir(config.UPLOAD_DIR))
    res = client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"x" * 11, "text/plain")},
        headers=auth(worker),
    )
    assert res.status_code == 400
    assert set(os.listdir(config.UPLOAD_DIR)) == before


def test_upload_requires_login(client):
    res = client.post("/api/upload", files={"file": ("a.txt", b"hi", "text/plain")})
    assert res.status_code == 401
