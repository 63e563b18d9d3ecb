from sqlmodel import Session, select

from conftest import auth
from models.assignments import TaskAssignment
from models.users import User


def test_admin_creates_user_with_default_worker_role(client, admin):
    res = client.post(
        "/api/users",
        json={"name": "Nia", "email": "Nia@Example.com", "password": "hunter22"},
        headers=auth(admin),
    )
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["email"] == "nia@example.com"
    assert data["role"] == "worker"
    assert "password" not in data and "passwordHash" not in data


def test_duplicate_email_is_conflict_and_keeps_existing(client, admin, worker, engine):
    res = client.post(
        "/api/users",
        json={"name": "Impostor", "email": worker.email.upper(), "password": "hunter22", "role": "admin"},
        headers=auth(admin),
    )
    assert res.status_code == 409
    assert res.json()["success"] is False

    with Session(engine) as s:
        users = s.exec(select(User).where(User.email == worker.email)).all()
        assert len(users) == 1
        assert users[0].name == "Wes Worker"
        assert users[0].role.value == "worker"


def test_create_user_validation(client, admin):
    res = client.post("/api/users", json={"name": "X", "email": "bad", "password": "123"}, headers=auth(admin))
    assert res.status_code == 400
    fields = {e["field"] for e in res.json()["errors"]}
    assert {"email", "password"} <= fields


def test_only_admin_manages_users(client, supervisor, worker):
    body = {"name": "Z", "email": "z@example.com", "password": "hunter22"}
    assert client.post("/api/users", json=body, headers=auth(supervisor)).status_code == 403
    assert client.get(f"/api/users/{worker.id}", headers=auth(supervisor)).status_code == 403
    assert client.get("/api/users", headers=auth(worker)).status_code == 403


def test_supervisor_lists_only_workers(client, admin, supervisor, worker, worker2):
    res = client.get("/api/users", headers=auth(supervisor))
    assert res.status_code == 200
    assert {u["role"] for u in res.json()["data"]} == {"worker"}
    assert res.json()["count"] == 2

    res = client.get("/api/users", params={"role": "admin"}, headers=auth(admin))
    assert [u["id"] for u in res.json()["data"]] == [admin.id]

    assert client.get("/api/users", params={"role": "boss"}, headers=auth(admin)).status_code == 400


def test_update_user(client, admin, worker, worker2):
    res = client.put(f"/api/users/{worker.id}", json={"name": "Wes W.", "role": "supervisor"}, headers=auth(admin))
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Wes W."
    assert res.json()["data"]["role"] == "supervisor"

    res = client.put(f"/api/users/{worker.id}", json={"email": worker2.email}, headers=auth(admin))
    assert res.status_code == 409


def test_get_user_errors(client, admin):
    assert client.get("/api/users/nope", headers=auth(admin)).status_code == 400
    assert client.get("/api/users/" + "a" * 24, headers=auth(admin)).status_code == 404


def test_deleting_user_drops_assignments(client, admin, worker, new_task, engine):
    task = new_task(assignedWorkers=[worker.id])
    assert client.delete(f"/api/users/{worker.id}", headers=auth(admin)).status_code == 200

    res = client.get(f"/api/tasks/{task['id']}", headers=auth(admin))
    assert res.json()["data"]["assignedWorkers"] == []
    with Session(engine) as s:
        assert s.exec(select(TaskAssignment)).all() == []


def test_update_rejects_blank_name(client, admin, worker):
    res = client.put(f"/api/users/{worker.id}", json={"name": "   "}, headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "name"
    assert client.get(f"/api/users/{worker.id}", headers=auth(admin)).json()["data"]["name"] == "Wes Worker"

    res = client.put(f"/api/users/{worker.id}", json={"name": "  Wes W.  "}, headers=auth(admin))
    assert res.json()["data"]["name"] == "Wes W."


def test_deleting_supervisor_clears_task_references(client, admin, supervisor, new_task):
    task = new_task(supervisor=supervisor.id)
    assert client.delete(f"/api/users/{supervisor.id}", headers=auth(admin)).status_code == 200
    assert client.get(f"/api/tasks/{task['id']}", headers=auth(admin)).json()["data"]["supervisorId"] is None
