import asyncio

import pytest
from sqlmodel import Session, select

from conftest import auth, caller_of
from core.errors import ForbiddenError
from models.work_reports import WorkReport
from services import work_reports


def test_submit_missing_status_persists_nothing(client, worker, new_task, engine):
    task = new_task(assignedWorkers=[worker.id])
    res = client.post("/api/work/submit", json={"task": task["id"], "quantity": 3}, headers=auth(worker))
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "status"
    with Session(engine) as s:
        assert s.exec(select(WorkReport)).all() == []


def test_submit_checks_references(client, worker, supervisor, new_task):
    task = new_task()
    res = client.post("/api/work/submit", json={"task": "f" * 24, "status": "completed"}, headers=auth(worker))
    assert res.status_code == 404
    res = client.post("/api/work/submit", json={"task": "nope", "status": "completed"}, headers=auth(worker))
    assert res.status_code == 400
    res = client.post(
        "/api/work/submit", json={"task": task["id"], "status": "completed", "worker": "a" * 24},
        headers=auth(supervisor),
    )
    assert res.status_code == 404
    res = client.post("/api/work/submit", json={"task": task["id"], "status": "finished"}, headers=auth(worker))
    assert res.status_code == 400


def test_worker_cannot_submit_for_someone_else(client, worker, worker2, new_task):
    task = new_task()
    res = client.post(
        "/api/work/submit", json={"task": task["id"], "status": "issues", "worker": worker2.id},
        headers=auth(worker),
    )
    assert res.status_code == 403


def test_submit_broadcasts_event(client, supervisor, worker, new_task):
    task = new_task(taskName="Trenching")
    with client.websocket_connect("/ws") as ws:
        res = client.post(
            "/api/work/submit",
            json={
                "task": task["id"],
                "worker": worker.id,
                "status": "half-done",
                "quantity": 2.5,
                "unit": "m",
                "updateText": "halfway there",
                "photoUrls": ["/uploads/a.jpg", "/uploads/b.jpg"],
            },
            headers=auth(supervisor),
        )
        assert res.status_code == 201, res.text
        report = res.json()["data"]
        assert res.json()["notified"] == 1

        event = ws.receive_json()
    assert event["event"] == "workSubmitted"
    assert event["taskId"] == task["id"]
    assert event["workReport"]["id"] == report["id"]
    assert event["message"] == "Wes Worker submitted work for Trenching"
    assert event["timestamp"]

    assert report["workerId"] == worker.id
    assert report["worker"]["name"] == "Wes Worker"
    assert report["photoUrls"] == ["/uploads/a.jpg", "/uploads/b.jpg"]
    assert report["quantity"] == 2.5


def test_publish_failure_does_not_fail_submission(client, hub, worker, new_task):
    asyncio.run(hub.close())
    task = new_task()
    res = client.post("/api/work/submit", json={"task": task["id"], "status": "completed"}, headers=auth(worker))
    assert res.status_code == 201
    assert res.json()["notified"] == 0


def test_report_queries(client, admin, supervisor, worker, worker2, new_task):
    task = new_task()
    other = new_task()
    first = client.post("/api/work/submit", json={"task": task["id"], "status": "in-progress"}, headers=auth(worker))
    second = client.post("/api/work/submit", json={"task": task["id"], "status": "completed"}, headers=auth(worker2))
    client.post("/api/work/submit", json={"task": other["id"], "status": "on-hold"}, headers=auth(worker))

    res = client.get(f"/api/work/task/{task['id']}", headers=auth(supervisor))
    assert [r["id"] for r in res.json()["data"]] == [second.json()["data"]["id"], first.json()["data"]["id"]]
    assert res.json()["data"][0]["worker"]["email"] == worker2.email

    res = client.get("/api/work/my-reports", headers=auth(worker))
    assert res.json()["count"] == 2
    assert {r["workerId"] for r in res.json()["data"]} == {worker.id}

    assert client.get("/api/work/all-reports", headers=auth(admin)).json()["count"] == 3
    assert client.get("/api/work/all-reports", headers=auth(worker)).status_code == 403
    assert client.get(f"/api/work/task/{task['id']}", headers=auth(worker)).status_code == 403


def test_list_all_is_forbidden_for_workers_at_service_level(session, worker):
    with pytest.raises(ForbiddenError):
        work_reports.list_all(session, caller_of(worker))


def test_reports_survive_task_deletion(client, admin, worker, new_task):
    task = new_task()
    client.post("/api/work/submit", json={"task": task["id"], "status": "completed"}, headers=auth(worker))
    client.delete(f"/api/tasks/{task['id']}", headers=auth(admin))
    res = client.get(f"/api/work/task/{task['id']}", headers=auth(admin))
    assert res.json()["count"] == 1
