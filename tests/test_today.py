from datetime import datetime, timezone

import pytest
from sqlalchemy import event
from sqlmodel import Session, select

from conftest import auth
from core.errors import CastError, ConflictError, NotFoundError, ValidationError
from models.tasks import Task
from services import tasks as task_service


def _today_ids(client, user):
    res = client.get("/api/tasks/today", headers=auth(user))
    assert res.status_code == 200
    return {t["id"] for t in res.json()["data"]}


def test_replace_today_set_exactly(client, admin, new_task):
    a, b, c = new_task(taskName="A"), new_task(taskName="B"), new_task(taskName="C", isForToday=True)

    res = client.put("/api/tasks/update-today", json={"taskIds": [a["id"], b["id"]]}, headers=auth(admin))
    assert res.status_code == 200
    assert {t["id"] for t in res.json()["data"]} == {a["id"], b["id"]}
    assert _today_ids(client, admin) == {a["id"], b["id"]}

    # same call again gives the same observable result
    client.put("/api/tasks/update-today", json={"taskIds": [a["id"], b["id"]]}, headers=auth(admin))
    assert _today_ids(client, admin) == {a["id"], b["id"]}

    client.put("/api/tasks/update-today", json={"taskIds": [c["id"]]}, headers=auth(admin))
    assert _today_ids(client, admin) == {c["id"]}

    client.put("/api/tasks/update-today", json={"taskIds": []}, headers=auth(admin))
    assert _today_ids(client, admin) == set()


def test_invalid_ids_fail_before_any_write(client, admin, new_task):
    a, b = new_task(taskName="A"), new_task(taskName="B")
    client.put("/api/tasks/update-today", json={"taskIds": [a["id"]]}, headers=auth(admin))

    res = client.put("/api/tasks/update-today", json={"taskIds": [b["id"], "oops"]}, headers=auth(admin))
    assert res.status_code == 400
    assert _today_ids(client, admin) == {a["id"]}

    res = client.put("/api/tasks/update-today", json={"taskIds": [b["id"], "e" * 24]}, headers=auth(admin))
    assert res.status_code == 404
    assert _today_ids(client, admin) == {a["id"]}

    res = client.put("/api/tasks/update-today", json={}, headers=auth(admin))
    assert res.status_code == 400
    res = client.put("/api/tasks/update-today", json={"taskIds": a["id"]}, headers=auth(admin))
    assert res.status_code == 400
    assert _today_ids(client, admin) == {a["id"]}


def test_compare_and_swap(client, admin, new_task):
    a, b = new_task(taskName="A"), new_task(taskName="B")
    client.put("/api/tasks/update-today", json={"taskIds": [a["id"]]}, headers=auth(admin))

    stale = {"taskIds": [b["id"]], "expectedTaskIds": []}
    assert client.put("/api/tasks/update-today", json=stale, headers=auth(admin)).status_code == 409
    assert _today_ids(client, admin) == {a["id"]}

    fresh = {"taskIds": [b["id"]], "expectedTaskIds": [a["id"]]}
    assert client.put("/api/tasks/update-today", json=fresh, headers=auth(admin)).status_code == 200
    assert _today_ids(client, admin) == {b["id"]}


def test_today_routes_are_role_scoped(client, admin, supervisor, worker, new_task):
    a = new_task(isForToday=True)
    assert client.get("/api/tasks/today", headers=auth(supervisor)).status_code == 403
    assert client.get("/api/tasks/supervisor-today", headers=auth(admin)).status_code == 403
    assert client.put("/api/tasks/update-today", json={"taskIds": []}, headers=auth(supervisor)).status_code == 403

    res = client.get("/api/tasks/supervisor-today", headers=auth(supervisor))
    assert [t["id"] for t in res.json()["data"]] == [a["id"]]


def test_service_level_errors(session):
    t = Task(task_name="X", date=datetime(2025, 1, 1, tzinfo=timezone.utc))
    session.add(t)
    session.commit()

    with pytest.raises(CastError):
        task_service.set_today_selection(session, ["zzz"])
    with pytest.raises(NotFoundError):
        task_service.set_today_selection(session, ["1" * 24])
    with pytest.raises(ValidationError):
        task_service.set_today_selection(session, None)
    with pytest.raises(ConflictError):
        task_service.set_today_selection(session, [t.id], expected_task_ids=[t.id])

    result = task_service.set_today_selection(session, [t.id], expected_task_ids=[])
    assert [r.id for r in result] == [t.id]


def test_compare_and_swap_fails_when_set_changes_before_write(engine):
    with Session(engine) as s:
        a, b, c = (Task(task_name=n, date=datetime(2025, 1, 1, tzinfo=timezone.utc)) for n in "ABC")
        a.is_for_today = True
        s.add_all([a, b, c])
        s.commit()
        a_id, b_id, c_id = a.id, b.id, c.id

    # another admin swaps A for C after our checks but before our UPDATE runs
    raced = []

    def swap_first(conn, cursor, statement, parameters, context, executemany):
        if raced or not statement.lstrip().upper().startswith("UPDATE TASKS"):
            return
        raced.append(True)
        with Session(engine) as other:
            task_service.set_today_selection(other, [c_id], expected_task_ids=[a_id])

    event.listen(engine, "before_cursor_execute", swap_first)
    try:
        with Session(engine) as s:
            with pytest.raises(ConflictError):
                task_service.set_today_selection(s, [b_id], expected_task_ids=[a_id])
    finally:
        event.remove(engine, "before_cursor_execute", swap_first)

    assert raced
    with Session(engine) as s:
        assert set(s.exec(select(Task.id).where(Task.is_for_today == True)).all()) == {c_id}  # noqa: E712


def test_compare_and_swap_with_no_tasks(session):
    assert task_service.set_today_selection(session, [], expected_task_ids=[]) == []
    with pytest.raises(ConflictError):
        task_service.set_today_selection(session, [], expected_task_ids=["a" * 24])
