# services/tasks.py
"""
Task lifecycle: CRUD, assignment, the today-set and the worker-scoped
status flow.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, case, func, update
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from core.access import CallerContext
from core.errors import CastError, ConflictError, ForbiddenError, NotFoundError, ValidationError, validate_model
from models.assignments import TaskAssignment
from models.helper import is_valid_id, utcnow
from models.tasks import PRIORITY_RANK, Task, TaskCreate, TaskRead, TaskStatus, TaskUpdate, schedule_errors
from models.users import Role, User

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Canonical enums & normalization
# ---------------------------------------------------------------------

# tolerate common UI labels
STATUS_CANON = {
    "pending": "pending",
    "to do": "pending",
    "todo": "pending",
    "not started": "pending",
    "on schedule": "on-schedule",
    "onschedule": "on-schedule",
    "behind": "behind",
    "behind schedule": "behind",
    "ahead": "ahead",
    "ahead of schedule": "ahead",
    "completed": "completed",
    "complete": "completed",
    "done": "completed",
}
# worker screens use their own vocabulary on top of the stored one
WORKER_STATUS_ALIASES = {
    "in progress": "on-schedule",
    "inprogress": "on-schedule",
}
PRIORITY_CANON = {
    "low": "low",
    "medium": "medium",
    "normal": "medium",
    "high": "high",
    "urgent": "high",
}

NOT_NULL_FIELDS = {"task_name", "date", "priority", "status", "progress", "is_for_today"}


def _label_key(val: Any) -> str:
    s = str(val).strip().lower().replace("_", " ").replace("-", " ")
    return " ".join(s.split())


def canon_status(val: Optional[str], worker_aliases: bool = False) -> Optional[str]:
    """Return canonical status or None (blank/unknown)."""
    if val is None:
        return None
    key = _label_key(val)
    if not key:
        return None
    if worker_aliases and key in WORKER_STATUS_ALIASES:
        return WORKER_STATUS_ALIASES[key]
    return STATUS_CANON.get(key)


def canon_priority(val: Optional[str]) -> Optional[str]:
    """Return canonical priority or None (blank/unknown)."""
    if val is None:
        return None
    key = _label_key(val)
    return PRIORITY_CANON.get(key) if key else None


def _canon_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Canonicalize status/priority labels in place; unknown labels are left for validation to reject."""
    if isinstance(data.get("status"), str):
        data["status"] = canon_status(data["status"]) or data["status"]
    if isinstance(data.get("priority"), str):
        data["priority"] = canon_priority(data["priority"]) or data["priority"]
    return data


def parse_day(val) -> Optional[date]:
    """Accept 'YYYY-MM-DD', ISO string, date, or datetime; return the calendar day or None."""
    if not val:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    try:
        if len(s) == 10 and s[4] == "-" and s[7] == "-":
            return date.fromisoformat(s)
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def check_id(value: Any, field: str = "id") -> str:
    if not is_valid_id(value):
        raise CastError(field, value)
    return value


def normalize_worker_ids(raw: Optional[Iterable[Any]]) -> List[str]:
    """
    Accept plain id strings or objects carrying `id`/`_id` and return
    de-duplicated id strings in first-seen order.
    """
    ids: List[str] = []
    for item in raw or []:
        if isinstance(item, dict):
            item = item.get("id") or item.get("_id")
        if not isinstance(item, str):
            raise ValidationError(
                "Validation failed",
                [{"field": "assignedWorkers", "message": "Worker must be an id or an object with an id", "value": item}],
            )
        item = item.strip()
        if item not in ids:
            ids.append(item)
    return ids


def apply_status_progress(status: TaskStatus, progress: int) -> int:
    """
    Progress implied by a status change: completed forces 100,
    on-schedule lifts progress to at least 50 and never lowers it.
    """
    progress = max(0, min(100, int(progress or 0)))
    if status == TaskStatus.completed:
        return 100
    if status == TaskStatus.on_schedule:
        return max(progress, 50)
    return progress


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def to_read(t: Task) -> TaskRead:
    return TaskRead.model_validate(t)


def load_task(session: Session, task_id: Any) -> Task:
    check_id(task_id, "id")
    t = session.get(Task, task_id)
    if not t:
        raise NotFoundError("Task not found")
    return t


def resolve_workers(session: Session, raw: Optional[Iterable[Any]]) -> List[User]:
    ids = normalize_worker_ids(raw)
    if not ids:
        return []
    for wid in ids:
        check_id(wid, "assignedWorkers")
    found = {u.id: u for u in session.exec(select(User).where(User.id.in_(ids))).all()}
    missing = [wid for wid in ids if wid not in found]
    if missing:
        raise ValidationError(
            "Validation failed",
            [{"field": "assignedWorkers", "message": "Unknown worker", "value": wid} for wid in missing],
        )
    return [found[wid] for wid in ids]


def resolve_supervisor(session: Session, value: Any) -> Optional[str]:
    """Return the supervisor id, or None to clear; the user must hold the supervisor role."""
    if value in (None, ""):
        return None
    if isinstance(value, dict):
        value = value.get("id") or value.get("_id")
    check_id(value, "supervisor")
    user = session.get(User, value)
    if user is None or user.role != Role.supervisor:
        raise ValidationError(
            "Validation failed",
            [{"field": "supervisor", "message": "Supervisor must be a valid user with supervisor role", "value": value}],
        )
    return user.id


def _priority_rank():
    return case(*[(Task.priority == p, r) for p, r in PRIORITY_RANK.items()], else_=len(PRIORITY_RANK))


# ---------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------

def create_task(session: Session, caller: CallerContext, data: Dict[str, Any]) -> TaskRead:
    data = _canon_fields(dict(data or {}))
    missing = [
        alias for alias, name in (("taskName", "task_name"), ("date", "date"))
        if data.get(alias) in (None, "") and data.get(name) in (None, "")
    ]
    if missing:
        raise ValidationError.missing(*missing)
    payload = validate_model(TaskCreate, data)

    workers = resolve_workers(session, payload.assigned_workers)
    supervisor_id = resolve_supervisor(session, payload.supervisor)
    t = Task(
        **payload.model_dump(exclude={"assigned_workers", "supervisor"}),
        supervisor_id=supervisor_id,
        created_by_id=caller.id,
    )
    t.assigned_workers = workers
    session.add(t)
    session.commit()
    session.refresh(t)
    logger.info("Created task %s (%s) with %d worker(s)", t.id, t.task_name, len(workers))
    return to_read(t)


def list_tasks(
    session: Session,
    status: Optional[str] = None,
    assigned_worker: Optional[str] = None,
    day: Optional[Any] = None,
) -> List[TaskRead]:
    stmt = select(Task)

    if status:
        norm = canon_status(status)
        if not norm:
            return []  # invalid filter -> empty result
        stmt = stmt.where(Task.status == TaskStatus(norm))

    if assigned_worker:
        check_id(assigned_worker, "assignedWorker")
        stmt = stmt.where(
            Task.id.in_(select(TaskAssignment.task_id).where(TaskAssignment.user_id == assigned_worker))
        )

    if day:
        d = parse_day(day)
        if d is None:
            raise ValidationError(
                "Validation failed", [{"field": "date", "message": "Invalid date", "value": day}]
            )
        start = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
        stmt = stmt.where(Task.date >= start, Task.date < start + timedelta(days=1))

    rows = session.exec(stmt.order_by(Task.created_at.desc())).all()
    return [to_read(t) for t in rows]


def get_task(session: Session, task_id: str) -> TaskRead:
    return to_read(load_task(session, task_id))


def update_task(session: Session, task_id: str, data: Dict[str, Any]) -> TaskRead:
    t = load_task(session, task_id)

    data = _canon_fields(dict(data or {}))
    payload = validate_model(TaskUpdate, data)
    changes = payload.model_dump(exclude_unset=True)

    nulls = [k for k in NOT_NULL_FIELDS if k in changes and changes[k] is None]
    if nulls:
        raise ValidationError(
            "Validation failed",
            [{"field": k, "message": f"{k} cannot be null", "value": None} for k in sorted(nulls)],
        )

    errors = schedule_errors(
        changes.get("start_date", t.start_date),
        changes.get("end_date", t.end_date),
        changes.get("deadline", t.deadline),
    )
    if errors:
        raise ValidationError("Validation failed", errors)

    if "assigned_workers" in changes:
        t.assigned_workers = resolve_workers(session, changes.pop("assigned_workers") or [])
    if "supervisor" in changes:
        t.supervisor_id = resolve_supervisor(session, changes.pop("supervisor"))

    for k, v in changes.items():
        setattr(t, k, v)

    t.updated_at = utcnow()
    session.add(t)
    session.commit()
    session.refresh(t)
    logger.info("Updated task %s fields=%s", t.id, sorted(data.keys()))
    return to_read(t)


def delete_task(session: Session, task_id: str) -> None:
    t = load_task(session, task_id)
    session.delete(t)
    session.commit()
    logger.info("Deleted task %s", task_id)


# ---------------------------------------------------------------------
# Today-set
# ---------------------------------------------------------------------

def get_today_tasks(session: Session) -> List[TaskRead]:
    rows = session.exec(
        select(Task).where(Task.is_for_today == True).order_by(Task.created_at.desc())  # noqa: E712
    ).all()
    return [to_read(t) for t in rows]


def _id_list(value: Any, field: str) -> List[str]:
    if value is None:
        raise ValidationError.missing(field)
    if not isinstance(value, list):
        raise ValidationError(
            f"{field} must be an array",
            [{"field": field, "message": "must be an array", "value": value}],
        )
    ids: List[str] = []
    for tid in value:
        check_id(tid, field)
        if tid not in ids:
            ids.append(tid)
    return ids


def _today_set_is(expected: List[str]):
    """SQL condition that holds only while the today-set is exactly `expected`."""
    current = aliased(Task)
    flagged = select(func.count()).select_from(current).where(current.is_for_today == True)  # noqa: E712
    return and_(
        flagged.scalar_subquery() == len(expected),
        flagged.where(current.id.in_(expected)).scalar_subquery() == len(expected),
    )


def _has_tasks(session: Session) -> bool:
    return session.exec(select(func.count()).select_from(Task)).one() > 0


def set_today_selection(
    session: Session,
    task_ids: Any,
    expected_task_ids: Any = None,
) -> List[TaskRead]:
    """
    Replace the today-set with exactly `task_ids`.

    Every id is checked before anything is written, and the replacement
    is one UPDATE in one transaction so readers never see an empty set.
    When `expected_task_ids` is given the comparison rides in the
    UPDATE's WHERE clause, so the write only happens if the today-set
    still equals it at the moment of writing.
    """
    ids = _id_list(task_ids, "taskIds")
    expected = _id_list(expected_task_ids, "expectedTaskIds") if expected_task_ids is not None else None

    if ids:
        existing = set(session.exec(select(Task.id).where(Task.id.in_(ids))).all())
        missing = [tid for tid in ids if tid not in existing]
        if missing:
            raise NotFoundError(f"Task(s) not found: {', '.join(missing)}")

    flag = Task.id.in_(ids) if ids else False
    stmt = update(Task).values(is_for_today=flag).execution_options(synchronize_session=False)
    if expected is not None:
        stmt = stmt.where(_today_set_is(expected))

    result = session.exec(stmt)
    # the UPDATE touches every row, so zero rows means the guard failed (or there are no tasks)
    if expected is not None and result.rowcount == 0 and (expected or _has_tasks(session)):
        session.rollback()
        raise ConflictError("Today's tasks were changed by someone else; reload and try again")
    session.commit()
    logger.info("Today-set replaced with %d task(s)", len(ids))
    return get_today_tasks(session)


# ---------------------------------------------------------------------
# Worker-scoped
# ---------------------------------------------------------------------

def get_worker_tasks(
    session: Session,
    caller: CallerContext,
    worker_id: str,
    status: Optional[str] = None,
) -> List[TaskRead]:
    check_id(worker_id, "workerId")
    if caller.role == Role.worker and caller.id != worker_id:
        raise ForbiddenError("Workers can only view their own tasks")
    if session.get(User, worker_id) is None:
        raise NotFoundError("Worker not found")

    stmt = (
        select(Task)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(TaskAssignment.user_id == worker_id)
    )
    if status and status.strip().lower() != "all":
        norm = canon_status(status, worker_aliases=True)
        if not norm:
            return []
        stmt = stmt.where(Task.status == TaskStatus(norm))

    rows = session.exec(stmt.order_by(Task.date.asc(), _priority_rank())).all()
    return [to_read(t) for t in rows]


def update_status(session: Session, caller: CallerContext, task_id: str, new_status: Optional[str]) -> TaskRead:
    if not new_status:
        raise ValidationError.missing("status")
    check_id(task_id, "taskId")
    norm = canon_status(new_status, worker_aliases=True)
    if not norm:
        raise ValidationError(
            "Invalid status value",
            [{"field": "status", "message": "Invalid status value", "value": new_status}],
        )

    t = session.exec(
        select(Task)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(Task.id == task_id, TaskAssignment.user_id == caller.id)
    ).first()
    if not t:
        # same answer for "missing" and "not yours"
        raise NotFoundError("Task not found or not authorized")

    t.status = TaskStatus(norm)
    t.progress = apply_status_progress(t.status, t.progress)
    t.updated_at = utcnow()
    session.add(t)
    session.commit()
    session.refresh(t)
    logger.info("Worker %s set task %s to %s (progress %d)", caller.id, t.id, t.status.value, t.progress)
    return to_read(t)


# ---------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------

def dashboard_stats(session: Session) -> Dict[str, Any]:
    rows = session.exec(select(Task.status, func.count()).group_by(Task.status)).all()
    counts = {TaskStatus(s): int(c) for s, c in rows}

    per_worker = session.exec(
        select(User.name, func.count(TaskAssignment.task_id))
        .select_from(User)
        .join(TaskAssignment, TaskAssignment.user_id == User.id, isouter=True)
        .where(User.role == Role.worker)
        .group_by(User.id, User.name)
        .order_by(User.name)
    ).all()

    return {
        "totalTasks": sum(counts.values()),
        "pendingTasks": counts.get(TaskStatus.pending, 0),
        "onScheduleTasks": counts.get(TaskStatus.on_schedule, 0),
        "behindTasks": counts.get(TaskStatus.behind, 0),
        "aheadTasks": counts.get(TaskStatus.ahead, 0),
        "completedTasks": counts.get(TaskStatus.completed, 0),
        "userStats": [{"user": name, "totalTasks": int(n)} for name, n in per_worker],
    }
