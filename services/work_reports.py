# services/work_reports.py
"""
Work-report ingestion. Reports are append-only; this module only
creates and reads them.
"""
import logging
from typing import Any, Dict, List, Tuple

from sqlmodel import Session, select

from core.access import ADMIN_OR_SUPERVISOR, CallerContext, ensure_role
from core.errors import ForbiddenError, NotFoundError, ValidationError, validate_model
from models.helper import utcnow
from models.tasks import Task
from models.users import Role, User
from models.work_reports import WorkReport, WorkReportCreate, WorkReportRead
from services.notifications import WORK_SUBMITTED
from services.tasks import check_id

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("task", "status")


def to_report_read(r: WorkReport) -> WorkReportRead:
    return WorkReportRead.model_validate(r)


def submit(session: Session, caller: CallerContext, data: Dict[str, Any]) -> Tuple[WorkReportRead, Dict[str, Any]]:
    """
    Persist a work report and build the workSubmitted event for it.

    The worker defaults to the caller; only admins and supervisors may
    submit on behalf of someone else. Nothing is written when a
    required field is missing or a reference does not exist.
    """
    data = dict(data or {})
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError.missing(*missing)

    payload = validate_model(WorkReportCreate, data)
    worker_id = payload.worker or caller.id
    if worker_id != caller.id and caller.role == Role.worker:
        raise ForbiddenError("Workers can only submit their own reports")

    check_id(worker_id, "worker")
    check_id(payload.task, "task")

    worker = session.get(User, worker_id)
    if worker is None:
        raise NotFoundError("Worker not found")
    task = session.get(Task, payload.task)
    if task is None:
        raise NotFoundError("Task not found")

    report = WorkReport(
        worker_id=worker.id,
        task_id=task.id,
        status=payload.status,
        quantity=payload.quantity,
        unit=payload.unit,
        photo_url=payload.photo_url,
        photo_urls=list(payload.photo_urls),
        update_text=payload.update_text,
        submitted_at=utcnow(),
    )
    session.add(report)
    session.commit()
    session.refresh(report)
    logger.info("Work report %s submitted for task %s by %s", report.id, task.id, caller.id)
    created = to_report_read(report)
    return created, work_submitted_event(created, task.task_name, worker.name)


def work_submitted_event(report: WorkReportRead, task_name: str, worker_name: str) -> Dict[str, Any]:
    return {
        "event": WORK_SUBMITTED,
        "taskId": report.task_id,
        "workReport": report.model_dump(mode="json", by_alias=True),
        "message": f"{worker_name} submitted work for {task_name}",
        "timestamp": utcnow().isoformat().replace("+00:00", "Z"),
    }


def list_by_task(session: Session, task_id: str) -> List[WorkReportRead]:
    check_id(task_id, "taskId")
    rows = session.exec(
        select(WorkReport).where(WorkReport.task_id == task_id).order_by(WorkReport.created_at.desc())
    ).all()
    return [to_report_read(r) for r in rows]


def list_mine(session: Session, caller: CallerContext) -> List[WorkReportRead]:
    rows = session.exec(
        select(WorkReport).where(WorkReport.worker_id == caller.id).order_by(WorkReport.created_at.desc())
    ).all()
    return [to_report_read(r) for r in rows]


def list_all(session: Session, caller: CallerContext) -> List[WorkReportRead]:
    ensure_role(caller, ADMIN_OR_SUPERVISOR)
    rows = session.exec(select(WorkReport).order_by(WorkReport.created_at.desc())).all()
    return [to_report_read(r) for r in rows]
