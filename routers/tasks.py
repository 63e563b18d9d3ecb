# routers/tasks.py
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from sqlmodel import Session

from core.access import CallerContext, require_admin, require_admin_or_supervisor, require_supervisor
from core.errors import ValidationError
from data.database import get_session
from routers.common import listing, ok
from services import bulk_import
from services import tasks as task_service
from services.spreadsheets import EXCEL_EXTENSIONS, read_rows

router = APIRouter(prefix="/tasks", tags=["tasks"])

# ---------------------------------------------------------------------
# Fixed paths BEFORE the param route
# ---------------------------------------------------------------------

@router.get("/dashboard-stats")
def dashboard_stats(
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin_or_supervisor),
):
    return ok(task_service.dashboard_stats(session))


@router.get("")
def list_tasks(
    status_value: Optional[str] = Query(None, alias="status", description="Exact schedule status"),
    assigned_worker: Optional[str] = Query(None, alias="assignedWorker", description="Worker id"),
    day: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin_or_supervisor),
):
    return listing(task_service.list_tasks(session, status_value, assigned_worker, day))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_admin_or_supervisor),
):
    return ok(task_service.create_task(session, caller, payload))


@router.post("/upload-excel", status_code=status.HTTP_201_CREATED)
def upload_excel(
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_admin),
):
    if not (file.filename or "").lower().endswith(EXCEL_EXTENSIONS):
        raise ValidationError("Only Excel files are allowed")
    rows = read_rows(file.file.read())
    result = bulk_import.import_tasks(session, caller, rows)
    return ok(result.pop("created"), **result)


@router.get("/today")
def today_tasks(
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    return listing(task_service.get_today_tasks(session))


@router.get("/supervisor-today")
def supervisor_today_tasks(
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_supervisor),
):
    return listing(task_service.get_today_tasks(session))


@router.put("/update-today")
def update_today_tasks(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    tasks = task_service.set_today_selection(
        session, payload.get("taskIds"), payload.get("expectedTaskIds")
    )
    return listing(tasks, message=f"Updated {len(tasks)} tasks for today")


# ---------------------------------------------------------------------
# Task by id
# ---------------------------------------------------------------------

@router.get("/{task_id}")
def get_task(
    task_id: str,
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin_or_supervisor),
):
    return ok(task_service.get_task(session, task_id))


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: dict = Body(...),             # raw dict so partial updates keep only the sent fields
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin_or_supervisor),
):
    return ok(task_service.update_task(session, task_id, payload))


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    task_service.delete_task(session, task_id)
    return ok({})
