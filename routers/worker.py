# routers/worker.py
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from core.access import CallerContext, require_authenticated
from data.database import get_session
from routers.common import listing, ok
from services import tasks as task_service

router = APIRouter(prefix="/worker", tags=["worker"])


@router.get("/{worker_id}/tasks")
def worker_tasks(
    worker_id: str,
    status_value: Optional[str] = Query("all", alias="status", description="all, pending, on-schedule, behind, ahead, completed"),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_authenticated),
):
    return listing(task_service.get_worker_tasks(session, caller, worker_id, status_value))


@router.put("/tasks/{task_id}/status")
def update_task_status(
    task_id: str,
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_authenticated),
):
    return ok(task_service.update_status(session, caller, task_id, payload.get("status")))
