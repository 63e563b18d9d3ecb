# routers/work.py
from fastapi import APIRouter, Body, Depends, status
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from core.access import CallerContext, require_admin_or_supervisor, require_authenticated
from data.database import get_session
from routers.common import listing, ok
from services import work_reports
from services.notifications import NotificationSink, get_notification_sink, publish_safely

router = APIRouter(prefix="/work", tags=["work"])


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_work(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_authenticated),
    sink: NotificationSink = Depends(get_notification_sink),
):
    report, event = await run_in_threadpool(work_reports.submit, session, caller, payload)
    # best effort: the report is stored whether or not anyone hears about it
    delivered = await publish_safely(sink, event)
    return ok(report, notified=delivered)


@router.get("/task/{task_id}")
def reports_for_task(
    task_id: str,
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin_or_supervisor),
):
    return listing(work_reports.list_by_task(session, task_id))


@router.get("/my-reports")
def my_reports(
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_authenticated),
):
    return listing(work_reports.list_mine(session, caller))


@router.get("/all-reports")
def all_reports(
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_authenticated),
):
    # role check lives in the service so every caller of list_all gets it
    return listing(work_reports.list_all(session, caller))
