# routers/users.py
from typing import Optional
from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from sqlmodel import Session

from core.access import CallerContext, require_admin, require_admin_or_supervisor
from core.errors import ValidationError
from data.database import get_session
from routers.common import listing, ok
from services import bulk_import
from services import users as user_service
from services.spreadsheets import EXCEL_EXTENSIONS, read_rows

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------
# Collection
# ---------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    return ok(user_service.create_user(session, payload))


@router.get("")
def list_users(
    role: Optional[str] = Query(None, description="admin | supervisor | worker (admins only)"),
    session: Session = Depends(get_session),
    caller: CallerContext = Depends(require_admin_or_supervisor),
):
    return listing(user_service.list_users(session, caller, role))


@router.post("/bulk-upload")
def bulk_upload_users(
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    if not (file.filename or "").lower().endswith(EXCEL_EXTENSIONS):
        raise ValidationError("Only Excel files are allowed")
    rows = read_rows(file.file.read())
    result = bulk_import.import_users(session, rows)
    return ok(result.pop("created"), **result)


# ---------------------------
# User by id
# ---------------------------
@router.get("/{user_id}")
def get_user(
    user_id: str,
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    return ok(user_service.get_user(session, user_id))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: dict = Body(...),
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    return ok(user_service.update_user(session, user_id, payload))


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    session: Session = Depends(get_session),
    _: CallerContext = Depends(require_admin),
):
    user_service.delete_user(session, user_id)
    return ok({})
