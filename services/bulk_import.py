# services/bulk_import.py
"""
Spreadsheet imports for tasks and users.

Each row is created on its own commit; a bad row is reported and the
import moves on, so rows created before a failure stay created.
"""
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.access import CallerContext
from core.config import DEFAULT_IMPORT_PASSWORD
from core.errors import AppError, ConflictError, ValidationError
from models.helper import utcnow
from models.users import Role, User
from services import tasks as task_service
from services import users as user_service

logger = logging.getLogger(__name__)

# spreadsheet headers accepted for each field, first match wins
TASK_COLUMNS = {
    "taskName": ("Task Name", "taskName", "Task"),
    "description": ("Description", "description"),
    "date": ("Date", "date"),
    "priority": ("Priority", "priority"),
    "status": ("Status", "status"),
    "assignedWorkers": ("Assigned Workers", "assignedWorkers", "Worker"),
}
USER_COLUMNS = {
    "name": ("Name", "Emp Name", "name"),
    "email": ("Email", "email"),
    "code": ("Code", "code"),
    "role": ("Role", "role"),
    "password": ("Password", "password"),
}

Row = Dict[str, Any]


def _numbered(rows: Iterable[Any]) -> Iterator[Tuple[int, Row]]:
    """Yield (spreadsheet row number, row); bare dicts are numbered after a header row."""
    for i, row in enumerate(rows):
        if isinstance(row, tuple):
            yield row
        else:
            yield i + 2, row


def _pick(row: Row, aliases: Tuple[str, ...]) -> Optional[Any]:
    for a in aliases:
        v = row.get(a)
        if v is not None and str(v).strip() != "":
            return v
    return None


def describe(err: AppError) -> str:
    if isinstance(err, ValidationError) and err.errors:
        return "; ".join(f"{e.get('field')}: {e.get('message')}" for e in err.errors)
    return err.message


def _result(total: int, created: List[Any], errors: List[str], noun: str) -> Dict[str, Any]:
    return {
        "message": f"Successfully created {len(created)} of {total} {noun}",
        "total": total,
        "created": created,
        "errors": errors,
    }


def _resolve_worker_names(session: Session, cell: Any) -> List[str]:
    names = [n.strip() for n in str(cell).split(",") if n.strip()]
    if not names:
        return []
    workers = session.exec(select(User).where(User.name.in_(names), User.role == Role.worker)).all()
    by_name = {w.name: w.id for w in workers}
    unknown = [n for n in names if n not in by_name]
    if unknown:
        logger.warning("Import: no worker named %s", ", ".join(unknown))
    return [by_name[n] for n in names if n in by_name]


def import_tasks(session: Session, caller: CallerContext, rows: Iterable[Any]) -> Dict[str, Any]:
    rows = list(_numbered(rows))
    if not rows:
        raise ValidationError("Excel file is empty")

    created, errors = [], []
    for number, row in rows:
        try:
            cell = _pick(row, TASK_COLUMNS["assignedWorkers"])
            data = {
                "taskName": _pick(row, TASK_COLUMNS["taskName"]) or f"Task {number - 1}",
                "description": _pick(row, TASK_COLUMNS["description"]) or "",
                "date": _pick(row, TASK_COLUMNS["date"]) or utcnow(),
                "priority": _pick(row, TASK_COLUMNS["priority"]) or "medium",
                "status": _pick(row, TASK_COLUMNS["status"]) or "pending",
                "assignedWorkers": _resolve_worker_names(session, cell) if cell is not None else [],
            }
            if not isinstance(data["taskName"], str):
                data["taskName"] = str(data["taskName"])
            created.append(task_service.create_task(session, caller, data))
        except AppError as e:
            session.rollback()
            logger.warning("Task import row %d skipped: %s", number, describe(e))
            errors.append(f"Row {number}: {describe(e)}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Task import row %d failed", number)
            errors.append(f"Row {number}: {e.__class__.__name__}")

    logger.info("Task import: %d created, %d failed", len(created), len(errors))
    return _result(len(rows), created, errors, "tasks")


def import_users(session: Session, rows: Iterable[Any]) -> Dict[str, Any]:
    rows = list(_numbered(rows))
    if not rows:
        raise ValidationError("Excel file is empty")

    created, errors = [], []
    for number, row in rows:
        code = _pick(row, USER_COLUMNS["code"])
        code = str(code).strip() if code is not None else None
        email = _pick(row, USER_COLUMNS["email"])
        if email is None and code:
            email = f"{code.lower().replace(' ', '')}@company.com"
        name = _pick(row, USER_COLUMNS["name"])
        if name is None and code:
            name = f"Employee {code}"

        data = {
            "name": str(name) if name is not None else None,
            "email": str(email).strip() if email is not None else None,
            "role": str(_pick(row, USER_COLUMNS["role"]) or Role.worker.value).strip().lower(),
            "password": str(_pick(row, USER_COLUMNS["password"]) or DEFAULT_IMPORT_PASSWORD),
        }
        try:
            created.append(user_service.create_user(session, data))
        except ConflictError:
            session.rollback()
            errors.append(f'Row {number}: User with email "{data["email"]}" already exists')
        except AppError as e:
            session.rollback()
            logger.warning("User import row %d skipped: %s", number, describe(e))
            errors.append(f"Row {number}: {describe(e)}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("User import row %d failed", number)
            errors.append(f"Row {number}: {e.__class__.__name__}")

    logger.info("User import: %d created, %d failed", len(created), len(errors))
    return _result(len(rows), created, errors, "users")
