# services/users.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from core.access import CallerContext
from core.errors import ConflictError, NotFoundError, ValidationError, validate_model
from core.security import get_password_hash, verify_password
from models.helper import utcnow
from models.tasks import Task
from models.users import Role, User, UserCreate, UserRead, UserUpdate, normalize_email
from services.tasks import check_id

logger = logging.getLogger(__name__)


def to_user_read(u: User) -> UserRead:
    return UserRead.model_validate(u)


def find_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email))).first()


def load_user(session: Session, user_id: Any) -> User:
    check_id(user_id, "id")
    u = session.get(User, user_id)
    if not u:
        raise NotFoundError("User not found")
    return u


def authenticate(session: Session, email: str, password: str) -> Optional[User]:
    if not email or not password:
        return None
    user = find_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def create_user(session: Session, data: Dict[str, Any]) -> UserRead:
    payload = validate_model(UserCreate, dict(data or {}))
    email = normalize_email(payload.email)

    if find_by_email(session, email):
        raise ConflictError("User already exists with this email")

    user = User(
        name=payload.name,
        email=email,
        role=payload.role,
        password_hash=get_password_hash(payload.password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created %s user %s", user.role.value, user.email)
    return to_user_read(user)


def list_users(session: Session, caller: CallerContext, role: Optional[str] = None) -> List[UserRead]:
    stmt = select(User)
    # supervisors only ever see workers
    if caller.role == Role.supervisor:
        stmt = stmt.where(User.role == Role.worker)
    elif role:
        try:
            stmt = stmt.where(User.role == Role(role.strip().lower()))
        except ValueError:
            raise ValidationError(
                "Invalid role specified", [{"field": "role", "message": "Invalid role", "value": role}]
            )
    users = session.exec(stmt.order_by(User.created_at.desc())).all()
    return [to_user_read(u) for u in users]


def get_user(session: Session, user_id: str) -> UserRead:
    return to_user_read(load_user(session, user_id))


def update_user(session: Session, user_id: str, data: Dict[str, Any]) -> UserRead:
    user = load_user(session, user_id)
    changes = validate_model(UserUpdate, dict(data or {})).model_dump(exclude_unset=True)

    if changes.get("email"):
        email = normalize_email(changes["email"])
        exists = session.exec(select(User).where(User.email == email, User.id != user.id)).first()
        if exists:
            raise ConflictError("User already exists with this email")
        user.email = email

    if changes.get("name"):
        user.name = changes["name"].strip()

    if changes.get("role") is not None:
        user.role = changes["role"]

    if changes.get("password"):
        user.password_hash = get_password_hash(changes["password"])

    user.updated_at = utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Updated user %s", user.id)
    return to_user_read(user)


def delete_user(session: Session, user_id: str) -> None:
    user = load_user(session, user_id)
    # assignment rows go with the user; submitted reports keep their worker id
    session.exec(update(Task).where(Task.created_by_id == user.id).values(created_by_id=None))
    session.exec(update(Task).where(Task.supervisor_id == user.id).values(supervisor_id=None))
    session.delete(user)
    session.commit()
    logger.info("Deleted user %s", user_id)
