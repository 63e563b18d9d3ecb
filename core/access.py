# core/access.py
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlmodel import Session

from core.errors import ForbiddenError, UnauthorizedError
from core.security import decode_access_token
from data.database import get_session
from models.users import Role, User

# auto_error off so a missing token goes through our 401 envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


class CallerContext(BaseModel):
    """
    Verified identity of the caller, built once per request and
    passed explicitly into service calls.
    """
    id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "CallerContext":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


ADMIN = (Role.admin,)
SUPERVISOR = (Role.supervisor,)
ADMIN_OR_SUPERVISOR = (Role.admin, Role.supervisor)
ANY_ROLE = tuple(Role)


def ensure_role(caller: CallerContext, allowed: Iterable[Role]) -> CallerContext:
    allowed = tuple(allowed)
    if caller.role not in allowed:
        names = ", ".join(r.value for r in allowed)
        raise ForbiddenError(f"Not authorized. Required roles: {names}")
    return caller


def get_current_caller(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> CallerContext:
    if not token:
        raise UnauthorizedError("Not authorized, no token")
    try:
        payload = decode_access_token(token)
    except ValueError:
        raise UnauthorizedError("Not authorized, token failed")

    sub = payload.get("sub")
    if not sub:
        raise UnauthorizedError("Not authorized, token failed")

    user = session.get(User, sub)
    if user is None:
        raise UnauthorizedError("Not authorized, user no longer exists")
    return CallerContext.from_user(user)


def require_roles(*roles: Role):
    """
    Build a dependency that resolves the caller and checks its role.
    With no roles any authenticated caller passes.
    """
    allowed = roles or ANY_ROLE

    def _gate(caller: CallerContext = Depends(get_current_caller)) -> CallerContext:
        return ensure_role(caller, allowed)

    return _gate


require_admin = require_roles(*ADMIN)
require_supervisor = require_roles(*SUPERVISOR)
require_admin_or_supervisor = require_roles(*ADMIN_OR_SUPERVISOR)
require_authenticated = require_roles()


__all__ = [
    "CallerContext", "ensure_role", "get_current_caller", "require_roles",
    "require_admin", "require_supervisor", "require_admin_or_supervisor",
    "require_authenticated", "ADMIN", "SUPERVISOR", "ADMIN_OR_SUPERVISOR", "ANY_ROLE",
]
