# models/users.py

from datetime import datetime
from typing import Optional, TYPE_CHECKING, List
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship
from pydantic import EmailStr, field_validator
from models.helper import new_id, utc_field, utcnow, strip_required, ConfiguredBase, UtcDatetime
from models.assignments import TaskAssignment

if TYPE_CHECKING:
    from models.tasks import Task


# ---------------------------
# Enumerations
# ---------------------------
class Role(str, Enum):
    """
    Enumeration of user roles within the system.

    The same enum drives the stored column and the access-control gate.

    Values:
        - admin:      Manages users and tasks, picks the today-set
        - supervisor: Assigns today's tasks and submits work for workers
        - worker:     Works on assigned tasks and reports progress
    """
    admin = "admin"
    supervisor = "supervisor"
    worker = "worker"


def normalize_email(value: str) -> str:
    return value.strip().lower()


# ---------------------------
# USER MODELS
# ---------------------------
class User(SQLModel, table=True):
    """
    Database model for a user.

    Attributes:
        id:            24-char hex identifier
        name:          Display name
        email:         Unique, stored lowercased
        password_hash: bcrypt hash, never serialized
        role:          admin | supervisor | worker
        tasks:         Tasks this user is assigned to
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: Role = Field(default=Role.worker, index=True)

    created_at: datetime = utc_field(default_factory=utcnow)
    updated_at: datetime = utc_field(default_factory=utcnow)

    tasks: List["Task"] = Relationship(back_populates="assigned_workers", link_model=TaskAssignment)


class UserCreate(ConfiguredBase):
    """
    Schema for creating a new user. Role defaults to worker.
    """
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role = Role.worker

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v, "name")


class UserRead(ConfiguredBase):
    """
    Schema for returning a user. Password hash is never included.
    """
    id: str
    name: str
    email: str
    role: Role
    created_at: UtcDatetime
    updated_at: UtcDatetime


class UserUpdate(ConfiguredBase):
    """
    Schema for updating an existing user. All fields optional.
    """
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    password: Optional[str] = Field(default=None, min_length=6)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v, "name")


class WorkerRef(ConfiguredBase):
    """Compact user reference embedded in tasks and reports."""
    id: str
    name: str
    email: str


__all__ = [
    "Role",
    "normalize_email",
    "User",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "WorkerRef",
]
