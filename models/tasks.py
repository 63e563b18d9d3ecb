# models/tasks.py

from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from pydantic import ValidationInfo, field_validator
from sqlmodel import SQLModel, Field, Relationship
from models.helper import new_id, as_utc, strip_required, utc_field, utcnow, ConfiguredBase, UtcDatetime
from models.assignments import TaskAssignment
from models.users import WorkerRef

if TYPE_CHECKING:
    from models.users import User


# ---------------------------
# Enumerations
# ---------------------------
class TaskPriority(str, Enum):
    """
    Enumeration of task priority levels.

    Values:
        - low:    Can wait
        - medium: Normal priority task
        - high:   Schedule first
    """
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatus(str, Enum):
    """
    Enumeration of task schedule states.

    Values:
        - pending:     Not started yet
        - on_schedule: Work is progressing as planned
        - behind:      Work is late against the due date
        - ahead:       Work is ahead of plan
        - completed:   Task is finished
    """
    pending = "pending"
    on_schedule = "on-schedule"
    behind = "behind"
    ahead = "ahead"
    completed = "completed"


# date-then-priority ordering puts high first
PRIORITY_RANK = {TaskPriority.high: 0, TaskPriority.medium: 1, TaskPriority.low: 2}


# ---------------------------
# TASK MODELS
# ---------------------------
class Task(SQLModel, table=True):
    """
    Database model for a task.

    Attributes:
        id:               24-char hex identifier
        activity_id:      Optional external activity code
        task_name:        Short name shown in lists
        description:      Optional longer text
        remarks:          Optional free-text notes
        date:             Due date
        start_date:       Planned start (<= end_date)
        end_date:         Planned end (>= start_date)
        deadline:         Hard deadline (>= start_date)
        priority:         low | medium | high
        status:           pending | on-schedule | behind | ahead | completed
        progress:         Percent completion (0–100)
        is_for_today:     Member of the today-set
        supervisor_id:    Optional user with the supervisor role
        created_by_id:    User who created the task
        assigned_workers: Users linked through task_assignments
    """

    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    activity_id: Optional[str] = Field(default=None, index=True)
    task_name: str
    description: Optional[str] = None
    remarks: Optional[str] = None
    date: datetime = utc_field(index=True)
    start_date: Optional[datetime] = utc_field(default=None, index=True)
    end_date: Optional[datetime] = utc_field(default=None, index=True)
    deadline: Optional[datetime] = utc_field(default=None, index=True)
    priority: TaskPriority = Field(default=TaskPriority.medium, index=True)
    status: TaskStatus = Field(default=TaskStatus.pending, index=True)
    progress: int = Field(default=0, ge=0, le=100)
    is_for_today: bool = Field(default=False, index=True)
    supervisor_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    created_by_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)

    created_at: datetime = utc_field(default_factory=utcnow)
    updated_at: datetime = utc_field(default_factory=utcnow)

    assigned_workers: List["User"] = Relationship(back_populates="tasks", link_model=TaskAssignment)


def schedule_errors(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    deadline: Optional[datetime],
) -> List[Dict[str, Any]]:
    """Ordering problems between the planning dates, as {field, message, value} entries."""
    start, end, due = as_utc(start_date), as_utc(end_date), as_utc(deadline)
    errors = []
    if start and end and end < start:
        errors.append({"field": "endDate", "message": "End date must be after or equal to start date", "value": end_date})
    if start and due and due < start:
        errors.append({"field": "deadline", "message": "Deadline must be after or equal to start date", "value": deadline})
    return errors


class TaskCreate(ConfiguredBase):
    """
    Schema for creating a new task.

    `assigned_workers` accepts id strings or objects carrying an id.
    """
    activity_id: Optional[str] = None
    task_name: str = Field(min_length=1)
    description: Optional[str] = None
    remarks: Optional[str] = None
    date: UtcDatetime
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    deadline: Optional[UtcDatetime] = None
    assigned_workers: List[Any] = Field(default_factory=list)
    supervisor: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    status: TaskStatus = TaskStatus.pending
    progress: int = Field(default=0, ge=0, le=100)
    is_for_today: bool = False

    @field_validator("task_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return strip_required(v, "taskName")

    @field_validator("end_date", "deadline")
    @classmethod
    def _after_start(cls, v: Optional[datetime], info: ValidationInfo) -> Optional[datetime]:
        start = info.data.get("start_date")
        if info.field_name == "end_date":
            errors = schedule_errors(start, v, None)
        else:
            errors = schedule_errors(start, None, v)
        if errors:
            raise ValueError(errors[0]["message"])
        return v


class TaskUpdate(ConfiguredBase):
    """
    Schema for partial task updates. Only fields present in the
    payload are applied; date ordering is checked against the stored
    task by the service.
    """
    activity_id: Optional[str] = None
    task_name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    remarks: Optional[str] = None
    date: Optional[UtcDatetime] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    deadline: Optional[UtcDatetime] = None
    assigned_workers: Optional[List[Any]] = None
    supervisor: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    is_for_today: Optional[bool] = None

    @field_validator("task_name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v, "taskName")


class TaskRead(ConfiguredBase):
    """
    Schema for returning a task with its assigned workers populated.
    """
    id: str
    activity_id: Optional[str] = None
    task_name: str
    description: Optional[str] = None
    remarks: Optional[str] = None
    date: UtcDatetime
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    deadline: Optional[UtcDatetime] = None
    priority: TaskPriority
    status: TaskStatus
    progress: int
    is_for_today: bool
    supervisor_id: Optional[str] = None
    created_by_id: Optional[str] = None
    assigned_workers: List[WorkerRef] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: UtcDatetime


__all__ = [
    "TaskPriority", "TaskStatus", "PRIORITY_RANK", "schedule_errors",
    "Task", "TaskCreate", "TaskUpdate", "TaskRead",
]
