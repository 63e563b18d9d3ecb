# models/work_reports.py

from enum import Enum
from datetime import datetime
from typing import List, Optional
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, Relationship
from models.helper import new_id, utc_field, utcnow, ConfiguredBase, UtcDatetime
from models.users import User, WorkerRef


class ReportStatus(str, Enum):
    """
    Progress state carried by a work report.
    """
    completed = "completed"
    in_progress = "in-progress"
    on_hold = "on-hold"
    issues = "issues"
    half_done = "half-done"


class WorkReport(SQLModel, table=True):
    """
    Database model for a submitted work report.

    Reports are append-only: nothing updates or deletes them.
    Deleting a task leaves its reports in place.
    """

    __tablename__ = "work_reports"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    worker_id: str = Field(foreign_key="users.id", index=True)
    task_id: str = Field(index=True)
    status: ReportStatus
    quantity: Optional[float] = None
    unit: Optional[str] = None
    photo_url: Optional[str] = None
    photo_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))
    update_text: Optional[str] = None

    submitted_at: datetime = utc_field(default_factory=utcnow)
    created_at: datetime = utc_field(default_factory=utcnow, index=True)

    worker: Optional[User] = Relationship()


class WorkReportCreate(ConfiguredBase):
    """
    Schema for a work submission. `worker` defaults to the caller.
    """
    worker: Optional[str] = None
    task: str
    status: ReportStatus
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    update_text: Optional[str] = None
    photo_url: Optional[str] = None
    photo_urls: List[str] = Field(default_factory=list)


class WorkReportRead(ConfiguredBase):
    id: str
    task_id: str
    worker_id: str
    worker: Optional[WorkerRef] = None
    status: ReportStatus
    quantity: Optional[float] = None
    unit: Optional[str] = None
    photo_url: Optional[str] = None
    photo_urls: List[str] = Field(default_factory=list)
    update_text: Optional[str] = None
    submitted_at: UtcDatetime
    created_at: UtcDatetime


__all__ = ["ReportStatus", "WorkReport", "WorkReportCreate", "WorkReportRead"]
