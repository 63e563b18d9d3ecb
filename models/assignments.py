# models/assignments.py

from sqlmodel import SQLModel, Field


class TaskAssignment(SQLModel, table=True):
    """
    Link table between tasks and the users assigned to them.

    The composite primary key keeps a worker from being assigned
    to the same task twice.
    """

    __tablename__ = "task_assignments"

    task_id: str = Field(foreign_key="tasks.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True, index=True)


__all__ = ["TaskAssignment"]
