"""
Task Item Model

Work items owned either by Zeta or by the user.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional
import enum
import uuid

from ..database import Base


class TaskAssignee(str, enum.Enum):
    """Who carries out a task."""
    ZETA = "zeta"
    USER = "user"


class TaskStatus(str, enum.Enum):
    """Task lifecycle states."""
    UNDER_CONSTRUCTION = "under_construction"
    IN_PROGRESS = "in_progress"
    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class TaskItem(Base):
    """A task on the project board."""
    __tablename__ = "task_items"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    project_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # zeta | user
    task_type: Mapped[str] = mapped_column(String(16), default=TaskAssignee.ZETA.value, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    procedure: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        default=TaskStatus.UNDER_CONSTRUCTION.value,
        nullable=False
    )
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    improvement_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="task_items"
    )

    __table_args__ = (
        Index("idx_tasks_project_type_title", "project_id", "task_type"),
    )

    def __repr__(self) -> str:
        return f"<TaskItem(id={self.id}, status={self.status})>"
