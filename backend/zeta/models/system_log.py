"""
System Log Models

Append-only audit trails for a project.
- SystemLog: what the user or Zeta did (vision updates, goal updates,
  integrations connected, ...). The onboarding engine reads it back.
- AutonomyEvent: every action an autonomy plan proposed, and whether it
  was actually applied.
Rows are never updated or deleted after insert.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Boolean, JSON, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional
import enum
import uuid

from ..database import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LogActor(str, enum.Enum):
    """Who produced a log entry."""
    USER = "user"
    ZETA = "zeta"


class LogEvent(str, enum.Enum):
    """Closed vocabulary of system log events."""
    # tasks
    TASK_CREATE = "task.create"
    TASK_EDIT = "task.edit"
    TASK_COMPLETE = "task.complete"
    # files
    FILE_UPLOAD = "file.upload"
    FILE_GENERATE = "file.generate"
    # integrations
    API_CONNECT = "api.connect"
    NOTIFICATION_SEND = "notification.send"
    # calendar
    CALENDAR_EVENT = "calendar.event"
    CALENDAR_REMINDER = "calendar.reminder"
    # project meta
    PROJECT_VISION_UPDATE = "project.vision.update"
    PROJECT_GOALS_LONG_UPDATE = "project.goals.long.update"
    PROJECT_GOALS_SHORT_UPDATE = "project.goals.short.update"
    # onboarding
    ONBOARDING_SKIP = "onboarding.skip"
    ONBOARDING_COMPLETE = "onboarding.complete"


class SystemLog(Base):
    """
    Append-only event log entry.

    `details` is an arbitrary JSON payload; integration events carry
    {"provider": ..., "status": ...}.
    """
    __tablename__ = "system_logs"

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
    actor: Mapped[LogActor] = mapped_column(
        SQLEnum(LogActor, values_callable=_enum_values),
        nullable=False
    )
    event: Mapped[LogEvent] = mapped_column(
        SQLEnum(LogEvent, values_callable=_enum_values),
        nullable=False,
        index=True
    )

    # Human-readable message
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="system_logs"
    )

    __table_args__ = (
        Index("idx_syslog_project_event", "project_id", "event"),
        Index("idx_syslog_project_time", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SystemLog(id={self.id}, event={self.event})>"


class AutonomyCategory(str, enum.Enum):
    """Entity group an autonomy action targets."""
    VISION = "vision"
    LONG_GOALS = "long_goals"
    SHORT_GOALS = "short_goals"
    TASKS = "tasks"
    CALENDAR = "calendar"
    FILES = "files"


class AutonomyAction(str, enum.Enum):
    """Kind of change an autonomy action makes."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GENERATE = "generate"


class AutonomyEvent(Base):
    """
    One proposed autonomy action.

    `applied` is False when the action was only logged (shadow policy) and
    True when the write was attempted.
    """
    __tablename__ = "autonomy_events"

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
    category: Mapped[AutonomyCategory] = mapped_column(
        SQLEnum(AutonomyCategory, values_callable=_enum_values),
        nullable=False
    )
    action: Mapped[AutonomyAction] = mapped_column(
        SQLEnum(AutonomyAction, values_callable=_enum_values),
        nullable=False
    )
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="autonomy_events"
    )

    __table_args__ = (
        Index("idx_autonomy_project_time", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AutonomyEvent(category={self.category}, action={self.action}, applied={self.applied})>"
