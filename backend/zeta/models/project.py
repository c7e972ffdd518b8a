"""
Project Model

Projects are the unit of tenancy for Zeta.
All tables are scoped by project_id to prevent cross-project leakage.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Boolean, Integer, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, List
import uuid

from ..database import Base


class Project(Base):
    """
    A project the assistant is bound to.

    Holds the onboarding data (vision, goal lists, Telegram link) and the
    stored onboarding status column. The status is reconciled against the
    system log by the onboarding engine and only ever moves forward.
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    # Onboarding data
    vision: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    long_term_goals: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    short_term_goals: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    telegram_connected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 0-4, see engine.onboarding
    onboarding_status: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    onboarding_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # off | shadow | ask | auto
    autonomy_policy: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

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

    # Relationships
    mainframe: Mapped[Optional["MainframeInfo"]] = relationship(
        "MainframeInfo",
        back_populates="project",
        cascade="all, delete-orphan",
        uselist=False,
    )
    goals: Mapped[List["Goal"]] = relationship(
        "Goal",
        back_populates="project",
        cascade="all, delete-orphan"
    )
    system_logs: Mapped[List["SystemLog"]] = relationship(
        "SystemLog",
        back_populates="project",
        cascade="all, delete-orphan"
    )
    autonomy_events: Mapped[List["AutonomyEvent"]] = relationship(
        "AutonomyEvent",
        back_populates="project",
        cascade="all, delete-orphan"
    )
    calendar_items: Mapped[List["CalendarItem"]] = relationship(
        "CalendarItem",
        back_populates="project",
        cascade="all, delete-orphan"
    )
    task_items: Mapped[List["TaskItem"]] = relationship(
        "TaskItem",
        back_populates="project",
        cascade="all, delete-orphan"
    )
    documents: Mapped[List["Document"]] = relationship(
        "Document",
        back_populates="project",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, onboarding={self.onboarding_status})>"


class MainframeInfo(Base):
    """
    Summary record the assistant reads as its working context.

    Mirrors the onboarding data and carries the completion flag that
    short-circuits the onboarding flow once set.
    """
    __tablename__ = "mainframe_info"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    project_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    vision: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    long_term_goals: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    short_term_goals: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    onboarding_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="mainframe"
    )

    def __repr__(self) -> str:
        return f"<MainframeInfo(project_id={self.project_id}, complete={self.onboarding_complete})>"
