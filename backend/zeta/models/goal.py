"""
Goal Model

Long-term and short-term goals captured during onboarding or proposed
by the assistant.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum
import uuid

from ..database import Base


class GoalType(str, enum.Enum):
    """Goal horizon."""
    LONG_TERM = "long_term"
    SHORT_TERM = "short_term"


class Goal(Base):
    """
    A single goal statement.

    (project_id, goal_type, description) is unique. Writers still check for
    an existing row first; the constraint catches the race between two
    concurrent creates.
    """
    __tablename__ = "goals"

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
    goal_type: Mapped[GoalType] = mapped_column(
        SQLEnum(GoalType, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="goals"
    )

    __table_args__ = (
        UniqueConstraint("project_id", "goal_type", "description", name="uq_goal_description"),
        Index("idx_goals_project_type", "project_id", "goal_type"),
    )

    def __repr__(self) -> str:
        return f"<Goal(id={self.id}, type={self.goal_type})>"
