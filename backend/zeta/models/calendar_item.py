"""
Calendar Item Model

Dated entries on the project calendar (events, tasks, reminders).
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Boolean, Integer, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional
import uuid

from ..database import Base


DEFAULT_REMINDER_CHANNELS = {"telegram": True, "email": False, "inapp": True}


class CalendarItem(Base):
    """
    A calendar entry.

    `date` is stored as YYYY-MM-DD and `time` as HH:MM:SS (null for all-day
    items), matching what the chat heuristics and plans produce.
    """
    __tablename__ = "calendar_items"

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
    type: Mapped[str] = mapped_column(String(50), default="event", nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    length_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Reminder configuration
    reminder_offset_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reminder_channels: Mapped[dict] = mapped_column(
        JSON,
        default=lambda: dict(DEFAULT_REMINDER_CHANNELS),
        nullable=False
    )
    notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="calendar_items"
    )

    __table_args__ = (
        Index("idx_calendar_project_date", "project_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<CalendarItem(id={self.id}, date={self.date}, title={self.title[:20]})>"
