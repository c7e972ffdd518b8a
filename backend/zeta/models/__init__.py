# Zeta Models
from .project import Project, MainframeInfo
from .goal import Goal, GoalType
from .system_log import (
    SystemLog,
    LogActor,
    LogEvent,
    AutonomyEvent,
    AutonomyCategory,
    AutonomyAction,
)
from .calendar_item import CalendarItem, DEFAULT_REMINDER_CHANNELS
from .task_item import TaskItem, TaskAssignee, TaskStatus
from .document import Document

__all__ = [
    "Project",
    "MainframeInfo",
    "Goal",
    "GoalType",
    "SystemLog",
    "LogActor",
    "LogEvent",
    "AutonomyEvent",
    "AutonomyCategory",
    "AutonomyAction",
    "CalendarItem",
    "DEFAULT_REMINDER_CHANNELS",
    "TaskItem",
    "TaskAssignee",
    "TaskStatus",
    "Document",
]
