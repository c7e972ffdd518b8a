"""
Autonomy Plan Schemas

The plan an assistant proposes: optional vision replacement plus lists of
goal, task, calendar and file changes. Entries carrying an `id` target an
existing row; entries without one are creates.
"""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field

from .project import AutonomyPolicy


class VisionChange(BaseModel):
    """Replace the project vision."""
    new_text: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class GoalChange(BaseModel):
    """Create, update or delete one goal."""
    id: Optional[str] = None
    description: Optional[str] = None
    delete: bool = False
    due_date: Optional[str] = None


class TaskChange(BaseModel):
    """Create or update one task."""
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    details: Optional[str] = None
    assignee: Optional[Literal["zeta", "user"]] = None
    status: Optional[Literal["under_construction", "in_progress", "todo", "doing", "done"]] = None
    due_at: Optional[datetime] = None
    procedure: Optional[str] = None
    improvement_note: Optional[str] = None


class CalendarChange(BaseModel):
    """Create or update one calendar item."""
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    type: Optional[str] = None
    notes: Optional[str] = None
    # ISO8601; split into date and time columns
    start_time: Optional[str] = None
    all_day: bool = False


class FileRequest(BaseModel):
    """Generate and store one file."""
    filename: str = Field(..., min_length=1)
    mime: Literal["text/markdown", "text/plain", "application/json"] = "text/plain"
    content: str
    description: Optional[str] = None


class Plan(BaseModel):
    """A batch of proposed changes across a project's entities."""
    rationale: Optional[str] = None
    vision: Optional[VisionChange] = None
    long_term_goals: List[GoalChange] = []
    short_term_goals: List[GoalChange] = []
    tasks: List[TaskChange] = []
    calendar_items: List[CalendarChange] = []
    files: List[FileRequest] = []

    model_config = {"extra": "ignore"}


class ApplyPlanRequest(BaseModel):
    """Request to apply a plan; policy defaults to the project's stored policy."""
    plan: Plan
    policy: Optional[AutonomyPolicy] = None

    model_config = {"extra": "forbid"}


class ApplyPlanResponse(BaseModel):
    """Summary of a plan application. Details live in the autonomy event log."""
    ok: bool = True
    policy: AutonomyPolicy
    operations: int = 0
    applied: bool = False
