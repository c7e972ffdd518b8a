"""
Project Schemas

Pydantic models for project API requests and responses.
"""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


AutonomyPolicy = Literal["off", "shadow", "ask", "auto"]


class ProjectCreate(BaseModel):
    """Request to create a new project."""
    name: str = Field(..., min_length=1, max_length=255)
    owner_id: Optional[str] = None
    vision: Optional[str] = None
    autonomy_policy: Optional[AutonomyPolicy] = None

    model_config = {"extra": "forbid"}


class ProjectUpdate(BaseModel):
    """Request to update a project."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    vision: Optional[str] = None
    long_term_goals: Optional[List[str]] = None
    short_term_goals: Optional[List[str]] = None
    autonomy_policy: Optional[AutonomyPolicy] = None

    model_config = {"extra": "forbid"}


class ProjectResponse(BaseModel):
    """Project data returned from API."""
    id: str
    name: str
    owner_id: Optional[str] = None
    vision: Optional[str] = None
    long_term_goals: List[str] = []
    short_term_goals: List[str] = []
    telegram_connected: bool = False
    onboarding_status: int = 0
    onboarding_complete: bool = False
    autonomy_policy: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    # Stats
    goal_count: int = 0

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    """List of projects."""
    projects: list[ProjectResponse]
    total: int
