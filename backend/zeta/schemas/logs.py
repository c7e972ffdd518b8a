"""
Log Schemas

Pydantic models for the system log and autonomy event APIs.
"""
from datetime import datetime
from typing import Optional, List, Any, Dict
from pydantic import BaseModel


class SystemLogResponse(BaseModel):
    """System log entry."""
    id: str
    project_id: str
    actor: str
    event: str
    message: Optional[str] = None
    details: Dict[str, Any] = {}
    created_at: datetime

    model_config = {"from_attributes": True}


class SystemLogListResponse(BaseModel):
    """List of system log entries."""
    logs: List[SystemLogResponse]
    total: int


class AutonomyEventResponse(BaseModel):
    """Autonomy event entry."""
    id: str
    project_id: str
    category: str
    action: str
    payload: Dict[str, Any] = {}
    applied: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AutonomyEventListResponse(BaseModel):
    """List of autonomy events."""
    events: List[AutonomyEventResponse]
    total: int
