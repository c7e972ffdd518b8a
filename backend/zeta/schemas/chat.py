"""
Chat Schemas

Pydantic models for chat API requests and responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .onboarding import CaptureFlags


class ChatRequest(BaseModel):
    """Request to chat with the project assistant."""
    message: str = Field(..., min_length=1)
    # Reference instant for date phrases; defaults to server time
    now: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class ChatResponse(BaseModel):
    """Response from chat endpoint."""
    reply: str
    onboarding: bool = False
    # Current onboarding step key, or "complete"
    step: str = "complete"
    onboarding_status: int = 0
    # Which path produced the reply: onboarding | calendar | assistant
    source: str = "assistant"
    captured: CaptureFlags = CaptureFlags()
