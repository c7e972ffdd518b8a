"""
Onboarding Schemas

Results of onboarding status derivation, early handling and step capture.
"""
from typing import Optional, Any, List
from pydantic import BaseModel


class OnboardingStatusResponse(BaseModel):
    """Onboarding progress for a project."""
    project_id: str
    status: int
    next_step: Optional[str] = None
    complete: bool = False


class EarlyOnboardingResult(BaseModel):
    """Outcome of the pre-reply onboarding handler (skip / status question)."""
    handled: bool = False
    reply: Optional[str] = None
    onboarding: bool = False
    step: str = "complete"
    onboarding_status: int = 0


class CaptureFlags(BaseModel):
    """Which onboarding datum a chat turn captured."""
    vision_captured: bool = False
    long_term_goals_captured: bool = False
    short_term_goals_captured: bool = False


class CaptureResult(BaseModel):
    """Result of structured step capture."""
    text_content: str
    effective_status: int
    effective_next_step: Optional[str] = None
    captured: CaptureFlags = CaptureFlags()


class VisionExtraction(BaseModel):
    """Strict JSON returned by the vision extractor."""
    has_vision: bool = False
    vision: Optional[str] = None


class LongTermGoalsExtraction(BaseModel):
    """Strict JSON returned by the long-term goals extractor."""
    has_long_term_goals: bool = False
    goals: List[Any] = []


class ShortTermGoalsExtraction(BaseModel):
    """Strict JSON returned by the short-term goals extractor."""
    has_short_term_goals: bool = False
    goals: List[Any] = []
