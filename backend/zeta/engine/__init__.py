# Engine Modules
from .dates import ResolvedDate, resolve_date, infer_day_of_month
from .intents import IntentClassification, classify_intent
from .onboarding import OnboardingEngine, OnboardingStep, next_step, step_label, step_prompt
from .extraction import OnboardingCapture
from .autonomy import AutonomyPlanApplier, plan_operations
from .calendar_autonomy import CalendarAutonomy, CalendarAutonomyResult
from .reasoning import ReasoningEngine

__all__ = [
    "ResolvedDate",
    "resolve_date",
    "infer_day_of_month",
    "IntentClassification",
    "classify_intent",
    "OnboardingEngine",
    "OnboardingStep",
    "next_step",
    "step_label",
    "step_prompt",
    "OnboardingCapture",
    "AutonomyPlanApplier",
    "plan_operations",
    "CalendarAutonomy",
    "CalendarAutonomyResult",
    "ReasoningEngine",
]
