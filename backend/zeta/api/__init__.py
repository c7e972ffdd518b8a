# API Routes
from .projects import router as projects_router
from .chat import router as chat_router
from .onboarding import router as onboarding_router
from .autonomy import router as autonomy_router
from .logs import router as logs_router
from .integrations import router as integrations_router

__all__ = [
    "projects_router",
    "chat_router",
    "onboarding_router",
    "autonomy_router",
    "logs_router",
    "integrations_router",
]
