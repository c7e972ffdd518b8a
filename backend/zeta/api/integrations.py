"""
Integrations API

Connecting external services to a project.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.system_log import SystemLog, LogActor, LogEvent
from ..schemas.onboarding import OnboardingStatusResponse
from ..engine.onboarding import OnboardingEngine, next_step, COMPLETE_STATUS
from .projects import get_project_or_404

router = APIRouter(prefix="/projects/{project_id}/integrations", tags=["integrations"])


@router.post("/telegram", response_model=OnboardingStatusResponse)
async def connect_telegram(
    project_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Mark Telegram as connected.

    Records an api.connect event, which also completes the onboarding
    Telegram step.
    """
    project = await get_project_or_404(db, project_id)

    project.telegram_connected = True
    db.add(SystemLog(
        project_id=project_id,
        actor=LogActor.USER,
        event=LogEvent.API_CONNECT,
        message="Telegram connected",
        details={"provider": "Telegram", "status": "connected"},
    ))
    await db.commit()

    status = await OnboardingEngine(db).sync(project_id)
    step = next_step(status)
    return OnboardingStatusResponse(
        project_id=project_id,
        status=status,
        next_step=step.value if step else None,
        complete=status >= COMPLETE_STATUS,
    )
