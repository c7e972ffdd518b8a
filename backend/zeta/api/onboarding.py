"""
Onboarding API

Read and reconcile a project's onboarding progress.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.onboarding import OnboardingStatusResponse
from ..engine.onboarding import OnboardingEngine, next_step, COMPLETE_STATUS
from .projects import get_project_or_404

router = APIRouter(prefix="/projects/{project_id}", tags=["onboarding"])


def _status_response(project_id: str, status: int) -> OnboardingStatusResponse:
    step = next_step(status)
    return OnboardingStatusResponse(
        project_id=project_id,
        status=status,
        next_step=step.value if step else None,
        complete=status >= COMPLETE_STATUS,
    )


@router.get("/onboarding", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    project_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Current onboarding progress. Derives without writing."""
    project = await get_project_or_404(db, project_id)
    derived = await OnboardingEngine(db).derive(project_id)
    return _status_response(project_id, max(project.onboarding_status, derived))


@router.post("/onboarding/sync", response_model=OnboardingStatusResponse)
async def sync_onboarding_status(
    project_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Re-derive onboarding progress and persist it."""
    await get_project_or_404(db, project_id)
    status = await OnboardingEngine(db).sync(project_id)
    return _status_response(project_id, status)
