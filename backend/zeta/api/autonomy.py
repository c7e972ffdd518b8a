"""
Autonomy API

Apply assistant-proposed plans and read back what was proposed.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.system_log import AutonomyEvent, AutonomyCategory
from ..schemas.autonomy import ApplyPlanRequest, ApplyPlanResponse
from ..schemas.logs import AutonomyEventResponse, AutonomyEventListResponse
from ..engine.autonomy import AutonomyPlanApplier, plan_operations, WRITE_POLICIES
from ..engine.onboarding import OnboardingEngine
from .projects import get_project_or_404
from ..tracer import trace_section, trace_input

router = APIRouter(prefix="/projects/{project_id}/autonomy", tags=["autonomy"])


@router.post("/apply", response_model=ApplyPlanResponse)
async def apply_plan(
    project_id: str,
    data: ApplyPlanRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Apply a plan under an autonomy policy.

    The policy comes from the request, else the project's stored policy,
    else the configured default.
    """
    trace_section("Autonomy Plan")
    project = await get_project_or_404(db, project_id)
    policy = data.policy or project.autonomy_policy or settings.default_autonomy_policy
    trace_input("api.autonomy", "policy", policy)

    operations = 0 if policy == "off" else len(plan_operations(data.plan))
    await AutonomyPlanApplier(db).apply(project_id, data.plan, policy)

    applied = policy in WRITE_POLICIES
    if applied:
        # A plan may set the vision, which counts toward onboarding
        await OnboardingEngine(db).sync(project_id)

    return ApplyPlanResponse(
        ok=True,
        policy=policy,
        operations=operations,
        applied=applied,
    )


@router.get("/events", response_model=AutonomyEventListResponse)
async def list_autonomy_events(
    project_id: str,
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(100, le=500),
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """Autonomy events for a project, newest first."""
    conditions = [AutonomyEvent.project_id == project_id]

    if category:
        try:
            conditions.append(AutonomyEvent.category == AutonomyCategory(category))
        except ValueError:
            pass  # Invalid category, ignore filter

    stmt = (
        select(AutonomyEvent)
        .where(*conditions)
        .order_by(AutonomyEvent.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    result = await db.execute(stmt)
    events = result.scalars().all()

    return AutonomyEventListResponse(
        events=[
            AutonomyEventResponse(
                id=e.id,
                project_id=e.project_id,
                category=e.category.value,
                action=e.action.value,
                payload=e.payload or {},
                applied=e.applied,
                created_at=e.created_at,
            )
            for e in events
        ],
        total=len(events),
    )
