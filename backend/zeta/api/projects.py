"""
Projects API

Endpoints for project management.
"""
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.project import Project, MainframeInfo
from ..models.goal import Goal
from ..schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ProjectListResponse,
)

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_to_response(project: Project, goal_count: int = 0) -> ProjectResponse:
    """Convert Project model to response schema."""
    return ProjectResponse(
        id=project.id,
        name=project.name,
        owner_id=project.owner_id,
        vision=project.vision,
        long_term_goals=project.long_term_goals or [],
        short_term_goals=project.short_term_goals or [],
        telegram_connected=project.telegram_connected,
        onboarding_status=project.onboarding_status,
        onboarding_complete=project.onboarding_complete,
        autonomy_policy=project.autonomy_policy,
        created_at=project.created_at,
        updated_at=project.updated_at,
        goal_count=goal_count,
    )


async def _goal_count(db: AsyncSession, project_id: str) -> int:
    count_stmt = select(func.count()).select_from(Goal).where(Goal.project_id == project_id)
    count_result = await db.execute(count_stmt)
    return count_result.scalar() or 0


async def get_project_or_404(db: AsyncSession, project_id: str) -> Project:
    stmt = select(Project).where(Project.id == project_id)
    result = await db.execute(stmt)
    project = result.scalar_one_or_none()

    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.post("", response_model=ProjectResponse)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new project along with its mainframe record."""
    project = Project(
        name=data.name,
        owner_id=data.owner_id,
        vision=data.vision,
        autonomy_policy=data.autonomy_policy,
    )
    db.add(project)
    await db.flush()

    db.add(MainframeInfo(
        project_id=project.id,
        vision=data.vision,
        current_date=datetime.utcnow().date().isoformat(),
    ))
    await db.commit()
    await db.refresh(project)

    return _project_to_response(project)


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    db: AsyncSession = Depends(get_db),
):
    """List all projects."""
    stmt = select(Project).order_by(Project.updated_at.desc())
    result = await db.execute(stmt)
    projects = result.scalars().all()

    responses = []
    for project in projects:
        responses.append(_project_to_response(project, await _goal_count(db, project.id)))

    return ProjectListResponse(
        projects=responses,
        total=len(responses),
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a project by ID."""
    project = await get_project_or_404(db, project_id)
    return _project_to_response(project, await _goal_count(db, project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a project."""
    project = await get_project_or_404(db, project_id)

    # Update fields
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(project, field, value)

    await db.commit()
    await db.refresh(project)

    return _project_to_response(project, await _goal_count(db, project_id))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a project and all its data."""
    project = await get_project_or_404(db, project_id)

    await db.delete(project)
    await db.commit()

    return {"status": "deleted", "project_id": project_id}
