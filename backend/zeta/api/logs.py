"""
System Log API

Endpoints for the project system log.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.system_log import SystemLog, LogEvent
from ..schemas.logs import SystemLogResponse, SystemLogListResponse

router = APIRouter(prefix="/projects/{project_id}", tags=["logs"])


@router.get("/logs", response_model=SystemLogListResponse)
async def get_system_log(
    project_id: str,
    event: Optional[str] = Query(None, description="Filter by event, e.g. project.vision.update"),
    limit: int = Query(100, le=500),
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """
    Get the system log for a project.

    Returns what the user and Zeta did, newest first.
    """
    conditions = [SystemLog.project_id == project_id]

    if event:
        try:
            conditions.append(SystemLog.event == LogEvent(event))
        except ValueError:
            pass  # Invalid event, ignore filter

    stmt = (
        select(SystemLog)
        .where(*conditions)
        .order_by(SystemLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    result = await db.execute(stmt)
    logs = result.scalars().all()

    return SystemLogListResponse(
        logs=[
            SystemLogResponse(
                id=log.id,
                project_id=log.project_id,
                actor=log.actor.value,
                event=log.event.value,
                message=log.message,
                details=log.details or {},
                created_at=log.created_at,
            )
            for log in logs
        ],
        total=len(logs),
    )
