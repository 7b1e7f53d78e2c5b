"""
Milestones API - per-project milestones with derived overdue status
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import CamelModel, envelope, get_accessible_project
from buildtrack.database import get_db
from buildtrack.models.milestone import Milestone, MilestonePriority, MilestoneStatus
from buildtrack.models.user import User
from buildtrack.services import schedule_service
from buildtrack.utils.validators import validate_required, validate_due_date

logger = logging.getLogger(__name__)

# Mounted under /api/projects
project_router = APIRouter()
# Mounted under /api/milestones
router = APIRouter()


# --- Pydantic Schemas ---

class MilestoneResponse(CamelModel):
    id: int
    project_id: int
    title: str
    description: Optional[str]
    due_date: date
    status: str
    progress: int
    priority: str
    dependencies: List[int] = []
    assigned_to: Optional[int]
    completed_date: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class MilestoneCreate(CamelModel):
    title: str
    description: Optional[str] = None
    due_date: date
    priority: MilestonePriority = MilestonePriority.MEDIUM
    dependencies: List[int] = []
    assigned_to: Optional[int] = None

    @model_validator(mode="after")
    def check_fields(self):
        validate_required(self.title)
        validate_due_date(self.due_date)
        return self


class MilestoneUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    status: Optional[MilestoneStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    priority: Optional[MilestonePriority] = None
    dependencies: Optional[List[int]] = None
    assigned_to: Optional[int] = None


def _build_response(m: Milestone, today: date) -> MilestoneResponse:
    response = MilestoneResponse.model_validate(m)
    response.status = schedule_service.derive_milestone_status(m, today)
    return response


async def _get_milestone(db: AsyncSession, milestone_id: int, user: User) -> Milestone:
    milestone = await db.get(Milestone, milestone_id)
    if not milestone:
        raise HTTPException(status_code=404, detail="Milestone not found")
    await get_accessible_project(db, milestone.project_id, user)
    return milestone


# --- Endpoints ---

@project_router.get("/{project_id}/milestones")
async def list_milestones(
    project_id: int,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Milestones ordered by due date, with overall progress"""
    await get_accessible_project(db, project_id, current_user)
    result = await db.execute(
        select(Milestone)
        .where(Milestone.project_id == project_id)
        .order_by(Milestone.due_date)
    )
    milestones = result.scalars().all()

    today = date.today()
    items = [_build_response(m, today) for m in milestones]
    if status:
        items = [m for m in items if m.status == status]

    return envelope({
        "milestones": items,
        "progress": schedule_service.milestone_progress(milestones, today),
    })


@project_router.post("/{project_id}/milestones", status_code=201)
async def create_milestone(
    project_id: int,
    data: MilestoneCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Create a milestone"""
    await get_accessible_project(db, project_id, current_user)

    milestone = Milestone(project_id=project_id, created_by=current_user.id, **data.model_dump())
    db.add(milestone)
    await db.commit()
    await db.refresh(milestone)

    logger.info(f"User {current_user.id} created milestone '{milestone.title}' on project {project_id}")
    return envelope(_build_response(milestone, date.today()), message="Milestone created successfully")


@router.put("/{milestone_id}")
async def update_milestone(
    milestone_id: int,
    data: MilestoneUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Update a milestone; completing it stamps the completion date"""
    milestone = await _get_milestone(db, milestone_id, current_user)

    updates = data.model_dump(exclude_none=True)
    if "title" in updates:
        try:
            validate_required(updates["title"])
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    for key, value in updates.items():
        setattr(milestone, key, value)

    if updates.get("status") == MilestoneStatus.COMPLETED.value:
        milestone.progress = 100
        milestone.completed_date = milestone.completed_date or datetime.utcnow()
    elif "status" in updates:
        milestone.completed_date = None

    await db.commit()
    await db.refresh(milestone)
    logger.info(f"User {current_user.id} updated milestone {milestone_id}")
    return envelope(_build_response(milestone, date.today()), message="Milestone updated successfully")


@router.delete("/{milestone_id}")
async def delete_milestone(
    milestone_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Delete a milestone"""
    milestone = await _get_milestone(db, milestone_id, current_user)

    await db.delete(milestone)
    await db.commit()
    logger.info(f"User {current_user.id} deleted milestone {milestone_id}")
    return envelope(message="Milestone deleted successfully")
