"""
Project schedule API - phases, planned activities and schedule statistics
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import CamelModel, envelope, get_accessible_project
from buildtrack.api.schemas import ActivityCreate, ActivityResponse, ActivityUpdate
from buildtrack.config import get_settings
from buildtrack.database import get_db
from buildtrack.models.activity import Activity
from buildtrack.models.project import Project, SchedulePhase
from buildtrack.models.user import User
from buildtrack.services import schedule_service
from buildtrack.utils.validators import validate_required, validate_date_range

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class PhaseResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    start_date: datetime
    end_date: datetime
    status: str
    progress: int
    dependencies: List[int] = []
    activities: List[ActivityResponse] = []
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class PhaseCreate(CamelModel):
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    dependencies: List[int] = []

    @model_validator(mode="after")
    def check_fields(self):
        validate_required(self.name)
        validate_date_range(self.start_date, self.end_date)
        return self


class PhaseUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    dependencies: Optional[List[int]] = None


class OverallStats(CamelModel):
    total_activities: int
    completed_activities: int
    active_activities: int
    delayed_activities: int
    overall_progress: int
    on_schedule: bool
    days_remaining: Optional[int] = None


class ScheduleProject(CamelModel):
    id: int
    title: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str
    progress: int


# --- Helpers ---

async def _load_phases(db: AsyncSession, project_id: int) -> List[SchedulePhase]:
    result = await db.execute(
        select(SchedulePhase)
        .options(selectinload(SchedulePhase.activities))
        .where(SchedulePhase.project_id == project_id)
        .order_by(SchedulePhase.start_date)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _get_phase(db: AsyncSession, project_id: int, phase_id: int) -> SchedulePhase:
    result = await db.execute(
        select(SchedulePhase)
        .options(selectinload(SchedulePhase.activities))
        .where(SchedulePhase.id == phase_id, SchedulePhase.project_id == project_id)
        .execution_options(populate_existing=True)
    )
    phase = result.scalar_one_or_none()
    if not phase:
        raise HTTPException(status_code=404, detail="Phase not found")
    return phase


async def _check_dependencies(db: AsyncSession, project_id: int, dependencies: List[int], phase_id: Optional[int] = None):
    if not dependencies:
        return
    if phase_id is not None and phase_id in dependencies:
        raise HTTPException(status_code=400, detail="A phase cannot depend on itself")
    result = await db.execute(
        select(SchedulePhase.id).where(
            SchedulePhase.project_id == project_id,
            SchedulePhase.id.in_(dependencies),
        )
    )
    found = set(result.scalars().all())
    missing = sorted(set(dependencies) - found)
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown dependency phases: {missing}")


def _project_summary(project: Project) -> ScheduleProject:
    return ScheduleProject.model_validate(project)


# --- Phase Endpoints ---

@router.get("/{project_id}/schedule")
async def get_schedule(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Schedule with derived phase progress, overall stats and upcoming work"""
    project = await get_accessible_project(db, project_id, current_user)
    phases = await _load_phases(db, project_id)

    now = datetime.now()
    for phase in phases:
        schedule_service.refresh_phase(phase, now)
    await db.flush()

    upcoming = schedule_service.upcoming_activities(
        phases, window_days=settings.UPCOMING_WINDOW_DAYS, now=now
    )
    return envelope({
        "project": _project_summary(project),
        "phases": [PhaseResponse.model_validate(p) for p in phases],
        "overallStats": OverallStats(**schedule_service.overall_stats(project, phases, now)),
        "upcomingActivities": [ActivityResponse.model_validate(a) for a in upcoming],
    })


@router.post("/{project_id}/schedule", status_code=201)
async def create_phase(
    project_id: int,
    data: PhaseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Create a schedule phase"""
    await get_accessible_project(db, project_id, current_user)
    await _check_dependencies(db, project_id, data.dependencies)

    phase = SchedulePhase(project_id=project_id, activities=[], **data.model_dump())
    schedule_service.refresh_phase(phase)
    db.add(phase)
    await db.commit()
    logger.info(f"User {current_user.id} created phase '{phase.name}' on project {project_id}")
    return envelope(PhaseResponse.model_validate(phase), message="Phase created successfully")


@router.put("/{project_id}/schedule/{phase_id}")
async def update_phase(
    project_id: int,
    phase_id: int,
    data: PhaseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Update a schedule phase"""
    await get_accessible_project(db, project_id, current_user)
    phase = await _get_phase(db, project_id, phase_id)

    updates = data.model_dump(exclude_none=True)
    if "dependencies" in updates:
        await _check_dependencies(db, project_id, updates["dependencies"], phase_id)
    if "name" in updates:
        try:
            validate_required(updates["name"])
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    for key, value in updates.items():
        setattr(phase, key, value)
    try:
        validate_date_range(phase.start_date, phase.end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    phase.updated_at = datetime.utcnow()
    schedule_service.refresh_phase(phase)
    await db.commit()
    logger.info(f"User {current_user.id} updated phase {phase_id}")
    return envelope(PhaseResponse.model_validate(phase), message="Phase updated successfully")


@router.delete("/{project_id}/schedule/{phase_id}")
async def delete_phase(
    project_id: int,
    phase_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Delete a phase and its activities"""
    await get_accessible_project(db, project_id, current_user)
    phase = await _get_phase(db, project_id, phase_id)

    await db.delete(phase)
    await db.commit()
    logger.info(f"User {current_user.id} deleted phase {phase_id}")
    return envelope(message="Phase deleted successfully")


# --- Phase Activity Endpoints ---

@router.post("/{project_id}/schedule/{phase_id}/activities", status_code=201)
async def add_phase_activity(
    project_id: int,
    phase_id: int,
    data: ActivityCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Add a planned activity to a phase"""
    await get_accessible_project(db, project_id, current_user)
    phase = await _get_phase(db, project_id, phase_id)

    activity = Activity(phase_id=phase.id, created_by=current_user.id, **data.model_dump())
    db.add(activity)
    await db.commit()
    await db.refresh(activity)
    logger.info(f"User {current_user.id} added activity '{activity.title}' to phase {phase_id}")
    return envelope(ActivityResponse.model_validate(activity), message="Activity added successfully")


@router.put("/{project_id}/schedule/{phase_id}/activities/{activity_id}")
async def update_phase_activity(
    project_id: int,
    phase_id: int,
    activity_id: int,
    data: ActivityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Update a planned activity"""
    await get_accessible_project(db, project_id, current_user)
    result = await db.execute(
        select(Activity).where(Activity.id == activity_id, Activity.phase_id == phase_id)
    )
    activity = result.scalar_one_or_none()
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")

    try:
        schedule_service.apply_activity_updates(activity, data.model_dump(exclude_none=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    await db.refresh(activity)
    logger.info(f"User {current_user.id} updated activity {activity_id}")
    return envelope(ActivityResponse.model_validate(activity), message="Activity updated successfully")


@router.delete("/{project_id}/schedule/{phase_id}/activities/{activity_id}")
async def delete_phase_activity(
    project_id: int,
    phase_id: int,
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Remove a planned activity"""
    await get_accessible_project(db, project_id, current_user)
    result = await db.execute(
        select(Activity).where(Activity.id == activity_id, Activity.phase_id == phase_id)
    )
    activity = result.scalar_one_or_none()
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")

    await db.delete(activity)
    await db.commit()
    logger.info(f"User {current_user.id} deleted activity {activity_id} from phase {phase_id}")
    return envelope(message="Activity deleted successfully")
