"""
Site schedule API - daily progress records, activity comment threads and the flat activity feed
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import (
    CamelModel,
    accessible_project_ids,
    envelope,
    get_accessible_project,
)
from buildtrack.api.schemas import (
    ActivityCreate,
    ActivityResponse,
    ActivityUpdate,
    SiteActivityResponse,
    StatusUpdate,
)
from buildtrack.database import get_db
from buildtrack.models.activity import Activity
from buildtrack.models.activity_comment import ActivityComment
from buildtrack.models.daily_progress import DailyProgress
from buildtrack.models.project import Project
from buildtrack.models.user import User, UserRole
from buildtrack.services import schedule_service
from buildtrack.utils.validators import validate_comment

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class DailySummary(CamelModel):
    total_activities: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    delayed: int = 0


class DailyProgressResponse(CamelModel):
    id: Optional[int] = None
    project_id: int
    date: str
    activities: List[ActivityResponse] = []
    summary: DailySummary
    weather_condition: Optional[str] = None
    site_condition: Optional[str] = None
    general_notes: Optional[str] = None
    crew_size: Optional[int] = None
    approved: bool = False


class DailyActivityCreate(CamelModel):
    project_id: int
    date: str
    activity: ActivityCreate


class DailyActivityUpdate(CamelModel):
    project_id: int
    date: str
    activity_id: int
    updates: ActivityUpdate


class CommentCreate(CamelModel):
    content: str
    attachments: List[str] = []

    @model_validator(mode="after")
    def check_content(self):
        validate_comment(self.content)
        return self


class CommentResponse(CamelModel):
    id: int
    user_id: int
    user_name: str
    user_role: str
    content: str
    attachments: List[str] = []
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class CommentThread(CamelModel):
    activity_id: int
    activity_title: str
    comments: List[CommentResponse]
    total_comments: int


class DailyNotesUpdate(CamelModel):
    project_id: int
    date: str
    weather_condition: Optional[str] = None
    site_condition: Optional[str] = None
    general_notes: Optional[str] = None
    crew_size: Optional[int] = None


# --- Helpers ---

def _parse_day(raw: str) -> date:
    try:
        return date.fromisoformat(raw[:10])
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid date: {raw}")


async def _find_day(db: AsyncSession, project_id: int, day: date) -> Optional[DailyProgress]:
    result = await db.execute(
        select(DailyProgress)
        .options(selectinload(DailyProgress.activities))
        .where(DailyProgress.project_id == project_id, DailyProgress.date == day)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _build_day_response(project_id: int, day: date, record: Optional[DailyProgress]) -> DailyProgressResponse:
    if record is None:
        return DailyProgressResponse(project_id=project_id, date=day.isoformat(), summary=DailySummary())
    return DailyProgressResponse(
        id=record.id,
        project_id=record.project_id,
        date=record.date.isoformat(),
        activities=[ActivityResponse.model_validate(a) for a in record.activities],
        summary=DailySummary(**schedule_service.daily_summary(record.activities)),
        weather_condition=record.weather_condition,
        site_condition=record.site_condition,
        general_notes=record.general_notes,
        crew_size=record.crew_size,
        approved=bool(record.approved),
    )


async def _get_or_create_day(db: AsyncSession, project_id: int, day: date, user: User) -> DailyProgress:
    record = await _find_day(db, project_id, day)
    if record is None:
        record = DailyProgress(project_id=project_id, date=day, activities=[], submitted_by=user.id)
        db.add(record)
    return record


# --- Daily Progress Endpoints ---

@router.get("/daily")
async def get_daily_progress(
    project_id: int = Query(..., alias="projectId"),
    day: str = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Activities logged for one project on one day (empty day if none)"""
    await get_accessible_project(db, project_id, current_user)
    parsed = _parse_day(day)
    record = await _find_day(db, project_id, parsed)
    return envelope(_build_day_response(project_id, parsed, record))


@router.post("/daily", status_code=201)
async def add_daily_activity(
    data: DailyActivityCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Add an activity to a day, creating the day record if needed"""
    await get_accessible_project(db, data.project_id, current_user)
    day = _parse_day(data.date)
    record = await _get_or_create_day(db, data.project_id, day, current_user)

    activity = Activity(created_by=current_user.id, **data.activity.model_dump())
    record.activities.append(activity)
    await db.commit()

    logger.info(f"User {current_user.id} added activity '{activity.title}' to project {data.project_id} on {day}")
    return envelope(_build_day_response(data.project_id, day, record), message="Activity added successfully")


@router.put("/daily")
async def update_daily_activity(
    data: DailyActivityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Update one activity of a day"""
    await get_accessible_project(db, data.project_id, current_user)
    day = _parse_day(data.date)
    record = await _find_day(db, data.project_id, day)
    if record is None:
        raise HTTPException(status_code=404, detail="Daily progress not found")

    activity = next((a for a in record.activities if a.id == data.activity_id), None)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")

    try:
        schedule_service.apply_activity_updates(activity, data.updates.model_dump(exclude_none=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"User {current_user.id} updated activity {activity.id}")
    return envelope(_build_day_response(data.project_id, day, record), message="Activity updated successfully")


@router.delete("/daily")
async def delete_daily_activity(
    project_id: int = Query(..., alias="projectId"),
    day: str = Query(..., alias="date"),
    activity_id: int = Query(..., alias="activityId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Remove one activity from a day"""
    await get_accessible_project(db, project_id, current_user)
    parsed = _parse_day(day)
    record = await _find_day(db, project_id, parsed)
    if record is None:
        raise HTTPException(status_code=404, detail="Daily progress not found")

    activity = next((a for a in record.activities if a.id == activity_id), None)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")

    record.activities.remove(activity)
    record.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"User {current_user.id} deleted activity {activity_id}")
    return envelope(_build_day_response(project_id, parsed, record), message="Activity deleted successfully")


@router.put("/daily/notes")
async def update_daily_notes(
    data: DailyNotesUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Weather, site condition, crew size and general notes for a day"""
    await get_accessible_project(db, data.project_id, current_user)
    day = _parse_day(data.date)
    record = await _get_or_create_day(db, data.project_id, day, current_user)

    updates = data.model_dump(exclude_none=True, exclude={"project_id", "date"})
    for key, value in updates.items():
        setattr(record, key, value)
    record.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"User {current_user.id} updated site notes for project {data.project_id} on {day}")
    return envelope(_build_day_response(data.project_id, day, record), message="Notes saved")


# --- Activity Feed ---

@router.get("/activities")
async def list_site_activities(
    role: Optional[str] = None,
    project_id: Optional[int] = Query(None, alias="projectId"),
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    skip: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Flat activity list across the user's projects, newest first"""
    if role == UserRole.ADMIN.value and current_user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")

    project_ids = await accessible_project_ids(db, current_user)
    if project_id is not None:
        if project_id not in project_ids:
            raise HTTPException(status_code=404, detail="Project not found or access denied")
        project_ids = [project_id]

    query = (
        select(Activity, DailyProgress.date, Project.id, Project.title)
        .join(DailyProgress, Activity.daily_progress_id == DailyProgress.id)
        .join(Project, DailyProgress.project_id == Project.id)
        .where(Project.id.in_(project_ids))
        .order_by(Activity.created_at.desc(), Activity.id.desc())
    )
    if status:
        query = query.where(Activity.status == status)

    rows = (await db.execute(query)).all()
    activities = [
        SiteActivityResponse(
            **ActivityResponse.model_validate(activity).model_dump(),
            project_id=pid,
            project_title=title,
            date=day,
        )
        for activity, day, pid, title in rows
    ]

    total = len(activities)
    page = activities[skip:skip + limit]
    total_pages = -(-total // limit)
    return envelope(
        page,
        total=total,
        pagination={
            "page": skip // limit + 1,
            "limit": limit,
            "totalPages": total_pages,
            "hasNext": skip + limit < total,
            "hasPrev": skip > 0,
        },
    )


@router.patch("/activity/{activity_id}")
async def update_activity_status(
    activity_id: int,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Single-field status change, allowed for any role with project access"""
    result = await db.execute(
        select(Activity)
        .options(selectinload(Activity.daily_progress), selectinload(Activity.schedule_phase))
        .where(Activity.id == activity_id)
    )
    activity = result.scalar_one_or_none()
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")

    owner = activity.daily_progress or activity.schedule_phase
    await get_accessible_project(db, owner.project_id, current_user)

    schedule_service.apply_activity_updates(activity, {"status": data.status}, current_user.id)
    await db.commit()
    logger.info(f"User {current_user.id} set activity {activity_id} status to {data.status}")
    return envelope(ActivityResponse.model_validate(activity), message="Status updated")


# --- Activity Comments ---

async def _get_daily_activity(db: AsyncSession, activity_id: int, user: User) -> Activity:
    result = await db.execute(
        select(Activity)
        .options(selectinload(Activity.daily_progress))
        .where(Activity.id == activity_id, Activity.daily_progress_id.is_not(None))
    )
    activity = result.scalar_one_or_none()
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")
    await get_accessible_project(db, activity.daily_progress.project_id, user)
    return activity


async def _load_comments(db: AsyncSession, activity_id: int) -> List[ActivityComment]:
    result = await db.execute(
        select(ActivityComment)
        .where(ActivityComment.activity_id == activity_id)
        .order_by(ActivityComment.created_at, ActivityComment.id)
    )
    return list(result.scalars().all())


@router.get("/daily/{activity_id}/comments")
async def list_activity_comments(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Comment thread of a daily activity, oldest first"""
    activity = await _get_daily_activity(db, activity_id, current_user)
    comments = await _load_comments(db, activity_id)
    return envelope(CommentThread(
        activity_id=activity.id,
        activity_title=activity.title,
        comments=[CommentResponse.model_validate(c) for c in comments],
        total_comments=len(comments),
    ))


@router.post("/daily/{activity_id}/comments", status_code=201)
async def add_activity_comment(
    activity_id: int,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Any role with access to the project may comment, clients included"""
    activity = await _get_daily_activity(db, activity_id, current_user)

    comment = ActivityComment(
        activity_id=activity.id,
        user_id=current_user.id,
        user_name=current_user.full_name,
        user_role=current_user.role,
        content=data.content.strip(),
        attachments=data.attachments,
    )
    db.add(comment)
    activity.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(comment)

    logger.info(f"User {current_user.id} commented on activity {activity_id}")
    return envelope(CommentResponse.model_validate(comment), message="Comment added successfully")


@router.delete("/daily/{activity_id}/comments")
async def delete_activity_comment(
    activity_id: int,
    comment_id: int = Query(..., alias="commentId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Authors delete their own comments; admins and managers delete any"""
    await _get_daily_activity(db, activity_id, current_user)
    comment = await db.get(ActivityComment, comment_id)
    if comment is None or comment.activity_id != activity_id:
        raise HTTPException(status_code=404, detail="Comment not found")

    if comment.user_id != current_user.id and current_user.role == UserRole.CLIENT.value:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")

    await db.delete(comment)
    await db.commit()
    logger.info(f"User {current_user.id} deleted comment {comment_id} on activity {activity_id}")
    return envelope(message="Comment deleted successfully")
