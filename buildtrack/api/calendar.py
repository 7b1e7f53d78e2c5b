"""
Calendar API - meetings, inspections, deliveries and deadlines
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import model_validator
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import CamelModel, accessible_project_ids, envelope, get_accessible_project
from buildtrack.database import get_db
from buildtrack.models.calendar_event import CalendarEvent, EventType
from buildtrack.models.user import User, UserRole
from buildtrack.utils.helpers import get_date_range, to_naive_utc
from buildtrack.utils.validators import validate_required, validate_datetime_range

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class EventResponse(CamelModel):
    id: int
    title: str
    description: Optional[str]
    type: str
    start: datetime
    end: datetime
    location: Optional[str]
    project_id: Optional[int]
    visible_to_client: bool = False
    created_by: Optional[int]
    created_at: Optional[datetime]


class EventCreate(CamelModel):
    title: str
    description: Optional[str] = None
    type: EventType = EventType.MEETING
    start: datetime
    end: datetime
    location: Optional[str] = None
    project_id: Optional[int] = None
    visible_to_client: bool = False

    @model_validator(mode="after")
    def check_fields(self):
        validate_required(self.title)
        validate_datetime_range(self.start, self.end)
        return self


class EventUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[EventType] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None
    project_id: Optional[int] = None
    visible_to_client: Optional[bool] = None


async def _get_event(db: AsyncSession, event_id: int, user: User) -> CalendarEvent:
    event = await db.get(CalendarEvent, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.project_id is not None:
        await get_accessible_project(db, event.project_id, user)
    return event


# --- Endpoints ---

@router.get("/")
async def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    type: Optional[str] = None,
    project_id: Optional[int] = Query(None, alias="projectId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Events overlapping a window (defaults to the coming week)"""
    if start is None or end is None:
        default_start, default_end = get_date_range("week")
        start = start or default_start
        end = end or default_end
    start, end = to_naive_utc(start), to_naive_utc(end)

    project_ids = await accessible_project_ids(db, current_user)
    if project_id is not None:
        if project_id not in project_ids:
            raise HTTPException(status_code=404, detail="Project not found or access denied")
        project_ids = [project_id]

    query = (
        select(CalendarEvent)
        .where(CalendarEvent.start < end, CalendarEvent.end > start)
        .order_by(CalendarEvent.start)
    )
    if project_id is not None or current_user.role == UserRole.CLIENT.value:
        query = query.where(CalendarEvent.project_id.in_(project_ids))
    elif current_user.role == UserRole.MANAGER.value:
        query = query.where(or_(
            CalendarEvent.project_id.in_(project_ids),
            CalendarEvent.project_id.is_(None),
        ))
    if current_user.role == UserRole.CLIENT.value:
        query = query.where(CalendarEvent.visible_to_client.is_(True))
    if type:
        query = query.where(CalendarEvent.type == type)

    result = await db.execute(query)
    return envelope([EventResponse.model_validate(e) for e in result.scalars().all()])


@router.post("/", status_code=201)
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Create a calendar event"""
    if data.project_id is not None:
        await get_accessible_project(db, data.project_id, current_user)

    event = CalendarEvent(created_by=current_user.id, **data.model_dump())
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info(f"User {current_user.id} created {event.type} event '{event.title}'")
    return envelope(EventResponse.model_validate(event), message="Event created successfully")


@router.put("/{event_id}")
async def update_event(
    event_id: int,
    data: EventUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Update a calendar event"""
    event = await _get_event(db, event_id, current_user)

    updates = data.model_dump(exclude_none=True)
    if "project_id" in updates:
        await get_accessible_project(db, updates["project_id"], current_user)
    for key, value in updates.items():
        setattr(event, key, value)
    try:
        validate_required(event.title)
        validate_datetime_range(event.start, event.end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    await db.refresh(event)
    logger.info(f"User {current_user.id} updated event {event_id}")
    return envelope(EventResponse.model_validate(event), message="Event updated successfully")


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Delete a calendar event"""
    event = await _get_event(db, event_id, current_user)

    await db.delete(event)
    await db.commit()
    logger.info(f"User {current_user.id} deleted event {event_id}")
    return envelope(message="Event deleted successfully")
