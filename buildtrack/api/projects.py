"""
Projects API endpoints - role-scoped project list, progress and status updates
"""
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import CamelModel, envelope, get_accessible_project, scope_projects
from buildtrack.database import get_db
from buildtrack.models.project import Project, ProjectStatus
from buildtrack.models.user import User, UserRole
from buildtrack.utils.validators import validate_required, validate_date_range

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class ProjectResponse(CamelModel):
    id: int
    title: str
    description: Optional[str]
    site_address: Optional[str]
    status: str
    progress: int
    start_date: Optional[date]
    end_date: Optional[date]
    manager_id: Optional[int]
    manager_name: Optional[str] = None
    client_id: Optional[int]
    client_name: Optional[str] = None
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class ProjectCreate(CamelModel):
    title: str
    description: Optional[str] = None
    site_address: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    progress: int = Field(default=0, ge=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    manager_id: Optional[int] = None
    client_id: Optional[int] = None

    @model_validator(mode="after")
    def check_fields(self):
        validate_required(self.title)
        if self.start_date and self.end_date:
            validate_date_range(self.start_date, self.end_date)
        return self


class ProjectUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    site_address: Optional[str] = None
    status: Optional[ProjectStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    manager_id: Optional[int] = None
    client_id: Optional[int] = None


# --- Helper ---

def _build_project_response(p: Project) -> ProjectResponse:
    response = ProjectResponse.model_validate(p)
    response.manager_name = p.manager.full_name if p.manager else None
    response.client_name = p.client.full_name if p.client else None
    return response


async def _load_project(db: AsyncSession, project_id: int) -> Project:
    result = await db.execute(
        select(Project)
        .options(selectinload(Project.manager), selectinload(Project.client))
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# --- Endpoints ---

@router.get("/")
async def list_projects(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the projects visible to the current user"""
    query = (
        select(Project)
        .options(selectinload(Project.manager), selectinload(Project.client))
        .order_by(Project.updated_at.desc())
    )
    query = scope_projects(query, current_user)
    if status:
        query = query.where(Project.status == status)

    result = await db.execute(query)
    return envelope([_build_project_response(p) for p in result.scalars().all()])


@router.get("/{project_id}")
async def get_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a single project"""
    await get_accessible_project(db, project_id, current_user)
    project = await _load_project(db, project_id)
    return envelope(_build_project_response(project))


@router.post("/", status_code=201)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Create a new project; managers become the project's manager"""
    values = data.model_dump(exclude_none=True)
    if current_user.role == UserRole.MANAGER.value:
        values["manager_id"] = current_user.id

    project = Project(**values)
    db.add(project)
    await db.commit()

    project = await _load_project(db, project.id)
    logger.info(f"User {current_user.id} created project '{project.title}' ({project.id})")
    return envelope(_build_project_response(project), message="Project created successfully")


@router.put("/{project_id}")
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Update project details, progress or status"""
    await get_accessible_project(db, project_id, current_user)
    project = await _load_project(db, project_id)

    updates = data.model_dump(exclude_none=True)
    if "title" in updates:
        try:
            validate_required(updates["title"])
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    for key, value in updates.items():
        setattr(project, key, value)
    if project.start_date and project.end_date:
        try:
            validate_date_range(project.start_date, project.end_date)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    if updates.get("status") == ProjectStatus.COMPLETED.value:
        project.progress = 100

    project.updated_at = datetime.utcnow()
    await db.commit()

    project = await _load_project(db, project_id)
    logger.info(f"User {current_user.id} updated project {project_id}")
    return envelope(_build_project_response(project), message="Project updated successfully")


@router.delete("/{project_id}")
async def archive_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor)
):
    """Projects are never deleted; they are archived as cancelled"""
    project = await get_accessible_project(db, project_id, current_user)

    project.status = ProjectStatus.CANCELLED.value
    project.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"User {current_user.id} archived project {project_id}")
    return envelope({"id": project_id, "status": project.status}, message="Project cancelled")
