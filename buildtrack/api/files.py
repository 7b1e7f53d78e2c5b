"""
Project file library - uploads, listing with stats, downloads
"""
import logging
import os
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.api.auth import get_current_user, require_editor
from buildtrack.api.common import CamelModel, accessible_project_ids, envelope, get_accessible_project
from buildtrack.database import get_db
from buildtrack.models.project_file import ProjectFile
from buildtrack.models.user import User, UserRole
from buildtrack.services.storage_service import FileTooLargeError, storage_service
from buildtrack.utils.helpers import parse_tags

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class FileResponseModel(CamelModel):
    id: int
    project_id: int
    filename: str
    original_name: str
    url: str
    size: int
    mime_type: Optional[str]
    category: str
    tags: List[str] = []
    description: Optional[str]
    is_public: bool = False
    download_count: int = 0
    uploaded_by: Optional[int]
    created_at: Optional[datetime]


class FileStats(CamelModel):
    total_files: int
    total_size: int
    by_category: dict


def _matches(f: ProjectFile, needle: str) -> bool:
    haystack = [f.original_name or "", f.description or ""] + list(f.tags or [])
    return any(needle in text.lower() for text in haystack)


def _file_stats(files: List[ProjectFile]) -> FileStats:
    by_category = {}
    for f in files:
        by_category[f.category] = by_category.get(f.category, 0) + 1
    return FileStats(
        total_files=len(files),
        total_size=sum(f.size or 0 for f in files),
        by_category=by_category,
    )


async def _get_file(db: AsyncSession, file_id: int, user: User) -> ProjectFile:
    record = await db.get(ProjectFile, file_id)
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    await get_accessible_project(db, record.project_id, user)
    if user.role == UserRole.CLIENT.value and not record.is_public:
        raise HTTPException(status_code=404, detail="File not found")
    return record


# --- Endpoints ---

@router.post("/", status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    project_id: int = Form(..., alias="projectId"),
    description: Optional[str] = Form(None),
    is_public: bool = Form(False, alias="isPublic"),
    tags: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Upload a file to a project's library"""
    await get_accessible_project(db, project_id, current_user)

    content = await file.read()
    try:
        category = storage_service.check_size(len(content), file.content_type)
    except FileTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))

    stored_name, file_path, url = storage_service.save(project_id, file.filename, content)
    logger.info(f"User {current_user.id} uploaded '{file.filename}' to project {project_id} ({len(content)} bytes)")

    record = ProjectFile(
        project_id=project_id,
        filename=stored_name,
        original_name=file.filename or stored_name,
        file_path=file_path,
        url=url,
        size=len(content),
        mime_type=file.content_type,
        category=category,
        tags=parse_tags(tags),
        description=description,
        is_public=is_public,
        uploaded_by=current_user.id,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)

    return envelope(FileResponseModel.model_validate(record), message="File uploaded successfully")


@router.get("/")
async def list_files(
    client: bool = False,
    project_id: Optional[int] = Query(None, alias="projectId"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Files across the user's projects with size and category stats"""
    project_ids = await accessible_project_ids(db, current_user)
    if project_id is not None:
        if project_id not in project_ids:
            raise HTTPException(status_code=404, detail="Project not found or access denied")
        project_ids = [project_id]

    query = (
        select(ProjectFile)
        .where(ProjectFile.project_id.in_(project_ids))
        .order_by(ProjectFile.created_at.desc(), ProjectFile.id.desc())
    )
    if client or current_user.role == UserRole.CLIENT.value:
        query = query.where(ProjectFile.is_public.is_(True))
    if category:
        query = query.where(ProjectFile.category == category)

    files = list((await db.execute(query)).scalars().all())
    if search:
        needle = search.strip().lower()
        files = [f for f in files if _matches(f, needle)]

    return envelope({
        "files": [FileResponseModel.model_validate(f) for f in files],
        "stats": _file_stats(files),
    })


@router.get("/{file_id}/download")
async def download_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Stream a stored file and count the download"""
    record = await _get_file(db, file_id, current_user)
    if not os.path.exists(record.file_path):
        raise HTTPException(status_code=404, detail="File missing from storage")

    record.download_count = (record.download_count or 0) + 1
    record.last_accessed_at = datetime.utcnow()
    await db.commit()

    return FileResponse(
        path=record.file_path,
        filename=record.original_name,
        media_type=record.mime_type or "application/octet-stream",
    )


@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_editor),
):
    """Delete a file record and its stored content"""
    record = await _get_file(db, file_id, current_user)

    storage_service.delete(record.file_path)
    await db.delete(record)
    await db.commit()
    logger.info(f"User {current_user.id} deleted file {file_id}")
    return envelope(message="File deleted successfully")
