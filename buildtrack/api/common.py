"""
Shared API helpers - response envelope, camelCase schemas, project access scoping
"""
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models.project import Project
from buildtrack.models.user import User, UserRole
from buildtrack.utils.helpers import to_naive_utc


class CamelModel(BaseModel):
    """Schema base: snake_case in Python, camelCase on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        use_enum_values = True

    @field_validator("*", mode="after")
    @classmethod
    def naive_utc_datetimes(cls, value):
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """Wrap a payload in the {success, data} envelope every endpoint returns"""
    body = {"success": True, "data": jsonable_encoder(data, by_alias=True)}
    if message:
        body["message"] = message
    for key, value in extra.items():
        body[key] = jsonable_encoder(value, by_alias=True)
    return body


def error_body(message: str) -> dict:
    return {"success": False, "error": message}


def scope_projects(query, user: User):
    """Restrict a Project query to the projects the user may see"""
    if user.role == UserRole.MANAGER.value:
        return query.where(Project.manager_id == user.id)
    if user.role == UserRole.CLIENT.value:
        return query.where(Project.client_id == user.id)
    return query


async def get_accessible_project(db: AsyncSession, project_id: int, user: User) -> Project:
    """Load a project the user has access to, else 404"""
    query = scope_projects(select(Project).where(Project.id == project_id), user)
    result = await db.execute(query)
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found or access denied")
    return project


async def accessible_project_ids(db: AsyncSession, user: User) -> list[int]:
    result = await db.execute(scope_projects(select(Project.id), user))
    return list(result.scalars().all())
