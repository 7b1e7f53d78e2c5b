"""
Per-entity bindings between a controller and the API routes.

A resource knows which endpoint backs its entity and how to turn a filter
context into request parameters. Controllers only talk to resources.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, NamedTuple, Optional

from buildtrack.dashboard.aggregation import FilterContext, Record
from buildtrack.dashboard.client import ApiClient
from buildtrack.dashboard.errors import UnsupportedOperationError, ValidationError


class Page(NamedTuple):
    records: List[Record]
    meta: Dict[str, Any]


class Resource(ABC):
    name = "record"

    def __init__(self, client: ApiClient):
        self.client = client

    @abstractmethod
    async def fetch(self, context: FilterContext) -> Page:
        pass

    async def create(self, context: FilterContext, payload: dict) -> Any:
        raise UnsupportedOperationError(f"{self.name.capitalize()} records cannot be created here")

    async def update(self, context: FilterContext, record: Record, patch: dict) -> Any:
        raise UnsupportedOperationError(f"{self.name.capitalize()} records cannot be edited here")

    async def update_status(self, context: FilterContext, record: Record, status: str) -> Any:
        return await self.update(context, record, {"status": status})

    async def remove(self, context: FilterContext, record: Record) -> Any:
        raise UnsupportedOperationError(f"{self.name.capitalize()} records cannot be deleted here")


def _require_project(context: FilterContext) -> int:
    if context.project_id is None:
        raise ValidationError("Please select a project first.")
    return context.project_id


def _day(context: FilterContext, record: Optional[Record] = None) -> str:
    if record and record.get("date"):
        return str(record["date"])[:10]
    return context.date or date.today().isoformat()


class SiteActivitiesResource(Resource):
    """Flat activity list across every project the user can see"""
    name = "activity"

    def __init__(self, client: ApiClient, limit: int = 500):
        super().__init__(client)
        self.limit = limit

    async def fetch(self, context: FilterContext) -> Page:
        body = await self.client.send("GET", "/site-schedule/activities", params={
            k: v for k, v in {
                "role": context.role,
                "projectId": context.project_id,
                "limit": self.limit,
            }.items() if v is not None
        })
        return Page(body.get("data") or [], {"total": body.get("total", 0), "pagination": body.get("pagination")})

    async def create(self, context: FilterContext, payload: dict) -> Any:
        return await self.client.post("/site-schedule/daily", json={
            "projectId": _require_project(context),
            "date": _day(context),
            "activity": payload,
        })

    async def update(self, context: FilterContext, record: Record, patch: dict) -> Any:
        return await self.client.put("/site-schedule/daily", json={
            "projectId": record.get("projectId", context.project_id),
            "date": _day(context, record),
            "activityId": record["id"],
            "updates": patch,
        })

    async def update_status(self, context: FilterContext, record: Record, status: str) -> Any:
        return await self.client.patch(f"/site-schedule/activity/{record['id']}", json={"status": status})

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete("/site-schedule/daily", params={
            "projectId": record.get("projectId", context.project_id),
            "date": _day(context, record),
            "activityId": record["id"],
        })


class DailyActivitiesResource(SiteActivitiesResource):
    """Activities logged for one project on one day"""

    async def fetch(self, context: FilterContext) -> Page:
        data = await self.client.get("/site-schedule/daily", params={
            "projectId": _require_project(context),
            "date": _day(context),
        })
        activities = data.pop("activities", [])
        return Page(activities, {"summary": data.get("summary", {}), "day": data})


class ScheduleResource(Resource):
    """Schedule phases of one project"""
    name = "phase"

    async def fetch(self, context: FilterContext) -> Page:
        project_id = _require_project(context)
        data = await self.client.get(f"/projects/{project_id}/schedule")
        return Page(data.get("phases", []), {
            "project": data.get("project"),
            "overallStats": data.get("overallStats", {}),
            "upcomingActivities": data.get("upcomingActivities", []),
        })

    async def create(self, context: FilterContext, payload: dict) -> Any:
        return await self.client.post(f"/projects/{_require_project(context)}/schedule", json=payload)

    async def update(self, context: FilterContext, record: Record, patch: dict) -> Any:
        return await self.client.put(f"/projects/{_require_project(context)}/schedule/{record['id']}", json=patch)

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete(f"/projects/{_require_project(context)}/schedule/{record['id']}")


class MilestonesResource(Resource):
    name = "milestone"

    async def fetch(self, context: FilterContext) -> Page:
        project_id = _require_project(context)
        data = await self.client.get(f"/projects/{project_id}/milestones")
        return Page(data.get("milestones", []), {"progress": data.get("progress", {})})

    async def create(self, context: FilterContext, payload: dict) -> Any:
        return await self.client.post(f"/projects/{_require_project(context)}/milestones", json=payload)

    async def update(self, context: FilterContext, record: Record, patch: dict) -> Any:
        return await self.client.put(f"/milestones/{record['id']}", json=patch)

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete(f"/milestones/{record['id']}")


class CalendarResource(Resource):
    name = "event"

    async def fetch(self, context: FilterContext) -> Page:
        params = {"projectId": context.project_id}
        if context.date_range is not None:
            start, end = context.date_range
            params["start"] = start.isoformat()
            params["end"] = end.isoformat()
        return Page(await self.client.get("/calendar/", params=params), {})

    async def create(self, context: FilterContext, payload: dict) -> Any:
        if context.project_id is not None:
            payload = {"projectId": context.project_id, **payload}
        return await self.client.post("/calendar/", json=payload)

    async def update(self, context: FilterContext, record: Record, patch: dict) -> Any:
        return await self.client.put(f"/calendar/{record['id']}", json=patch)

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete(f"/calendar/{record['id']}")


class FilesResource(Resource):
    """Project file library; `client_view` limits the list to public files"""
    name = "file"

    def __init__(self, client: ApiClient, client_view: bool = False):
        super().__init__(client)
        self.client_view = client_view

    async def fetch(self, context: FilterContext) -> Page:
        data = await self.client.get("/files/", params={
            "client": "true" if self.client_view else None,
            "projectId": context.project_id,
        })
        return Page(data.get("files", []), {"stats": data.get("stats", {})})

    async def create(self, context: FilterContext, payload: dict) -> Any:
        """payload: filename, content, contentType and optional description, isPublic and a tags list"""
        return await self.client.upload_file(
            project_id=_require_project(context),
            filename=payload["filename"],
            content=payload["content"],
            content_type=payload.get("contentType", "application/octet-stream"),
            description=payload.get("description"),
            is_public=payload.get("isPublic", False),
            tags=payload.get("tags"),
        )

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete(f"/files/{record['id']}")


class ActivityCommentsResource(Resource):
    """Comment thread of one daily activity; comments are added or deleted, never edited"""
    name = "comment"

    def __init__(self, client: ApiClient, activity_id: int):
        super().__init__(client)
        self.activity_id = activity_id

    async def fetch(self, context: FilterContext) -> Page:
        data = await self.client.get(f"/site-schedule/daily/{self.activity_id}/comments")
        return Page(data.get("comments", []), {
            "activityTitle": data.get("activityTitle"),
            "totalComments": data.get("totalComments", 0),
        })

    async def create(self, context: FilterContext, payload: dict) -> Any:
        return await self.client.post(f"/site-schedule/daily/{self.activity_id}/comments", json={
            "content": payload.get("content"),
            "attachments": list(payload.get("attachments") or []),
        })

    async def remove(self, context: FilterContext, record: Record) -> Any:
        return await self.client.delete(
            f"/site-schedule/daily/{self.activity_id}/comments", params={"commentId": record["id"]}
        )
