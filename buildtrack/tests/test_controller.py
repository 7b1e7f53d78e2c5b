"""
View-model controller behaviour against scripted HTTP responses
"""
import asyncio
import json
from datetime import date, timedelta

import httpx

from buildtrack.dashboard.aggregation import FilterContext
from buildtrack.dashboard.client import ApiClient
from buildtrack.dashboard.controller import LoadState, ViewModelController
from buildtrack.dashboard.errors import APIError, NetworkError
from buildtrack.dashboard.forms import ActivityForm, MilestoneForm
from buildtrack.dashboard.notifications import Notifier, NotificationKind
from buildtrack.dashboard.resources import (
    DailyActivitiesResource, FilesResource, MilestonesResource, SiteActivitiesResource,
)

DAY = "2025-05-13"


def day_body(*titles, status="pending"):
    activities = [
        {"id": i + 1, "title": t, "contractor": "Acme", "status": status,
         "startDate": f"{DAY}T09:00:00", "endDate": f"{DAY}T17:00:00"}
        for i, t in enumerate(titles)
    ]
    return {
        "success": True,
        "data": {
            "projectId": 1,
            "date": DAY,
            "activities": activities,
            "summary": {"totalActivities": len(activities), "completed": 0,
                        "inProgress": 0, "pending": len(activities), "delayed": 0},
        },
    }


def make_controller(handler, **kwargs):
    api = ApiClient(base_url="http://test/api", token="t", transport=httpx.MockTransport(handler))
    notifier = Notifier()
    controller = ViewModelController(
        DailyActivitiesResource(api), notifier,
        context=FilterContext(project_id=1, date=DAY), **kwargs
    )
    return controller, notifier


async def test_load_replaces_records():
    controller, notifier = make_controller(lambda request: httpx.Response(200, json=day_body("Pour slab", "Strip forms")))
    assert controller.state == LoadState.IDLE

    assert await controller.load() is True
    assert controller.state == LoadState.LOADED
    assert [r["title"] for r in controller.records] == ["Pour slab", "Strip forms"]
    assert controller.meta["summary"]["totalActivities"] == 2
    assert notifier.history == []


async def test_load_sends_scope_parameters():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=day_body())

    controller, _ = make_controller(handler)
    await controller.load()

    assert seen[0].url.path == "/api/site-schedule/daily"
    assert seen[0].url.params["projectId"] == "1"
    assert seen[0].url.params["date"] == DAY
    assert seen[0].headers["Authorization"] == "Bearer t"


async def test_failed_load_keeps_previous_records():
    responses = [
        httpx.Response(200, json=day_body("Pour slab")),
        httpx.Response(500, json={"success": False, "error": "Database unavailable"}),
    ]
    controller, notifier = make_controller(lambda request: responses.pop(0))

    await controller.load()
    assert await controller.load() is False

    assert controller.state == LoadState.ERRORED
    assert [r["title"] for r in controller.records] == ["Pour slab"]
    assert notifier.last.kind == NotificationKind.ERROR
    assert notifier.last.title == "Error"
    assert notifier.last.description == "Database unavailable"


async def test_success_false_is_a_failure_even_with_200():
    controller, notifier = make_controller(lambda request: httpx.Response(200, json={"success": False, "error": "Nope"}))
    assert await controller.load() is False
    assert notifier.last.description == "Nope"


async def test_network_failure_notifies():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    controller, notifier = make_controller(handler)
    assert await controller.load() is False
    assert controller.state == LoadState.ERRORED
    assert notifier.last.kind == NotificationKind.ERROR
    assert "connection refused" in notifier.last.description


async def test_non_json_error_uses_fallback_message():
    controller, notifier = make_controller(lambda request: httpx.Response(502, text="Bad Gateway"))
    await controller.load()
    assert notifier.last.description == APIError().message


async def test_client_maps_errors():
    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(
        lambda request: httpx.Response(404, json={"success": False, "error": "Phase not found"})
    ))
    try:
        await api.get("/projects/1/schedule")
    except APIError as e:
        assert e.status_code == 404
        assert e.message == "Phase not found"
    else:
        raise AssertionError("APIError not raised")

    def refuse(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(refuse))
    try:
        await api.get("/projects/")
    except NetworkError:
        pass
    else:
        raise AssertionError("NetworkError not raised")


async def test_mutation_triggers_full_reload():
    requests = []
    state = {"titles": ["Pour slab"]}

    def handler(request):
        requests.append((request.method, request.url.path))
        if request.method == "POST":
            body = json.loads(request.content)
            state["titles"].append(body["activity"]["title"])
            return httpx.Response(201, json=day_body(*state["titles"]))
        return httpx.Response(200, json=day_body(*state["titles"]))

    controller, notifier = make_controller(handler)
    await controller.load()

    created = await controller.create({
        "title": "Strip forms", "contractor": "Acme",
        "startDate": f"{DAY}T09:00:00", "endDate": f"{DAY}T12:00:00",
    })

    assert created is True
    assert requests == [
        ("GET", "/api/site-schedule/daily"),
        ("POST", "/api/site-schedule/daily"),
        ("GET", "/api/site-schedule/daily"),
    ]
    assert [r["title"] for r in controller.records] == ["Pour slab", "Strip forms"]
    assert notifier.last.kind == NotificationKind.SUCCESS


async def test_failed_mutation_does_not_reload():
    requests = []

    def handler(request):
        requests.append(request.method)
        if request.method == "DELETE":
            return httpx.Response(403, json={"success": False, "error": "Requires role: admin, manager"})
        return httpx.Response(200, json=day_body("Pour slab"))

    controller, notifier = make_controller(handler)
    await controller.load()

    assert await controller.remove(1) is False
    assert requests == ["GET", "DELETE"]
    assert notifier.last.description == "Requires role: admin, manager"


async def test_validation_failure_issues_no_request():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=day_body())

    controller, notifier = make_controller(handler, validator=ActivityForm())
    created = await controller.create({
        "title": "Pour slab", "contractor": "Acme",
        "startDate": "2025-05-13T09:00", "endDate": "2025-05-13T08:00",
    })

    assert created is False
    assert requests == []
    assert notifier.last.kind == NotificationKind.VALIDATION
    assert notifier.last.title == "Validation Error"
    assert notifier.last.description == "End Date & Time must be after Start Date & Time"


async def test_update_status_uses_patch():
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path))
        return httpx.Response(200, json=day_body("Pour slab"))

    controller, _ = make_controller(handler)
    await controller.load()
    assert await controller.update_status(1, "completed") is True
    assert ("PATCH", "/api/site-schedule/activity/1") in requests


async def test_update_unknown_record():
    controller, notifier = make_controller(lambda request: httpx.Response(200, json=day_body("Pour slab")))
    await controller.load()
    assert await controller.update(99, {"title": "x"}) is False
    assert notifier.last.description == "Activity not found"


async def test_apply_filter_refetches_only_on_scope_change():
    requests = []

    def handler(request):
        requests.append(dict(request.url.params))
        return httpx.Response(200, json=day_body("Pour slab", "Strip forms"))

    controller, _ = make_controller(handler)
    await controller.load()

    visible = await controller.apply_filter(search_text="strip")
    assert [r["title"] for r in visible] == ["Strip forms"]
    assert len(requests) == 1

    await controller.apply_filter(date="2025-05-14")
    assert len(requests) == 2
    assert requests[-1]["date"] == "2025-05-14"
    assert controller.stats().total == 1


async def test_stale_load_is_discarded():
    """Project A answers after project B; B was requested last, so B stays on screen"""
    a_started = asyncio.Event()
    release_a = asyncio.Event()

    async def handler(request):
        project_id = request.url.params["projectId"]
        if project_id == "1":
            a_started.set()
            await release_a.wait()
            return httpx.Response(200, json=day_body("Project A work"))
        return httpx.Response(200, json=day_body("Project B work"))

    controller, notifier = make_controller(handler)

    load_a = asyncio.create_task(controller.load(FilterContext(project_id=1, date=DAY)))
    await a_started.wait()
    loaded_b = await controller.load(FilterContext(project_id=2, date=DAY))
    release_a.set()
    loaded_a = await load_a

    assert loaded_b is True
    assert loaded_a is False
    assert [r["title"] for r in controller.records] == ["Project B work"]
    assert controller.context.project_id == 2
    assert controller.state == LoadState.LOADED


async def test_stale_failure_is_not_reported():
    a_started = asyncio.Event()
    release_a = asyncio.Event()

    async def handler(request):
        if request.url.params["projectId"] == "1":
            a_started.set()
            await release_a.wait()
            return httpx.Response(500, json={"success": False, "error": "late failure"})
        return httpx.Response(200, json=day_body("Project B work"))

    controller, notifier = make_controller(handler)
    load_a = asyncio.create_task(controller.load(FilterContext(project_id=1, date=DAY)))
    await a_started.wait()
    await controller.load(FilterContext(project_id=2, date=DAY))
    release_a.set()
    await load_a

    assert controller.state == LoadState.LOADED
    assert notifier.of_kind(NotificationKind.ERROR) == []


async def test_site_activities_meta():
    body = {
        "success": True,
        "data": [{"id": 7, "title": "Demolition", "status": "pending", "projectId": 1,
                  "projectTitle": "Harbour View", "date": DAY}],
        "total": 1,
        "pagination": {"page": 1, "limit": 500, "totalPages": 1, "hasNext": False, "hasPrev": False},
    }
    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=body)))
    controller = ViewModelController(SiteActivitiesResource(api), Notifier(), context=FilterContext(role="manager"))
    await controller.load()
    assert controller.meta["total"] == 1
    assert controller.records[0]["projectTitle"] == "Harbour View"


async def test_unsupported_write_is_reported_not_raised():
    requests = []
    body = {"success": True, "data": {"files": [{"id": 3, "originalName": "plan.pdf", "status": "active"}], "stats": {}}}

    def handler(request):
        requests.append(request.method)
        return httpx.Response(200, json=body)

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    notifier = Notifier()
    controller = ViewModelController(FilesResource(api), notifier, context=FilterContext(project_id=1))
    await controller.load()

    assert await controller.update_status(3, "completed") is False
    assert notifier.last.kind == NotificationKind.ERROR
    assert notifier.last.description == "File records cannot be edited here"

    assert await controller.update(3, {"description": "Revised"}) is False
    assert notifier.last.description == "File records cannot be edited here"
    assert requests == ["GET"]
    assert controller.state == LoadState.LOADED


async def test_overdue_milestone_edit_is_sent():
    overdue = (date.today() - timedelta(days=3)).isoformat()
    sent = []

    def handler(request):
        if request.method == "PUT":
            sent.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "data": {}})
        return httpx.Response(200, json={"success": True, "data": {
            "milestones": [{"id": 4, "title": "Council permit", "dueDate": overdue, "status": "overdue"}],
            "progress": {},
        }})

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    notifier = Notifier()
    controller = ViewModelController(
        MilestonesResource(api), notifier, validator=MilestoneForm(notifier), context=FilterContext(project_id=1),
    )
    await controller.load()

    assert await controller.update(4, {"status": "completed", "progress": 100}) is True
    assert sent == [{"status": "completed", "progress": 100}]
    assert notifier.of_kind(NotificationKind.VALIDATION) == []
