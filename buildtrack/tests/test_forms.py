"""
Form validation, image staging/upload and end-to-end dashboard flows
"""
import json
from datetime import date, datetime, timedelta

import httpx
import pytest

from buildtrack.dashboard.aggregation import FilterContext
from buildtrack.dashboard.client import ApiClient
from buildtrack.dashboard.controller import ViewModelController
from buildtrack.dashboard.errors import ValidationError
from buildtrack.dashboard.forms import ActivityForm, CommentForm, ImageUpload, MilestoneForm, PhaseForm
from buildtrack.dashboard.notifications import Notifier, NotificationKind
from buildtrack.dashboard.resources import (
    ActivityCommentsResource, CalendarResource, DailyActivitiesResource, FilesResource, MilestonesResource,
    ScheduleResource,
)
from buildtrack.models.activity import (
    ActivityCategory, ActivityPhase, ActivityPriority, ActivityStatus,
    ACTIVITY_CATEGORY_LABELS, ACTIVITY_PHASE_LABELS, ACTIVITY_PRIORITY_LABELS, ACTIVITY_STATUS_LABELS,
)
from buildtrack.models.milestone import Milestone, MilestoneStatus, MILESTONE_STATUS_LABELS
from buildtrack.models.project import PhaseStatus, ProjectStatus, PHASE_STATUS_LABELS, PROJECT_STATUS_LABELS

DAY = "2025-05-13"
MB = 1024 * 1024


def draft(**overrides):
    body = {
        "title": "Pour slab",
        "contractor": "Concrete Co",
        "startDate": f"{DAY}T09:00",
        "endDate": f"{DAY}T17:00",
    }
    body.update(overrides)
    return body


# ===================== VALIDATION RULES =====================


def test_activity_end_before_start():
    with pytest.raises(ValidationError) as exc:
        ActivityForm().validate(draft(endDate=f"{DAY}T08:00"))
    assert exc.value.message == "End Date & Time must be after Start Date & Time"


def test_activity_end_equal_to_start():
    with pytest.raises(ValidationError):
        ActivityForm().validate(draft(endDate=f"{DAY}T09:00"))


@pytest.mark.parametrize("field", ["title", "contractor"])
def test_activity_required_text(field):
    with pytest.raises(ValidationError) as exc:
        ActivityForm().validate(draft(**{field: "   "}))
    assert exc.value.message == "Please fill in all required fields."


def test_activity_payload_is_normalized():
    payload = ActivityForm().validate(draft(title="  Pour slab ", priority="high"))
    assert payload["title"] == "Pour slab"
    assert payload["startDate"] == "2025-05-13T09:00:00"
    assert payload["priority"] == "high"


def test_check_reports_validation_error():
    notifier = Notifier()
    assert ActivityForm(notifier=notifier).check(draft(contractor="")) is None
    assert notifier.last.title == "Validation Error"


def test_phase_end_before_start():
    with pytest.raises(ValidationError) as exc:
        PhaseForm().validate({"name": "Structure", "startDate": "2025-06-10", "endDate": "2025-06-01"})
    assert exc.value.message == "End Date must be after Start Date"


def test_phase_payload():
    payload = PhaseForm().validate({
        "name": " Structure ", "startDate": "2025-06-01", "endDate": "2025-06-10", "dependencies": [3],
    })
    assert payload == {
        "name": "Structure",
        "description": None,
        "startDate": "2025-06-01T00:00:00",
        "endDate": "2025-06-10T00:00:00",
        "dependencies": [3],
    }


def test_milestone_due_date_rules():
    today = date.today()
    form = MilestoneForm()
    assert form.validate({"title": "Handover", "dueDate": today.isoformat()})["dueDate"] == today.isoformat()

    with pytest.raises(ValidationError) as exc:
        form.validate({"title": "Handover", "dueDate": (today - timedelta(days=1)).isoformat()})
    assert exc.value.message == "Due date cannot be in the past"


def test_overdue_milestone_can_still_be_edited():
    past = (date.today() - timedelta(days=3)).isoformat()
    form = MilestoneForm()
    record = {"title": "Council permit", "dueDate": past, "status": "overdue"}

    payload = form.validate({**record, "status": "completed"}, changes={"status": "completed"})
    assert payload["status"] == "completed"
    assert payload["dueDate"] == past

    with pytest.raises(ValidationError) as exc:
        form.validate(record, changes={"dueDate": past})
    assert exc.value.message == "Due date cannot be in the past"


def test_utc_suffix_is_converted_to_naive_utc():
    payload = ActivityForm().validate(draft(startDate=f"{DAY}T09:00:00Z", endDate=f"{DAY}T19:00:00+02:00"))
    assert payload["startDate"] == "2025-05-13T09:00:00"
    assert payload["endDate"] == "2025-05-13T17:00:00"


def test_invalid_date_string():
    with pytest.raises(ValidationError):
        ActivityForm().validate(draft(startDate="next tuesday"))


def test_label_tables_cover_every_tag():
    tables = [
        (ActivityStatus, ACTIVITY_STATUS_LABELS),
        (ActivityPriority, ACTIVITY_PRIORITY_LABELS),
        (ActivityCategory, ACTIVITY_CATEGORY_LABELS),
        (ActivityPhase, ACTIVITY_PHASE_LABELS),
        (MilestoneStatus, MILESTONE_STATUS_LABELS),
        (PhaseStatus, PHASE_STATUS_LABELS),
        (ProjectStatus, PROJECT_STATUS_LABELS),
    ]
    for enum_cls, labels in tables:
        assert set(labels) == set(enum_cls), enum_cls.__name__


# ===================== IMAGE STAGING =====================


def png(name, size=128):
    return ImageUpload(filename=name, content_type="image/png", content=b"\x89PNG" + b"\x00" * (size - 4))


def test_stage_images_drops_invalid_files():
    notifier = Notifier()
    form = ActivityForm(notifier=notifier)
    files = [
        png("ok.png"),
        ImageUpload(filename="notes.pdf", content_type="application/pdf", content=b"%PDF"),
        png("huge.png", size=10 * MB + 1),
        png("exactly-ten.png", size=10 * MB),
    ]

    accepted = form.stage_images(files)

    assert [f.filename for f in accepted] == ["ok.png", "exactly-ten.png"]
    rejected = notifier.of_kind(NotificationKind.VALIDATION)
    assert len(rejected) == 2
    assert "notes.pdf" in rejected[0].description
    assert "huge.png" in rejected[1].description


async def test_submit_skips_oversized_image_and_creates_with_the_rest():
    uploads = []
    created = []

    def handler(request):
        if request.url.path == "/api/files/":
            uploads.append(request)
            return httpx.Response(201, json={"success": True, "data": {"url": f"https://cdn.test/img{len(uploads)}.png"}})
        if request.method == "POST":
            created.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True, "data": {}})
        return httpx.Response(200, json={"success": True, "data": {"activities": [], "summary": {}}})

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    notifier = Notifier()
    form = ActivityForm(api, notifier)
    controller = ViewModelController(
        DailyActivitiesResource(api), notifier, validator=form,
        context=FilterContext(project_id=1, date=DAY),
    )

    ok = await form.submit(controller, draft(), images=[
        png("front.png"), png("huge.png", size=10 * MB + 1), png("back.png"),
    ])

    assert ok is True
    assert len(uploads) == 2
    assert len(notifier.of_kind(NotificationKind.VALIDATION)) == 1
    assert created[0]["activity"]["images"] == ["https://cdn.test/img1.png", "https://cdn.test/img2.png"]


async def test_submit_tolerates_failed_upload():
    calls = {"uploads": 0}
    created = []

    def handler(request):
        if request.url.path == "/api/files/":
            calls["uploads"] += 1
            if calls["uploads"] == 1:
                return httpx.Response(500, json={"success": False, "error": "Storage offline"})
            return httpx.Response(201, json={"success": True, "data": {"url": "https://cdn.test/second.png"}})
        if request.method == "POST":
            created.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True, "data": {}})
        return httpx.Response(200, json={"success": True, "data": {"activities": [], "summary": {}}})

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    notifier = Notifier()
    form = ActivityForm(api, notifier)
    controller = ViewModelController(DailyActivitiesResource(api), notifier, context=FilterContext(project_id=1, date=DAY))

    assert await form.submit(controller, draft(), images=[png("first.png"), png("second.png")]) is True
    assert created[0]["activity"]["images"] == ["https://cdn.test/second.png"]
    failures = [n for n in notifier.history if n.title == "Upload failed"]
    assert len(failures) == 1
    assert "first.png" in failures[0].description


async def test_invalid_draft_uploads_nothing():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": {}})

    api = ApiClient(base_url="http://test/api", transport=httpx.MockTransport(handler))
    form = ActivityForm(api)
    controller = ViewModelController(DailyActivitiesResource(api), form.notifier, context=FilterContext(project_id=1, date=DAY))

    ok = await form.submit(controller, draft(endDate=f"{DAY}T08:00"), images=[png("front.png")])

    assert ok is False
    assert requests == []


# ===================== END TO END (real app) =====================


async def test_daily_page_flow(dashboard_api, seed_data):
    notifier = Notifier()
    form = ActivityForm(dashboard_api, notifier)
    controller = ViewModelController(
        DailyActivitiesResource(dashboard_api), notifier, validator=form,
        context=FilterContext(project_id=seed_data["project"].id, date=DAY),
    )

    assert await controller.load() is True
    assert controller.records == []

    assert await form.submit(controller, draft()) is True
    assert await form.submit(controller, draft(title="Strip forms", startDate=f"{DAY}T10:00", phase="construction", weekNumber=2)) is True
    assert [r["title"] for r in controller.records] == ["Pour slab", "Strip forms"]
    assert controller.meta["summary"]["totalActivities"] == 2

    first = controller.records[0]["id"]
    assert await controller.update_status(first, "completed") is True
    stats = controller.stats()
    assert (stats.total, stats.completed, stats.pending, stats.progress) == (2, 1, 1, 50)

    grouped = controller.grouped()
    assert list(grouped["construction"]) == [1, 2]

    assert await controller.update(first, {"endDate": f"{DAY}T08:00"}) is False
    assert notifier.last.description == "End Date & Time must be after Start Date & Time"

    assert await controller.remove(first) is True
    assert [r["title"] for r in controller.records] == ["Strip forms"]


async def test_schedule_and_milestone_pages(dashboard_api, seed_data):
    project_id = seed_data["project"].id
    notifier = Notifier()

    schedule = ViewModelController(
        ScheduleResource(dashboard_api), notifier, validator=PhaseForm(notifier),
        context=FilterContext(project_id=project_id),
    )
    assert await schedule.create({
        "name": "Fit-out",
        "startDate": (date.today() + timedelta(days=1)).isoformat(),
        "endDate": (date.today() + timedelta(days=15)).isoformat(),
    }) is True
    assert [p["name"] for p in schedule.records] == ["Fit-out"]
    assert schedule.records[0]["status"] == "upcoming"
    assert schedule.meta["overallStats"]["totalActivities"] == 0

    milestones = ViewModelController(
        MilestonesResource(dashboard_api), notifier, validator=MilestoneForm(notifier),
        context=FilterContext(project_id=project_id),
    )
    assert await milestones.create({
        "title": "Practical completion",
        "dueDate": (date.today() + timedelta(days=30)).isoformat(),
        "priority": "critical",
    }) is True
    assert milestones.meta["progress"] == {"total": 1, "completed": 0, "overdue": 0, "percentage": 0}

    milestone_id = milestones.records[0]["id"]
    assert await milestones.update_status(milestone_id, "completed") is True
    assert milestones.records[0]["status"] == "completed"
    assert milestones.meta["progress"]["percentage"] == 100


async def test_completing_an_overdue_milestone(dashboard_api, db_session, seed_data):
    project_id = seed_data["project"].id
    db_session.add(Milestone(project_id=project_id, title="Council permit",
                             due_date=date.today() - timedelta(days=3)))
    await db_session.commit()

    notifier = Notifier()
    milestones = ViewModelController(
        MilestonesResource(dashboard_api), notifier, validator=MilestoneForm(notifier),
        context=FilterContext(project_id=project_id),
    )
    await milestones.load()
    assert milestones.records[0]["status"] == "overdue"

    milestone_id = milestones.records[0]["id"]
    assert await milestones.update(milestone_id, {"status": "completed", "progress": 100}) is True
    assert notifier.of_kind(NotificationKind.VALIDATION) == []
    assert milestones.records[0]["status"] == "completed"

    assert await milestones.update(milestone_id, {"dueDate": (date.today() - timedelta(days=1)).isoformat()}) is False
    assert notifier.last.description == "Due date cannot be in the past"


async def test_activity_comment_thread_page(dashboard_api, seed_data):
    day = await dashboard_api.post("/site-schedule/daily", json={
        "projectId": seed_data["project"].id,
        "date": DAY,
        "activity": {"title": "Tile bathroom", "contractor": "Tilers United",
                     "startDate": f"{DAY}T09:00:00", "endDate": f"{DAY}T17:00:00"},
    })
    activity_id = day["activities"][0]["id"]

    notifier = Notifier()
    thread = ViewModelController(
        ActivityCommentsResource(dashboard_api, activity_id), notifier, validator=CommentForm(notifier),
    )
    assert await thread.load() is True
    assert thread.records == []
    assert thread.meta == {"activityTitle": "Tile bathroom", "totalComments": 0}

    assert await thread.create({"content": "   "}) is False
    assert notifier.last.description == "Comment content is required"

    assert await thread.create({"content": " Grout colour confirmed "}) is True
    assert [c["content"] for c in thread.records] == ["Grout colour confirmed"]
    assert thread.records[0]["userName"] == "Max Manager"
    assert thread.meta["totalComments"] == 1

    comment_id = thread.records[0]["id"]
    assert await thread.update(comment_id, {"content": "edited"}) is False
    assert notifier.last.kind == NotificationKind.ERROR
    assert notifier.last.description == "Comment records cannot be edited here"

    assert await thread.remove(comment_id) is True
    assert thread.records == []


async def test_client_role_cannot_edit_through_dashboard(db_session, seed_data):
    from httpx import ASGITransport

    from buildtrack.api.auth import create_access_token
    from buildtrack.database import get_db
    from buildtrack.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    token = create_access_token(data={"sub": seed_data["client"].email})
    async with ApiClient(base_url="http://test/api", token=token, transport=ASGITransport(app=app)) as api:
        notifier = Notifier()
        controller = ViewModelController(
            MilestonesResource(api), notifier, context=FilterContext(project_id=seed_data["project"].id),
        )
        assert await controller.load() is True
        created = await controller.create({"title": "Sneaky", "dueDate": date.today().isoformat()})
    app.dependency_overrides.clear()

    assert created is False
    assert notifier.last.kind == NotificationKind.ERROR
    assert notifier.last.description == "Requires role: admin, manager"


async def test_calendar_page_window(dashboard_api, seed_data):
    project_id = seed_data["project"].id
    monday = datetime.combine(date.today(), datetime.min.time())
    controller = ViewModelController(
        CalendarResource(dashboard_api), Notifier(),
        context=FilterContext(project_id=project_id, date_range=(monday, monday + timedelta(days=7))),
    )

    assert await controller.create({
        "title": "Client walkthrough",
        "type": "meeting",
        "start": (monday + timedelta(days=2, hours=10)).isoformat(),
        "end": (monday + timedelta(days=2, hours=11)).isoformat(),
        "visibleToClient": True,
    }) is True
    assert [e["title"] for e in controller.records] == ["Client walkthrough"]
    assert controller.records[0]["projectId"] == project_id

    await controller.apply_filter(date_range=(monday + timedelta(days=7), monday + timedelta(days=14)))
    assert controller.records == []


async def test_file_library_page(dashboard_api, seed_data, upload_root):
    project_id = seed_data["project"].id
    controller = ViewModelController(
        FilesResource(dashboard_api), Notifier(), context=FilterContext(project_id=project_id),
    )

    assert await controller.create({
        "filename": "site-plan.pdf",
        "content": b"%PDF-1.4 plan",
        "contentType": "application/pdf",
        "isPublic": True,
        "tags": ["plans", "permits"],
    }) is True
    assert [f["originalName"] for f in controller.records] == ["site-plan.pdf"]
    assert controller.records[0]["tags"] == ["plans", "permits"]
    assert controller.meta["stats"]["totalFiles"] == 1
    assert controller.meta["stats"]["byCategory"] == {"document": 1}

    assert await controller.remove(controller.records[0]["id"]) is True
    assert controller.records == []
    assert controller.meta["stats"]["totalSize"] == 0
