"""
Form/dialog controllers: validate drafts and stage image attachments.

A form is callable, so it can be handed to a ViewModelController as its
validator. Validation rules are shared with the API schemas through
buildtrack.utils.validators, so the dashboard rejects exactly what the
server would.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from buildtrack.config import get_settings
from buildtrack.dashboard.client import ApiClient
from buildtrack.dashboard.controller import ViewModelController
from buildtrack.dashboard.errors import DashboardError, UploadError, ValidationError
from buildtrack.dashboard.notifications import Notifier
from buildtrack.utils.helpers import to_naive_utc
from buildtrack.utils.validators import (
    REQUIRED_FIELDS_MESSAGE,
    validate_date_range,
    validate_datetime_range,
    validate_due_date,
    validate_comment,
    validate_required,
)

settings = get_settings()
logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    return to_naive_utc(parsed)


def _parse_date(value) -> Optional[date]:
    parsed = _parse_datetime(value)
    return parsed.date() if parsed else None


class BaseForm:
    """Validates drafts; subclasses implement `clean()`.

    `changes` is None when creating. On an edit it holds the patched keys,
    so rules that only apply to new records can be skipped.
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or Notifier()

    def clean(self, draft: dict, changes: Optional[dict] = None) -> dict:
        return dict(draft)

    def validate(self, draft: dict, changes: Optional[dict] = None) -> dict:
        """Normalized payload, or ValidationError with the user-facing message"""
        try:
            return self.clean(draft, changes)
        except ValidationError:
            raise
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def __call__(self, draft: dict, changes: Optional[dict] = None) -> dict:
        return self.validate(draft, changes)

    def check(self, draft: dict) -> Optional[dict]:
        """Like validate(), but reports the failure as a notification"""
        try:
            return self.validate(draft)
        except ValidationError as e:
            self.notifier.validation(e.message)
            return None


class ActivityForm(BaseForm):
    """Activity create/edit dialog with image attachments"""

    def __init__(self, client: Optional[ApiClient] = None, notifier: Optional[Notifier] = None):
        super().__init__(notifier)
        self.client = client

    def clean(self, draft: dict, changes: Optional[dict] = None) -> dict:
        title = draft.get("title")
        contractor = draft.get("contractor")
        validate_required(title, contractor)

        start = _parse_datetime(draft.get("startDate"))
        end = _parse_datetime(draft.get("endDate"))
        validate_datetime_range(start, end)

        payload = dict(draft)
        payload.update(
            title=title.strip(),
            contractor=contractor.strip(),
            startDate=start.isoformat(),
            endDate=end.isoformat(),
        )
        return payload

    def stage_images(self, files: Iterable[ImageUpload]) -> List[ImageUpload]:
        """Keep valid images; each rejected file gets its own notification"""
        accepted = []
        for upload in files:
            if not (upload.content_type or "").startswith("image/"):
                self.notifier.validation(f"{upload.filename} is not an image file.")
                continue
            if upload.size > MAX_IMAGE_BYTES:
                self.notifier.validation(
                    f"{upload.filename} is larger than {settings.MAX_IMAGE_SIZE_MB}MB."
                )
                continue
            accepted.append(upload)
        return accepted

    async def upload_images(self, project_id: int, images: Iterable[ImageUpload]) -> List[str]:
        """Upload one at a time; failed uploads are skipped, not retried"""
        urls = []
        for upload in images:
            try:
                urls.append(await self.client.upload_file(
                    project_id=project_id,
                    filename=upload.filename,
                    content=upload.content,
                    content_type=upload.content_type,
                ))
            except DashboardError as e:
                failure = UploadError(upload.filename, e.message)
                logger.warning(f"Skipping image {failure.filename}: {failure.message}")
                self.notifier.error(f"{failure.filename}: {failure.message}", title="Upload failed")
        return urls

    async def submit(
        self,
        controller: ViewModelController,
        draft: dict,
        images: Iterable[ImageUpload] = (),
        record_id=None,
    ) -> bool:
        """Validate, upload staged images, then create or update via the controller"""
        payload = self.check(draft)
        if payload is None:
            return False

        staged = self.stage_images(images)
        if staged:
            if self.client is None:
                raise RuntimeError("ActivityForm needs an ApiClient to upload images")
            project_id = payload.get("projectId") or controller.context.project_id
            if project_id is None:
                self.notifier.validation(REQUIRED_FIELDS_MESSAGE)
                return False
            urls = await self.upload_images(project_id, staged)
            payload["images"] = list(payload.get("images") or []) + urls

        payload.pop("projectId", None)
        if record_id is None:
            return await controller.create(payload)
        return await controller.update(record_id, payload)


class PhaseForm(BaseForm):
    def clean(self, draft: dict, changes: Optional[dict] = None) -> dict:
        name = draft.get("name")
        validate_required(name)

        start = _parse_datetime(draft.get("startDate"))
        end = _parse_datetime(draft.get("endDate"))
        validate_date_range(start, end)

        return {
            "name": name.strip(),
            "description": draft.get("description") or None,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "dependencies": list(draft.get("dependencies") or []),
        }


class MilestoneForm(BaseForm):
    def clean(self, draft: dict, changes: Optional[dict] = None) -> dict:
        title = draft.get("title")
        validate_required(title)
        due = _parse_date(draft.get("dueDate"))
        if due is None:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        # past due dates are only rejected when the date itself is being set
        if changes is None or "dueDate" in changes:
            validate_due_date(due)

        payload = {
            "title": title.strip(),
            "description": draft.get("description") or None,
            "dueDate": due.isoformat(),
            "priority": draft.get("priority") or "medium",
            "assignedTo": draft.get("assignedTo"),
            "dependencies": list(draft.get("dependencies") or []),
        }
        for key in ("status", "progress"):
            if draft.get(key) is not None:
                payload[key] = draft[key]
        return payload


class CommentForm(BaseForm):
    def clean(self, draft: dict, changes: Optional[dict] = None) -> dict:
        return {
            "content": validate_comment(draft.get("content")),
            "attachments": list(draft.get("attachments") or []),
        }
