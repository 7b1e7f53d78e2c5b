"""
View-model controller - one per page/role/entity combination.

Owns the fetched record set and the filter context, and routes every write
through its resource. Writes never splice the local list: a successful
mutation is followed by a full reload.

Each load is tagged with an increasing request token. A response that
arrives after a newer load was issued is discarded, so the most recently
requested scope is what ends up on screen.
"""
import enum
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from buildtrack.dashboard.aggregation import (
    SCOPE_FIELDS,
    ActivityStats,
    FilterContext,
    Record,
    compute_stats,
    filter_records,
    group_by_phase_and_week,
)
from buildtrack.dashboard.errors import DashboardError, ValidationError
from buildtrack.dashboard.notifications import Notifier
from buildtrack.dashboard.resources import Resource

logger = logging.getLogger(__name__)

# called as validator(draft) on create and validator(merged, changes=patch) on update
Validator = Callable[..., dict]


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class ViewModelController:
    def __init__(
        self,
        resource: Resource,
        notifier: Optional[Notifier] = None,
        validator: Optional[Validator] = None,
        context: Optional[FilterContext] = None,
    ):
        self.resource = resource
        self.notifier = notifier or Notifier()
        self.validator = validator
        self.context = context or FilterContext()

        self.records: List[Record] = []
        self.meta: Dict[str, Any] = {}
        self.state = LoadState.IDLE
        self._request_token = 0

    @property
    def loading(self) -> bool:
        return self.state == LoadState.LOADING

    # --- Reads ---

    async def load(self, context: Optional[FilterContext] = None) -> bool:
        """Replace the record set with a fresh fetch; False if it failed or went stale"""
        if context is not None:
            self.context = context
        self._request_token += 1
        token = self._request_token
        self.state = LoadState.LOADING

        try:
            page = await self.resource.fetch(self.context)
        except DashboardError as e:
            if token != self._request_token:
                logger.debug(f"Discarding stale {self.resource.name} load error (request {token})")
                return False
            self.state = LoadState.ERRORED
            self.notifier.error(e.message)
            return False

        if token != self._request_token:
            logger.debug(f"Discarding stale {self.resource.name} response (request {token})")
            return False

        self.records = list(page.records)
        self.meta = dict(page.meta)
        self.state = LoadState.LOADED
        return True

    async def refresh(self) -> bool:
        return await self.load()

    async def apply_filter(self, **changes) -> List[Record]:
        """Update the filter context; only scope changes trigger a fetch"""
        previous = self.context
        self.context = replace(self.context, **changes)
        if any(getattr(previous, f) != getattr(self.context, f) for f in SCOPE_FIELDS):
            await self.load()
        return self.visible_records()

    # --- Derived view data ---

    def visible_records(self) -> List[Record]:
        return filter_records(self.records, self.context)

    def stats(self) -> ActivityStats:
        return compute_stats(self.visible_records())

    def grouped(self) -> Dict[str, Dict[int, List[Record]]]:
        return group_by_phase_and_week(self.visible_records())

    def find(self, record_id: Any) -> Optional[Record]:
        return next((r for r in self.records if r.get("id") == record_id), None)

    # --- Writes ---

    async def create(self, draft: dict) -> bool:
        payload = self._validate(draft)
        if payload is None:
            return False
        return await self._mutate(
            f"{self.resource.name.capitalize()} created successfully",
            lambda: self.resource.create(self.context, payload),
        )

    async def update(self, record_id: Any, patch: dict) -> bool:
        record = self._require(record_id)
        if record is None:
            return False
        if self.validator is not None:
            checked = self._validate({**record, **patch}, changes=patch)
            if checked is None:
                return False
            patch = {key: checked.get(key, value) for key, value in patch.items()}
        return await self._mutate(
            f"{self.resource.name.capitalize()} updated successfully",
            lambda: self.resource.update(self.context, record, patch),
        )

    async def update_status(self, record_id: Any, status: str) -> bool:
        record = self._require(record_id)
        if record is None:
            return False
        return await self._mutate(
            "Status updated",
            lambda: self.resource.update_status(self.context, record, status),
        )

    async def remove(self, record_id: Any) -> bool:
        record = self._require(record_id)
        if record is None:
            return False
        return await self._mutate(
            f"{self.resource.name.capitalize()} deleted successfully",
            lambda: self.resource.remove(self.context, record),
        )

    # --- Internals ---

    def _validate(self, draft: dict, changes: Optional[dict] = None) -> Optional[dict]:
        if self.validator is None:
            return draft
        try:
            if changes is None:
                return self.validator(draft)
            return self.validator(draft, changes=changes)
        except ValidationError as e:
            self.notifier.validation(e.message)
            return None

    def _require(self, record_id: Any) -> Optional[Record]:
        record = self.find(record_id)
        if record is None:
            self.notifier.error(f"{self.resource.name.capitalize()} not found")
        return record

    async def _mutate(self, success_message: str, call: Callable[[], Awaitable[Any]]) -> bool:
        try:
            await call()
        except ValidationError as e:
            self.notifier.validation(e.message)
            return False
        except DashboardError as e:
            self.notifier.error(e.message)
            return False

        self.notifier.success(success_message)
        await self.refresh()
        return True
