"""
Activity schemas shared by the schedule and site-schedule endpoints
"""
from datetime import datetime, date as date_type
from typing import List, Optional

from pydantic import Field, model_validator

from buildtrack.api.common import CamelModel
from buildtrack.models.activity import ActivityStatus, ActivityPriority, ActivityCategory, ActivityPhase
from buildtrack.utils.validators import validate_required, validate_datetime_range


class ActivityResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    contractor: str
    supervisor: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: str
    priority: str
    category: str
    progress: int = 0
    images: List[str] = []
    phase: Optional[str] = None
    week_number: Optional[int] = None
    comments: Optional[str] = None
    phase_id: Optional[int] = None
    daily_progress_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SiteActivityResponse(ActivityResponse):
    """Flat list entry with its owning project and day"""
    project_id: int
    project_title: str
    date: Optional[date_type] = None


class ActivityCreate(CamelModel):
    title: str
    description: Optional[str] = None
    contractor: str
    supervisor: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: ActivityStatus = ActivityStatus.TODO
    priority: ActivityPriority = ActivityPriority.MEDIUM
    category: ActivityCategory = ActivityCategory.OTHER
    progress: int = Field(default=0, ge=0, le=100)
    images: List[str] = []
    phase: Optional[ActivityPhase] = None
    week_number: Optional[int] = Field(default=None, ge=1)
    comments: Optional[str] = None

    @model_validator(mode="after")
    def check_fields(self):
        validate_required(self.title, self.contractor)
        validate_datetime_range(self.start_date, self.end_date)
        return self


class ActivityUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    contractor: Optional[str] = None
    supervisor: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[ActivityStatus] = None
    priority: Optional[ActivityPriority] = None
    category: Optional[ActivityCategory] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    images: Optional[List[str]] = None
    phase: Optional[ActivityPhase] = None
    week_number: Optional[int] = Field(default=None, ge=1)
    comments: Optional[str] = None

    @model_validator(mode="after")
    def check_text(self):
        if self.title is not None:
            validate_required(self.title)
        if self.contractor is not None:
            validate_required(self.contractor)
        return self


class StatusUpdate(CamelModel):
    status: ActivityStatus
