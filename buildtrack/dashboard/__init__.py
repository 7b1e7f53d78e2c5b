"""
Dashboard core: view-model controllers, filtering/aggregation and form
handling on top of the BuildTrack HTTP API.
"""
from buildtrack.dashboard.aggregation import (
    ActivityStats,
    FilterContext,
    compute_stats,
    filter_records,
    group_by_phase_and_week,
    phase_completion,
)
from buildtrack.dashboard.client import ApiClient
from buildtrack.dashboard.controller import LoadState, ViewModelController
from buildtrack.dashboard.errors import (
    APIError,
    DashboardError,
    NetworkError,
    UnsupportedOperationError,
    UploadError,
    ValidationError,
)
from buildtrack.dashboard.forms import ActivityForm, CommentForm, ImageUpload, MilestoneForm, PhaseForm
from buildtrack.dashboard.notifications import Notification, NotificationKind, Notifier
from buildtrack.dashboard.resources import (
    ActivityCommentsResource,
    CalendarResource,
    DailyActivitiesResource,
    FilesResource,
    MilestonesResource,
    Page,
    Resource,
    ScheduleResource,
    SiteActivitiesResource,
)

__all__ = [
    "ActivityStats", "FilterContext", "compute_stats", "filter_records",
    "group_by_phase_and_week", "phase_completion",
    "ApiClient",
    "LoadState", "ViewModelController",
    "APIError", "DashboardError", "NetworkError", "UnsupportedOperationError", "UploadError", "ValidationError",
    "ActivityForm", "CommentForm", "ImageUpload", "MilestoneForm", "PhaseForm",
    "Notification", "NotificationKind", "Notifier",
    "ActivityCommentsResource", "CalendarResource", "DailyActivitiesResource", "FilesResource", "MilestonesResource",
    "Page", "Resource", "ScheduleResource", "SiteActivitiesResource",
]
