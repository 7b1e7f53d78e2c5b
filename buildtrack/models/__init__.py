from buildtrack.models.user import User, UserRole
from buildtrack.models.project import Project, ProjectStatus, SchedulePhase, PhaseStatus
from buildtrack.models.activity import (
    Activity,
    ActivityStatus,
    ActivityPriority,
    ActivityCategory,
    ActivityPhase,
)
from buildtrack.models.activity_comment import ActivityComment
from buildtrack.models.daily_progress import DailyProgress
from buildtrack.models.milestone import Milestone, MilestoneStatus, MilestonePriority
from buildtrack.models.calendar_event import CalendarEvent, EventType
from buildtrack.models.project_file import ProjectFile, FileCategory

__all__ = [
    "User",
    "UserRole",
    "Project",
    "ProjectStatus",
    "SchedulePhase",
    "PhaseStatus",
    "Activity",
    "ActivityStatus",
    "ActivityPriority",
    "ActivityCategory",
    "ActivityPhase",
    "ActivityComment",
    "DailyProgress",
    "Milestone",
    "MilestoneStatus",
    "MilestonePriority",
    "CalendarEvent",
    "EventType",
    "ProjectFile",
    "FileCategory",
]
