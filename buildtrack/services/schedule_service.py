"""
Schedule derivations - activity/phase status, progress and summary statistics.

The server is the single source of truth for phase progress: it is
recomputed from child activity completion on every schedule read and
written back onto the phase row.
"""
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from buildtrack.models.activity import Activity, ActivityStatus
from buildtrack.models.milestone import Milestone, MilestoneStatus
from buildtrack.models.project import Project, SchedulePhase, PhaseStatus
from buildtrack.utils.helpers import percentage
from buildtrack.utils.validators import END_BEFORE_START_DATETIME_MESSAGE

OPEN_STATUSES = {
    ActivityStatus.TODO.value,
    ActivityStatus.PENDING.value,
    ActivityStatus.IN_PROGRESS.value,
}


def derive_activity_status(activity: Activity, now: Optional[datetime] = None) -> str:
    """Effective status of a planned activity at `now`"""
    now = now or datetime.now()
    if activity.status == ActivityStatus.COMPLETED.value or (activity.progress or 0) >= 100:
        return ActivityStatus.COMPLETED.value
    if activity.status == ActivityStatus.ON_HOLD.value:
        return ActivityStatus.ON_HOLD.value
    if activity.end_date and now > activity.end_date:
        return ActivityStatus.DELAYED.value
    if (activity.progress or 0) > 0:
        return ActivityStatus.IN_PROGRESS.value
    if activity.status in OPEN_STATUSES:
        return activity.status
    return ActivityStatus.PENDING.value


def derive_phase_status(phase: SchedulePhase, progress: int, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    if progress == 100:
        return PhaseStatus.COMPLETED.value
    if now < phase.start_date:
        return PhaseStatus.UPCOMING.value
    if now > phase.end_date:
        return PhaseStatus.DELAYED.value
    return PhaseStatus.ACTIVE.value


def refresh_phase(phase: SchedulePhase, now: Optional[datetime] = None) -> SchedulePhase:
    """Recompute activity statuses, phase progress and phase status in place"""
    now = now or datetime.now()
    for activity in phase.activities:
        activity.status = derive_activity_status(activity, now)
    completed = sum(1 for a in phase.activities if a.status == ActivityStatus.COMPLETED.value)
    phase.progress = percentage(completed, len(phase.activities))
    phase.status = derive_phase_status(phase, phase.progress, now)
    return phase


def overall_stats(project: Project, phases: Iterable[SchedulePhase], now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    activities = [a for p in phases for a in p.activities]
    counts = Counter(a.status for a in activities)
    delayed = counts[ActivityStatus.DELAYED.value]

    days_remaining = None
    if project.end_date:
        days_remaining = max(0, (project.end_date - now.date()).days)

    on_schedule = delayed == 0 and (project.end_date is None or now.date() <= project.end_date)

    return {
        "total_activities": len(activities),
        "completed_activities": counts[ActivityStatus.COMPLETED.value],
        "active_activities": counts[ActivityStatus.IN_PROGRESS.value],
        "delayed_activities": delayed,
        "overall_progress": percentage(counts[ActivityStatus.COMPLETED.value], len(activities)),
        "on_schedule": on_schedule,
        "days_remaining": days_remaining,
    }


def upcoming_activities(
    phases: Iterable[SchedulePhase],
    window_days: int = 14,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> list[Activity]:
    """Open activities starting inside the look-ahead window, earliest first"""
    now = now or datetime.now()
    horizon = now + timedelta(days=window_days)
    candidates = [
        a for p in phases for a in p.activities
        if a.start_date <= horizon and a.status in OPEN_STATUSES
    ]
    candidates.sort(key=lambda a: a.start_date)
    return candidates[:limit]


def daily_summary(activities: Iterable[Activity]) -> dict:
    """Per-status counts for one day's activities; to-do counts as pending"""
    counts = Counter(a.status for a in activities)
    return {
        "total_activities": sum(counts.values()),
        "completed": counts[ActivityStatus.COMPLETED.value],
        "in_progress": counts[ActivityStatus.IN_PROGRESS.value],
        "pending": counts[ActivityStatus.PENDING.value] + counts[ActivityStatus.TODO.value],
        "delayed": counts[ActivityStatus.DELAYED.value],
    }


def apply_activity_updates(activity: Activity, updates: dict, user_id: Optional[int] = None) -> Activity:
    """Apply a partial update; completing an activity pins its progress to 100"""
    start = updates.get("start_date", activity.start_date)
    end = updates.get("end_date", activity.end_date)
    if end <= start:
        raise ValueError(END_BEFORE_START_DATETIME_MESSAGE)
    if updates.get("status") == ActivityStatus.COMPLETED.value:
        updates.setdefault("progress", 100)
    for key, value in updates.items():
        setattr(activity, key, value)
    activity.updated_by = user_id
    activity.updated_at = datetime.utcnow()
    return activity


def derive_milestone_status(milestone: Milestone, today: Optional[date] = None) -> str:
    today = today or date.today()
    if milestone.status == MilestoneStatus.COMPLETED.value:
        return MilestoneStatus.COMPLETED.value
    if milestone.due_date < today:
        return MilestoneStatus.OVERDUE.value
    return milestone.status


def milestone_progress(milestones: Iterable[Milestone], today: Optional[date] = None) -> dict:
    statuses = [derive_milestone_status(m, today) for m in milestones]
    completed = statuses.count(MilestoneStatus.COMPLETED.value)
    return {
        "total": len(statuses),
        "completed": completed,
        "overdue": statuses.count(MilestoneStatus.OVERDUE.value),
        "percentage": percentage(completed, len(statuses)),
    }
