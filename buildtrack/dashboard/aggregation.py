"""
Filtering, grouping and statistics over fetched records.

All functions are pure: they never mutate the record list they are given.
Records are the camelCase dicts returned by the API.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from buildtrack.models.activity import ActivityPhase, ActivityStatus, PHASE_ORDER
from buildtrack.utils.helpers import percentage

ALL = "all"
DEFAULT_PHASE = ActivityPhase.CONSTRUCTION.value
DEFAULT_WEEK = 1

SEARCH_FIELDS = ("title", "contractor", "assigneeName", "projectTitle")
DATE_FIELDS = ("startDate", "start", "dueDate", "date")

Record = Dict[str, Any]


@dataclass(frozen=True)
class FilterContext:
    status: str = ALL
    category: str = ALL
    priority: str = ALL
    search_text: str = ""
    project_id: Optional[int] = None
    date: Optional[str] = None
    role: Optional[str] = None
    date_range: Optional[Tuple[datetime, datetime]] = None


# Changing any of these requires a new fetch; the rest filter in memory
SCOPE_FIELDS = ("project_id", "date", "role", "date_range")


@dataclass(frozen=True)
class ActivityStats:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    delayed: int = 0
    progress: int = 0


@dataclass(frozen=True)
class PhaseCompletion:
    completed: int
    total: int
    percentage: int


def _record_datetime(record: Record) -> Optional[datetime]:
    for key in DATE_FIELDS:
        value = record.get(key)
        if not value:
            continue
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, datetime.min.time())
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            return None
    return None


def _matches(record: Record, context: FilterContext) -> bool:
    for field in ("status", "category", "priority"):
        wanted = getattr(context, field)
        if wanted and wanted != ALL and record.get(field) != wanted:
            return False

    if context.project_id is not None and "projectId" in record:
        if record["projectId"] != context.project_id:
            return False

    needle = context.search_text.strip().lower()
    if needle:
        haystack = (str(record.get(f) or "").lower() for f in SEARCH_FIELDS)
        if not any(needle in text for text in haystack):
            return False

    if context.date_range is not None:
        when = _record_datetime(record)
        start, end = context.date_range
        # Undated records stay visible
        if when is not None and not (start <= when < end):
            return False

    return True


def filter_records(records: Iterable[Record], context: FilterContext) -> List[Record]:
    """Subsequence of records matching every non-"all" field of the context"""
    return [r for r in records if _matches(r, context)]


def _phase_of(record: Record) -> str:
    phase = record.get("phase")
    return phase if phase in PHASE_ORDER else DEFAULT_PHASE


def _week_of(record: Record) -> int:
    try:
        week = int(record.get("weekNumber") or DEFAULT_WEEK)
    except (TypeError, ValueError):
        return DEFAULT_WEEK
    return week if week >= 1 else DEFAULT_WEEK


def group_by_phase_and_week(records: Iterable[Record]) -> Dict[str, Dict[int, List[Record]]]:
    """
    Partition activities by construction phase, then by week number.

    Phases come out in construction order and weeks ascending. Only phases
    holding at least one record are present. Records without a phase land
    in construction, records without a week in week 1.
    """
    buckets: Dict[str, Dict[int, List[Record]]] = {}
    for record in records:
        buckets.setdefault(_phase_of(record), {}).setdefault(_week_of(record), []).append(record)

    grouped = {}
    for phase in PHASE_ORDER:
        weeks = buckets.get(phase.value)
        if weeks:
            grouped[phase.value] = {week: weeks[week] for week in sorted(weeks)}
    return grouped


def compute_stats(records: Iterable[Record]) -> ActivityStats:
    counts = Counter(r.get("status") for r in records)
    total = sum(counts.values())
    completed = counts[ActivityStatus.COMPLETED.value]
    return ActivityStats(
        total=total,
        completed=completed,
        in_progress=counts[ActivityStatus.IN_PROGRESS.value],
        pending=counts[ActivityStatus.PENDING.value] + counts[ActivityStatus.TODO.value],
        delayed=counts[ActivityStatus.DELAYED.value],
        progress=percentage(completed, total),
    )


def phase_completion(grouped: Dict[str, Dict[int, List[Record]]]) -> Dict[str, PhaseCompletion]:
    """Header figures for each phase of a grouped view"""
    result = {}
    for phase, weeks in grouped.items():
        records = [r for week in weeks.values() for r in week]
        completed = sum(1 for r in records if r.get("status") == ActivityStatus.COMPLETED.value)
        result[phase] = PhaseCompletion(
            completed=completed,
            total=len(records),
            percentage=percentage(completed, len(records)),
        )
    return result
