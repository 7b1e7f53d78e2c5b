"""
Filtering, grouping and statistics over activity records
"""
from dataclasses import asdict
from datetime import datetime

from buildtrack.dashboard.aggregation import (
    FilterContext,
    compute_stats,
    filter_records,
    group_by_phase_and_week,
    phase_completion,
)


def activity(id, status="pending", **fields):
    record = {
        "id": id,
        "title": f"Activity {id}",
        "contractor": "Acme Builders",
        "status": status,
        "category": "other",
        "priority": "medium",
        "startDate": "2025-05-13T09:00:00",
        "endDate": "2025-05-13T17:00:00",
    }
    record.update(fields)
    return record


RECORDS = [
    activity(1, "completed", category="electrical", title="Run conduit", projectTitle="Harbour View"),
    activity(2, "in_progress", category="plumbing", contractor="Pipe Pros", phase="installation", weekNumber=3),
    activity(3, "delayed", priority="high", phase="site_preliminaries"),
    activity(4, "to-do", phase="installation", weekNumber=1, projectTitle="Hillside Villa"),
    activity(5, "pending", phase="mystery", weekNumber=None, startDate="2025-06-02T08:00:00"),
]

CONTEXTS = [
    FilterContext(),
    FilterContext(status="completed"),
    FilterContext(category="plumbing"),
    FilterContext(priority="high"),
    FilterContext(search_text="PIPE"),
    FilterContext(search_text="villa"),
    FilterContext(status="pending", search_text="activity"),
    FilterContext(date_range=(datetime(2025, 6, 1), datetime(2025, 6, 8))),
]


def test_filter_returns_subset_and_is_idempotent():
    for context in CONTEXTS:
        once = filter_records(RECORDS, context)
        assert all(r in RECORDS for r in once)
        assert filter_records(once, context) == once


def test_filter_does_not_mutate_input():
    records = list(RECORDS)
    filter_records(records, FilterContext(status="completed"))
    assert records == RECORDS


def test_filter_all_matches_everything():
    assert filter_records(RECORDS, FilterContext(status="all", category="all", priority="all")) == RECORDS


def test_filter_ands_predicates():
    result = filter_records(RECORDS, FilterContext(status="in_progress", category="plumbing"))
    assert [r["id"] for r in result] == [2]
    assert filter_records(RECORDS, FilterContext(status="completed", category="plumbing")) == []


def test_search_covers_title_contractor_and_project():
    assert [r["id"] for r in filter_records(RECORDS, FilterContext(search_text="conduit"))] == [1]
    assert [r["id"] for r in filter_records(RECORDS, FilterContext(search_text="pipe pros"))] == [2]
    assert [r["id"] for r in filter_records(RECORDS, FilterContext(search_text="hillside"))] == [4]
    assert len(filter_records(RECORDS, FilterContext(search_text="   "))) == len(RECORDS)


def test_filter_by_date_range():
    june = FilterContext(date_range=(datetime(2025, 6, 1), datetime(2025, 6, 8)))
    assert [r["id"] for r in filter_records(RECORDS, june)] == [5]


def test_filter_by_project_keeps_records_without_project():
    records = [{"id": 1, "projectId": 7}, {"id": 2, "projectId": 8}, {"id": 3}]
    assert [r["id"] for r in filter_records(records, FilterContext(project_id=7))] == [1, 3]


def test_compute_stats_empty():
    stats = compute_stats([])
    assert asdict(stats) == {
        "total": 0, "completed": 0, "in_progress": 0, "pending": 0, "delayed": 0, "progress": 0,
    }


def test_compute_stats_ten_activities():
    records = (
        [activity(i, "completed") for i in range(4)]
        + [activity(i, "delayed") for i in range(4, 6)]
        + [activity(i, "pending") for i in range(6, 10)]
    )
    stats = compute_stats(records)
    assert stats.total == 10
    assert stats.completed == 4
    assert stats.delayed == 2
    assert stats.pending == 4
    assert stats.progress == 40


def test_compute_stats_counts_todo_as_pending():
    stats = compute_stats([activity(1, "to-do"), activity(2, "pending"), activity(3, "completed")])
    assert stats.pending == 2
    assert stats.progress == 33


def test_compute_stats_rounds_half_up():
    records = [activity(1, "completed")] + [activity(i, "pending") for i in range(2, 9)]
    assert compute_stats(records).progress == 13  # 12.5%


def test_grouping_never_drops_records():
    grouped = group_by_phase_and_week(RECORDS)
    total = sum(len(records) for weeks in grouped.values() for records in weeks.values())
    assert total == len(RECORDS)


def test_grouping_defaults_and_order():
    grouped = group_by_phase_and_week(RECORDS)

    assert list(grouped) == ["site_preliminaries", "construction", "installation"]
    # untagged and unknown phases fall into construction, week 1
    assert [r["id"] for r in grouped["construction"][1]] == [1, 5]
    assert list(grouped["installation"]) == [1, 3]


def test_phase_completion_headers():
    grouped = group_by_phase_and_week([
        activity(1, "completed", phase="installation"),
        activity(2, "completed", phase="installation", weekNumber=2),
        activity(3, "pending", phase="installation", weekNumber=2),
    ])
    header = phase_completion(grouped)["installation"]
    assert (header.completed, header.total, header.percentage) == (2, 3, 67)
