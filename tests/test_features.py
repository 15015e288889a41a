from datetime import date, datetime

import pytest

from project_health.core.models import AllocationRecord, EpicSummary
from project_health.features.project_overview import build_overview_context
from project_health.features.team_capacity import build_team_capacity_context


def _sample_overview():
    return {
        "planStartDate": "2024-01-01",
        "planEndDate": "2024-01-31",
        "projectStatus": "Active",
        "percentComplete": 10,
        "onshoreBudgetHours": 100,
        "offshoreBudgetHours": 200,
        "onshoreSpentHours": 50,
    }


def test_overview_context_from_stored_mapping():
    ctx = build_overview_context(
        _sample_overview(),
        epics=[EpicSummary("PRJ-1", "Core", total_issues=4, done=2)],
        offshore_spent_hours=100.0,
        weekly_cumulative={date(2024, 1, 8): 100.0},
        now=datetime(2024, 1, 16),
    )
    assert ctx.percent_complete == pytest.approx(50.0)
    assert ctx.total_budget_hours == 300.0
    assert ctx.total_spent_hours == 150.0
    assert ctx.schedule.status == "on-track"
    assert ctx.budget.status == "healthy"
    assert ctx.alerts == []
    assert [(r.message, r.priority) for r in ctx.recommendations] == [("Extend Budget Runway", 90)]

    assert len(ctx.burn_down) == 5
    assert ctx.burn_down[0].ideal_hours_remaining == 200.0
    assert ctx.burn_down[1].actual_hours_remaining == 100.0
    assert ctx.burn_down[1].is_last_data_point
    assert ctx.burn_down[2].actual_hours_remaining is None


def test_overview_context_without_data_is_neutral():
    ctx = build_overview_context(None, now=datetime(2024, 1, 16))
    assert ctx.schedule.message.startswith("Set start and end dates")
    assert ctx.budget.message.startswith("Set budget and dates")
    assert ctx.burn_down == []
    assert ctx.alerts == []


def test_overview_context_with_stalled_closed_project():
    ctx = build_overview_context(
        {"planStartDate": "2024-01-01", "planEndDate": "2024-12-31", "projectStatus": "Closed"},
        epics=[EpicSummary("E-1", "big", total_issues=10000, done=1)],
        now=datetime(2025, 1, 10),
    )
    assert ctx.schedule.status == "behind"
    assert ctx.schedule.projected_end_date == "9999-12-31"


def test_team_capacity_context_filters_rows_not_summary():
    records = [
        AllocationRecord("alice", "Alice", date(2024, 1, 1), date(2024, 1, 5), 100.0),
        AllocationRecord("bob", "Bob", date(2024, 1, 1), date(2024, 1, 5), 50.0),
    ]
    ctx = build_team_capacity_context(
        records, {"alice": 42.0, "bob": 5.0}, date(2024, 1, 1), date(2024, 1, 5), status="underloaded"
    )
    assert [r.person_id for r in ctx.rows] == ["bob"]
    assert list(ctx.table["person_id"]) == ["bob"]
    assert ctx.summary.total_capacity == 60.0
    assert ctx.summary.underloaded_count == 1
