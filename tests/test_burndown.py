from datetime import UTC, date, datetime

import pytest

from project_health.analytics.metrics.burndown import project_burn_down, weekly_cumulative_hours
from project_health.core.models import Author, WorklogEntry

ALICE = Author("acc-alice", "Alice")


def _log(day, hours, month=1):
    started = datetime(2024, month, day, 3, 0, tzinfo=UTC)
    return WorklogEntry(issue_id="1", author=ALICE, started=started, time_spent_seconds=int(hours * 3600))


def test_weekly_cumulative_starts_at_plan_week():
    logs = [_log(9, 2), _log(10, 3), _log(17, 1), _log(2, 4, month=2)]
    weekly = weekly_cumulative_hours(logs, "2024-01-03", "2024-01-31", tz="UTC")
    assert weekly == {
        date(2024, 1, 1): 0.0,
        date(2024, 1, 8): 5.0,
        date(2024, 1, 15): 6.0,
    }


def test_weekly_cumulative_without_logs_is_empty():
    assert weekly_cumulative_hours([], "2024-01-03", "2024-01-31", tz="UTC") == {}
    assert weekly_cumulative_hours([_log(9, 2)], "", "2024-01-31", tz="UTC") == {}


def test_ideal_line_starts_above_budget_on_monday_before_start():
    points = project_burn_down(280, "2024-01-03", "2024-01-31")
    assert [p.week_start for p in points] == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
        date(2024, 1, 22),
        date(2024, 1, 29),
    ]
    assert [p.ideal_hours_remaining for p in points] == [300.0, 230.0, 160.0, 90.0, 20.0]
    assert all(p.actual_hours_remaining is None for p in points)
    assert not any(p.is_last_data_point for p in points)


def test_actual_line_stops_after_last_data_week():
    cumulative = {date(2024, 1, 8): 40.0, "2024-01-15": 100.0}
    points = project_burn_down(280, "2024-01-03", "2024-01-31", cumulative)
    assert [p.actual_hours_remaining for p in points] == [280.0, 240.0, 180.0, None, None]
    assert [p.is_last_data_point for p in points] == [False, False, True, False, False]


def test_overspend_clamps_actual_at_zero():
    points = project_burn_down(10, "2024-01-01", "2024-01-14", {date(2024, 1, 8): 25.0})
    assert points[-1].actual_hours_remaining == pytest.approx(0.0)


@pytest.mark.parametrize(
    ("budget", "start", "end"),
    [
        (0, "2024-01-01", "2024-01-31"),
        (None, "2024-01-01", "2024-01-31"),
        (float("inf"), "2024-01-01", "2024-01-31"),
        (float("nan"), "2024-01-01", "2024-01-31"),
        (100, "2024-02-01", "2024-01-01"),
    ],
)
def test_invalid_inputs_give_empty_series(budget, start, end):
    assert project_burn_down(budget, start, end) == []
