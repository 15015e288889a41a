"""Weekly burn-down series: ideal vs actual hours remaining."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, timedelta

from project_health.core.models import BurnDownPoint, WorklogEntry, round_hours
from project_health.core.timezone import parse_date, week_start

from ..aggregations.worklogs import filter_window, worklogs_to_dataframe

_WEEK = timedelta(days=7)


def weekly_cumulative_hours(
    worklogs: Iterable[WorklogEntry],
    start_date,
    end_date,
    tz=None,
) -> dict[date, float]:
    """Cumulative hours keyed by the Monday of each week with logged time.

    Entries are bucketed by their local date in ``tz`` and restricted to the
    plan window. When the first logged week is later than the plan-start
    week, the plan-start week is included with 0.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or end < start:
        return {}
    df = filter_window(worklogs_to_dataframe(worklogs, tz), start, end)
    if df.empty:
        return {}
    weekly = df.assign(week=df["local_date"].apply(week_start)).groupby("week")["hours"].sum().sort_index()
    out: dict[date, float] = {}
    first_week = week_start(start)
    if weekly.index[0] > first_week:
        out[first_week] = 0.0
    running = 0.0
    for week, hours in weekly.items():
        running += float(hours)
        out[week] = round(running, 2)
    return out


def project_burn_down(
    budget_hours,
    start_date,
    end_date,
    cumulative_by_week: Mapping[date, float] | None = None,
) -> list[BurnDownPoint]:
    """One point per week from the Monday on or before ``start`` through ``end``.

    Ideal remaining depletes linearly from the budget, floored at 0 (a Monday
    before a mid-week start has negative days elapsed and sits above the
    budget). Actual remaining carries the last known cumulative
    value forward but is left as None for weeks after the last week with real
    data. An invalid budget or date range yields an empty series.
    """
    try:
        budget = float(budget_hours)
    except (TypeError, ValueError):
        return []
    start = parse_date(start_date)
    end = parse_date(end_date)
    if budget <= 0 or not math.isfinite(budget) or start is None or end is None or end < start:
        return []

    cumulative: dict[date, float] = {}
    for key, hours in (cumulative_by_week or {}).items():
        week = parse_date(key)
        if week is not None:
            cumulative[week] = hours
    weeks_with_data = sorted(w for w, hours in cumulative.items() if hours and hours > 0)
    last_week = weeks_with_data[-1] if weeks_with_data else None

    total_days = (end - start).days
    daily_rate = budget / total_days if total_days > 0 else budget

    points: list[BurnDownPoint] = []
    current = week_start(start)
    carried = 0.0
    while current <= end:
        elapsed = (current - start).days
        ideal = max(0.0, budget - elapsed * daily_rate)
        if current in cumulative:
            carried = float(cumulative[current] or 0.0)
        actual = None
        if last_week is not None and current <= last_week:
            actual = round_hours(max(0.0, budget - carried))
        points.append(
            BurnDownPoint(
                week_start=current,
                ideal_hours_remaining=round_hours(ideal),
                actual_hours_remaining=actual,
                is_last_data_point=current == last_week,
            )
        )
        current += _WEEK
    return points
