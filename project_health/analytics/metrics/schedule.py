"""Schedule health: percent complete vs percent of plan time elapsed."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from project_health.core.config import SCHEDULE_VARIANCE_THRESHOLD
from project_health.core.models import ScheduleInsight, round_half_up
from project_health.core.status import is_active_project_status
from project_health.core.timezone import local_now, parse_date, resolve_timezone, to_local_naive

STATUS_AHEAD = "ahead"
STATUS_ON_TRACK = "on-track"
STATUS_BEHIND = "behind"
STATUS_OVERTIME = "overtime"

_DAY = timedelta(days=1)


def resolve_now(now=None, tz=None) -> datetime:
    """Naive local wall-clock ``now`` in ``tz`` (dates map to local midnight)."""
    zone = resolve_timezone(tz) if tz is None or isinstance(tz, str) else tz
    if now is None:
        now = local_now(zone)
    return to_local_naive(now, zone)


def plan_window(start_date, end_date) -> tuple[datetime, datetime] | None:
    """Local-midnight bounds of a plan, or None when unparseable or not positive."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or end <= start:
        return None
    return datetime(start.year, start.month, start.day), datetime(end.year, end.month, end.day)


def percent_time_elapsed(start: datetime, end: datetime, now: datetime) -> float:
    total = (end - start).total_seconds()
    if total <= 0:
        return 0.0
    return min(max((now - start).total_seconds() / total * 100.0, 0.0), 100.0)


def _as_percent(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def _projected_end(
    start: datetime, end: datetime, now: datetime, percent_complete: float, elapsed_pct: float
) -> date:
    # velocity is percent complete per percent of plan time; elapsed_pct is
    # clamped to 100, so elapsed stops at the plan end too
    elapsed_days = (min(now, end) - start) / _DAY
    velocity = percent_complete / elapsed_pct
    remaining_days = (end - start) / _DAY * ((100.0 - percent_complete) / velocity / 100.0)
    try:
        return (start + timedelta(days=elapsed_days + remaining_days)).date()
    except OverflowError:
        return date.max


def calculate_schedule_insight(
    percent_complete,
    start_date,
    end_date,
    project_status: str | None,
    *,
    now=None,
    tz=None,
) -> ScheduleInsight:
    """Compare completion against elapsed plan time.

    Parameters
    ----------
    percent_complete : float
        Completion in percent (0-100).
    start_date, end_date : str | date
        Plan bounds (``YYYY-MM-DD``), taken as local midnight.
    project_status : str | None
        Overtime applies only when this is an active status; a missing status
        never triggers overtime.
    now : datetime | date | None
        Reference instant; defaults to the current time in ``tz``.

    Returns
    -------
    ScheduleInsight
        Neutral ``on-track`` with a prompt message when the dates are missing,
        unparseable, or describe an empty plan.
    """
    pc = _as_percent(percent_complete)
    window = plan_window(start_date, end_date)
    if window is None:
        end = parse_date(end_date)
        return ScheduleInsight(
            status=STATUS_ON_TRACK,
            percent_complete=0.0,
            percent_time_elapsed=0.0,
            variance=0.0,
            days_ahead_behind=0,
            projected_end_date=end.isoformat() if end else (str(end_date) if end_date else ""),
            message="Set start and end dates to see schedule insights",
        )
    start, end = window
    current = resolve_now(now, tz)
    end_iso = end.date().isoformat()

    if current > end and is_active_project_status(project_status):
        days_over = math.floor((current - end) / _DAY)
        return ScheduleInsight(
            status=STATUS_OVERTIME,
            percent_complete=pc,
            percent_time_elapsed=100.0,
            variance=pc - 100.0,
            days_ahead_behind=-days_over,
            projected_end_date=end_iso,
            message=f"Project is {days_over} days overdue",
        )

    elapsed_pct = percent_time_elapsed(start, end, current)
    variance = pc - elapsed_pct
    total_days = (end - start) / _DAY
    days = round_half_up(variance / 100.0 * total_days)

    projected = end_iso
    if 0 < pc < 100 and elapsed_pct > 0:
        projected = _projected_end(start, end, current, pc, elapsed_pct).isoformat()

    if variance > SCHEDULE_VARIANCE_THRESHOLD:
        status = STATUS_AHEAD
        message = f"Project is {abs(days)} days ahead of schedule"
    elif variance < -SCHEDULE_VARIANCE_THRESHOLD:
        status = STATUS_BEHIND
        message = f"Project is {abs(days)} days behind schedule"
    else:
        status = STATUS_ON_TRACK
        message = "Project is on track"

    return ScheduleInsight(
        status=status,
        percent_complete=pc,
        percent_time_elapsed=elapsed_pct,
        variance=variance,
        days_ahead_behind=days,
        projected_end_date=projected,
        message=message,
    )
