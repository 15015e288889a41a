"""Pure helper building the team capacity view for a date window."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

import pandas as pd

from project_health.analytics.metrics.capacity import (
    build_capacity_rows,
    capacity_frame,
    summarize_team_capacity,
)
from project_health.core.config import HOURS_PER_WORK_DAY
from project_health.core.models import AllocationRecord, AssigneeHours, CapacityRow, TeamCapacitySummary


@dataclass(slots=True)
class TeamCapacityContext:
    rows: list[CapacityRow]
    summary: TeamCapacitySummary
    table: pd.DataFrame


def build_team_capacity_context(
    records: Iterable[AllocationRecord],
    actual_hours: Mapping[str, float | AssigneeHours],
    start: date,
    end: date,
    *,
    hours_per_day: float = HOURS_PER_WORK_DAY,
    status: str | None = None,
) -> TeamCapacityContext:
    """Rows, summary and a table for everyone allocated in ``[start, end]``.

    ``status`` narrows the rows and table (not the summary) to one capacity
    status such as ``overloaded``.
    """
    rows = build_capacity_rows(records, actual_hours, start, end, hours_per_day=hours_per_day)
    summary = summarize_team_capacity(rows)
    if status:
        rows = [r for r in rows if r.status == status]
    return TeamCapacityContext(rows=rows, summary=summary, table=capacity_frame(rows))
