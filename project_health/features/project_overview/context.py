"""Pure helper composing the project overview (insights, alerts, burn-down) in one call."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date

from project_health.analytics.insights.portfolio import epic_percent_complete
from project_health.analytics.insights.rules import generate_alerts, generate_recommendations
from project_health.analytics.metrics.budget import calculate_budget_insight
from project_health.analytics.metrics.burndown import project_burn_down
from project_health.analytics.metrics.schedule import calculate_schedule_insight
from project_health.core.models import (
    Alert,
    BudgetInsight,
    BurnDownPoint,
    EpicSummary,
    ProjectOverviewFields,
    Recommendation,
    ScheduleInsight,
)


@dataclass(slots=True)
class ProjectOverviewContext:
    percent_complete: float
    total_budget_hours: float
    total_spent_hours: float
    schedule: ScheduleInsight
    budget: BudgetInsight
    alerts: list[Alert] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    burn_down: list[BurnDownPoint] = field(default_factory=list)
    epics: list[EpicSummary] = field(default_factory=list)


def build_overview_context(
    overview: ProjectOverviewFields | Mapping | None,
    epics: Iterable[EpicSummary] | None = None,
    offshore_spent_hours: float = 0.0,
    weekly_cumulative: Mapping[date, float] | None = None,
    *,
    now=None,
    tz=None,
) -> ProjectOverviewContext:
    """Compose the overview of one project.

    ``overview`` may be a ``ProjectOverviewFields`` or the stored camelCase
    mapping. Percent complete comes from the epic roll-up, falling back to
    the stated overview percent when there are no epics. Spent hours are the
    stated onshore hours plus the logged offshore hours. The burn-down runs
    against the offshore budget, which is what worklogs consume.
    """
    if not isinstance(overview, ProjectOverviewFields):
        overview = ProjectOverviewFields.from_mapping(overview)
    epics = list(epics or [])
    percent_complete = epic_percent_complete(epics, overview.percent_complete)
    total_spent = overview.onshore_spent_hours + (offshore_spent_hours or 0.0)

    schedule = calculate_schedule_insight(
        percent_complete,
        overview.plan_start_date,
        overview.plan_end_date,
        overview.project_status,
        now=now,
        tz=tz,
    )
    budget = calculate_budget_insight(
        overview.total_budget_hours,
        total_spent,
        overview.plan_start_date,
        overview.plan_end_date,
        now=now,
        tz=tz,
    )
    return ProjectOverviewContext(
        percent_complete=percent_complete,
        total_budget_hours=overview.total_budget_hours,
        total_spent_hours=total_spent,
        schedule=schedule,
        budget=budget,
        alerts=generate_alerts(schedule, budget, epics),
        recommendations=generate_recommendations(schedule, budget, epics),
        burn_down=project_burn_down(
            overview.offshore_budget_hours,
            overview.plan_start_date,
            overview.plan_end_date,
            weekly_cumulative,
        ),
        epics=epics,
    )
