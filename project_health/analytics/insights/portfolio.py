"""Portfolio-level health aggregation across projects."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable

from project_health.core.models import (
    EpicSummary,
    PortfolioInsights,
    ProjectAlert,
    ProjectSnapshot,
    ProjectWithInsights,
)

from ..metrics.budget import calculate_budget_insight
from ..metrics.schedule import calculate_schedule_insight
from .rules import ALERT_CRITICAL, ALERT_WARNING, generate_alerts

TOP_RISK_LIMIT = 5
_PROJECT_PREFIX_RE = re.compile(r"Project \w+:")


def epic_percent_complete(epics: Iterable[EpicSummary] | None, fallback: float = 0.0) -> float:
    """``Σ done / Σ total_issues × 100`` over the epics, or ``fallback`` without epics.

    >>> epic_percent_complete([EpicSummary("E-1", "a", 4, 1), EpicSummary("E-2", "b", 6, 4)])
    50.0
    """
    epics = list(epics or [])
    if not epics:
        return float(fallback or 0.0)
    total = sum(e.total_issues or 0 for e in epics)
    done = sum(e.done or 0 for e in epics)
    return done / total * 100.0 if total > 0 else 0.0


def _top_risks(alerts: Iterable[ProjectAlert], limit: int = TOP_RISK_LIMIT) -> list[str]:
    counts = Counter(_PROJECT_PREFIX_RE.sub("", a.message).strip() for a in alerts)
    # most_common keeps first-seen order among equal counts
    return [f"{n} projects: {message}" if n > 1 else message for message, n in counts.most_common(limit)]


def calculate_portfolio_insights(projects: Iterable[ProjectSnapshot], *, now=None, tz=None) -> PortfolioInsights:
    projects = list(projects)
    out = PortfolioInsights(total_projects=len(projects))
    flagged: list[ProjectWithInsights] = []

    for project in projects:
        overview = project.overview
        percent_complete = epic_percent_complete(project.epics, overview.percent_complete)
        total_spent = overview.onshore_spent_hours + (project.offshore_spent_hours or 0.0)
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
        alerts = generate_alerts(schedule, budget, project.epics)

        out.schedule_performance[schedule.status] = out.schedule_performance.get(schedule.status, 0) + 1
        out.budget_performance[budget.status] = out.budget_performance.get(budget.status, 0) + 1

        has_critical = any(a.type == ALERT_CRITICAL for a in alerts)
        has_warning = any(a.type == ALERT_WARNING for a in alerts)
        if has_critical:
            out.health["red"] += 1
        elif has_warning:
            out.health["yellow"] += 1
        else:
            out.health["green"] += 1

        if has_critical or has_warning:
            flagged.append(
                ProjectWithInsights(
                    key=project.key,
                    name=project.name,
                    schedule_health=schedule.status,
                    budget_health=budget.status,
                    alerts=alerts,
                    percent_complete=percent_complete,
                    percent_spent=budget.percent_spent,
                )
            )
        out.all_alerts.extend(
            ProjectAlert(
                type=a.type,
                message=a.message,
                priority=a.priority,
                project_key=project.key,
                project_name=project.name,
            )
            for a in alerts
        )

    out.at_risk_projects = sorted(
        flagged, key=lambda p: sum(1 for a in p.alerts if a.type == ALERT_CRITICAL), reverse=True
    )
    out.all_alerts.sort(key=lambda a: a.priority, reverse=True)
    out.top_risks = _top_risks(out.all_alerts)
    return out
