"""Domain data models for work items, worklogs, allocations, and derived insights."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


def round_hours(value: float, digits: int = 1) -> float:
    """Business rounding applied at output boundaries only."""
    return round(float(value or 0.0), digits)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(float(value) + 0.5))


# ------------------ Raw (fetched) entities ------------------
@dataclass(slots=True, frozen=True)
class Author:
    account_id: str
    display_name: str


@dataclass(slots=True, frozen=True)
class WorkItem:
    id: str
    key: str
    summary: str
    status: str
    status_category: str
    issue_type: str
    parent_id: str | None = None
    parent_key: str | None = None
    due_date: date | None = None
    original_estimate_seconds: int | None = None
    created: datetime | None = None
    updated: datetime | None = None


@dataclass(slots=True, frozen=True)
class WorklogEntry:
    issue_id: str
    author: Author
    started: datetime
    time_spent_seconds: int
    comment: str | None = None
    id: str | None = None


@dataclass(slots=True, frozen=True)
class AllocationRecord:
    person_id: str
    display_name: str
    start_date: date
    end_date: date
    allocation_percent: float
    note: str | None = None
    id: str | None = None


@dataclass(slots=True, frozen=True)
class EpicSummary:
    key: str
    summary: str
    total_issues: int
    done: int


# ------------------ Worklog report ------------------
@dataclass(slots=True)
class AssigneeHours:
    account_id: str
    name: str
    hours: float


@dataclass(slots=True)
class ParentRef:
    id: str
    key: str
    summary: str


@dataclass(slots=True)
class ReportIssue:
    key: str
    summary: str
    issue_type: str
    status: str
    own_hours: float
    total_hours: float
    status_category: str | None = None
    assignees: list[AssigneeHours] = field(default_factory=list)
    parent: ParentRef | None = None
    children: list[ReportIssue] = field(default_factory=list)
    estimated_hours: float | None = None
    due_date: date | None = None
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "key": self.key,
            "summary": self.summary,
            "issueType": self.issue_type,
            "status": self.status,
            "statusCategory": self.status_category,
            "ownHours": round_hours(self.own_hours),
            "totalHours": round_hours(self.total_hours),
            "assignees": [
                {"accountId": a.account_id, "name": a.name, "hours": round_hours(a.hours)}
                for a in self.assignees
            ],
        }
        if self.estimated_hours is not None:
            out["estimatedHours"] = round_hours(self.estimated_hours)
        if self.due_date is not None:
            out["dueDate"] = self.due_date.isoformat()
        if self.parent is not None:
            out["parent"] = {"key": self.parent.key, "summary": self.parent.summary}
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@dataclass(slots=True)
class ReportSummary:
    total_hours: float = 0.0
    active_issues: int = 0
    completed_issues: int = 0
    team_members: int = 0
    on_time_issues: int = 0
    overdue_issues: int = 0


@dataclass(slots=True)
class DailyHours:
    date: date
    hours: float


@dataclass(slots=True)
class ReportTrends:
    daily_hours: list[DailyHours] = field(default_factory=list)
    velocity: float = 0.0
    burn_rate: float = 0.0


@dataclass(slots=True)
class ReportForecast:
    projected_completion: date | None = None
    remaining_hours: float = 0.0
    average_velocity: float = 0.0


@dataclass(slots=True)
class WorklogReport:
    summary: ReportSummary
    issues: list[ReportIssue] = field(default_factory=list)
    parent_metadata: dict[str, ReportIssue] = field(default_factory=dict)
    trends: ReportTrends = field(default_factory=ReportTrends)
    forecast: ReportForecast = field(default_factory=ReportForecast)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "totalHours": round_hours(self.summary.total_hours),
                "activeIssues": self.summary.active_issues,
                "completedIssues": self.summary.completed_issues,
                "teamMembers": self.summary.team_members,
                "onTimeIssues": self.summary.on_time_issues,
                "overdueIssues": self.summary.overdue_issues,
            },
            "issues": [i.to_dict() for i in self.issues],
            "parentMetadata": {k: v.to_dict() for k, v in self.parent_metadata.items()},
            "trends": {
                "dailyHours": [
                    {"date": d.date.isoformat(), "hours": round_hours(d.hours)} for d in self.trends.daily_hours
                ],
                "velocity": round_hours(self.trends.velocity, 2),
                "burnRate": round_hours(self.trends.burn_rate),
            },
            "forecast": {
                "projectedCompletion": (
                    self.forecast.projected_completion.isoformat() if self.forecast.projected_completion else None
                ),
                "remainingHours": round_hours(self.forecast.remaining_hours),
                "averageVelocity": round_hours(self.forecast.average_velocity, 2),
            },
        }


# ------------------ Capacity ------------------
@dataclass(slots=True)
class WeightedAllocationResult:
    person_id: str
    display_name: str
    weighted_allocation: float
    total_available_hours: float
    work_days: int = 0
    overlap_days: int = 0


@dataclass(slots=True)
class CapacityRow:
    person_id: str
    display_name: str
    planned_allocation: float
    actual_hours: float
    available_hours: float
    utilization_percent: float
    status: str


@dataclass(slots=True)
class TeamCapacitySummary:
    total_capacity: float = 0.0
    total_actual: float = 0.0
    avg_utilization: float = 0.0
    overloaded_count: int = 0
    underloaded_count: int = 0


# ------------------ Insights ------------------
@dataclass(slots=True)
class ScheduleInsight:
    status: str
    percent_complete: float
    percent_time_elapsed: float
    variance: float
    days_ahead_behind: int
    projected_end_date: str
    message: str


@dataclass(slots=True)
class BudgetInsight:
    status: str
    percent_spent: float
    percent_time_elapsed: float
    variance: float
    remaining_budget: float
    weekly_burn_rate: float
    weeks_of_runway: float
    message: str


@dataclass(slots=True)
class Alert:
    type: str
    message: str
    priority: int


@dataclass(slots=True)
class Recommendation:
    type: str
    message: str
    priority: int
    action: str


@dataclass(slots=True)
class BurnDownPoint:
    week_start: date
    ideal_hours_remaining: float
    actual_hours_remaining: float | None = None
    is_last_data_point: bool = False


# ------------------ Activity ------------------
@dataclass(slots=True)
class ActivityItem:
    id: str
    type: str
    user: str
    timestamp: datetime
    issue_key: str
    issue_summary: str
    field: str | None = None
    from_value: str | None = None
    to_value: str | None = None
    comment_body: str | None = None


# ------------------ Project overview & portfolio ------------------
def _float_or_zero(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


@dataclass(slots=True)
class ProjectOverviewFields:
    """Stored overview fields of one project (budgets in hours, plan dates as ``YYYY-MM-DD``)."""

    plan_start_date: str = ""
    plan_end_date: str = ""
    project_status: str = ""
    percent_complete: float = 0.0
    onshore_budget_hours: float = 0.0
    offshore_budget_hours: float = 0.0
    onshore_spent_hours: float = 0.0

    @property
    def total_budget_hours(self) -> float:
        return self.onshore_budget_hours + self.offshore_budget_hours

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> ProjectOverviewFields:
        data = data or {}
        return cls(
            plan_start_date=str(data.get("planStartDate") or ""),
            plan_end_date=str(data.get("planEndDate") or ""),
            project_status=str(data.get("projectStatus") or ""),
            percent_complete=_float_or_zero(data.get("percentComplete")),
            onshore_budget_hours=_float_or_zero(data.get("onshoreBudgetHours")),
            offshore_budget_hours=_float_or_zero(data.get("offshoreBudgetHours")),
            onshore_spent_hours=_float_or_zero(data.get("onshoreSpentHours")),
        )


@dataclass(slots=True)
class ProjectSnapshot:
    key: str
    name: str
    overview: ProjectOverviewFields
    offshore_spent_hours: float = 0.0
    epics: list[EpicSummary] = field(default_factory=list)


@dataclass(slots=True)
class ProjectAlert:
    type: str
    message: str
    priority: int
    project_key: str
    project_name: str


@dataclass(slots=True)
class ProjectWithInsights:
    key: str
    name: str
    schedule_health: str
    budget_health: str
    alerts: list[Alert]
    percent_complete: float
    percent_spent: float


@dataclass(slots=True)
class PortfolioInsights:
    total_projects: int = 0
    health: dict[str, int] = field(default_factory=lambda: {"green": 0, "yellow": 0, "red": 0})
    at_risk_projects: list[ProjectWithInsights] = field(default_factory=list)
    schedule_performance: dict[str, int] = field(
        default_factory=lambda: {"ahead": 0, "on-track": 0, "behind": 0, "overtime": 0}
    )
    budget_performance: dict[str, int] = field(
        default_factory=lambda: {"healthy": 0, "at-risk": 0, "over-budget": 0}
    )
    all_alerts: list[ProjectAlert] = field(default_factory=list)
    top_risks: list[str] = field(default_factory=list)
