"""Compose the nested worklog report (rolled-up hours, summary, trends, forecast)."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from project_health.core.models import (
    ParentRef,
    ReportForecast,
    ReportIssue,
    ReportSummary,
    ReportTrends,
    WorkItem,
    WorklogEntry,
    WorklogReport,
)
from project_health.core.status import is_done_category
from project_health.core.timezone import local_now, resolve_timezone

from .issue_tree import AncestorFetcher, IssueTree, build_issue_tree
from .worklogs import WorklogAggregate, aggregate_worklogs


def _parent_ref(item: WorkItem, tree: IssueTree) -> ParentRef | None:
    if not item.parent_id:
        return None
    parent = tree.get(item.parent_id)
    if parent is None:
        return ParentRef(id=item.parent_id, key=item.parent_key or item.parent_id, summary="")
    return ParentRef(id=parent.id, key=parent.key, summary=parent.summary)


def _estimated_hours(item: WorkItem) -> float | None:
    if not item.original_estimate_seconds:
        return None
    return item.original_estimate_seconds / 3600.0


def _report_issue(item: WorkItem, tree: IssueTree, agg: WorklogAggregate) -> ReportIssue:
    own = agg.hours_for(item.id)
    return ReportIssue(
        key=item.key,
        summary=item.summary,
        issue_type=item.issue_type,
        status=item.status,
        status_category=item.status_category,
        own_hours=own,
        total_hours=own,
        assignees=list(agg.issue_assignees.get(item.id, [])),
        parent=_parent_ref(item, tree),
        estimated_hours=_estimated_hours(item),
        due_date=item.due_date,
        id=item.id,
    )


def compose_issues(tree: IssueTree, agg: WorklogAggregate) -> list[ReportIssue]:
    """Build top-level report nodes with children folded into ``total_hours``.

    A work item becomes a node only when it has hours in the window. Items
    whose parent is unknown or has no hours are promoted to top level. Each
    item is marked processed on entry, so a node claimed by two parents (or
    caught in a parent cycle) is emitted once. Items with hours that were not
    reached by the top-level pass (cycle members) are promoted afterwards.
    """
    children: dict[str, list[WorkItem]] = {}
    for item in tree.items.values():
        parent = tree.get(item.parent_id)
        if parent is not None and parent.id != item.id:
            children.setdefault(parent.id, []).append(item)

    processed: set[str] = set()

    def build(item: WorkItem) -> ReportIssue | None:
        if agg.hours_for(item.id) <= 0:
            return None
        processed.add(item.id)
        node = _report_issue(item, tree, agg)
        for child in children.get(item.id, []):
            if child.id in processed:
                continue
            sub = build(child)
            if sub is not None:
                node.children.append(sub)
                node.total_hours += sub.total_hours
        return node

    out: list[ReportIssue] = []
    for item in tree.items.values():
        if item.id in processed:
            continue
        parent = tree.get(item.parent_id)
        if parent is not None and parent.id != item.id and agg.hours_for(parent.id) > 0:
            continue
        node = build(item)
        if node is not None:
            out.append(node)

    for item in tree.items.values():
        if item.id in processed:
            continue
        node = build(item)
        if node is not None:
            out.append(node)
    return out


def _stub(item: WorkItem, tree: IssueTree) -> ReportIssue:
    return ReportIssue(
        key=item.key,
        summary=item.summary,
        issue_type=item.issue_type,
        status=item.status,
        status_category=item.status_category,
        own_hours=0.0,
        total_hours=0.0,
        parent=_parent_ref(item, tree),
        id=item.id,
    )


def summarize(
    tree: IssueTree, agg: WorklogAggregate, now: datetime
) -> tuple[ReportSummary, ReportTrends, ReportForecast]:
    today = now.date()
    with_hours = [item for item in tree.items.values() if agg.hours_for(item.id) > 0]
    done = [item for item in with_hours if is_done_category(item.status_category)]
    total = agg.total_hours

    summary = ReportSummary(
        total_hours=total,
        active_issues=len(with_hours),
        completed_issues=len(done),
        team_members=len(agg.author_hours),
        on_time_issues=sum(
            1 for item in done if item.due_date is not None and item.due_date >= today
        ),
        overdue_issues=sum(
            1
            for item in with_hours
            if item.due_date is not None and not is_done_category(item.status_category) and item.due_date < today
        ),
    )

    days = len(agg.daily_hours) or 1
    burn_rate = total / days
    velocity = summary.completed_issues / days
    trends = ReportTrends(daily_hours=list(agg.daily_hours), velocity=velocity, burn_rate=burn_rate)

    remaining = 0.0
    if summary.active_issues > 0:
        remaining = (summary.active_issues - summary.completed_issues) * (total / summary.active_issues)
    days_to_complete = math.ceil(remaining / burn_rate) if burn_rate > 0 else 0
    projected: date | None = today + timedelta(days=days_to_complete) if days_to_complete > 0 else None
    forecast = ReportForecast(projected_completion=projected, remaining_hours=remaining, average_velocity=velocity)
    return summary, trends, forecast


def compose_report(
    items: Iterable[WorkItem],
    worklogs: Iterable[WorklogEntry],
    start: date,
    end: date,
    *,
    tz=None,
    fetch_ancestors: AncestorFetcher | None = None,
    now: datetime | None = None,
) -> WorklogReport:
    """Aggregate worklogs in ``[start, end]`` into a nested report.

    Parameters
    ----------
    items : iterable of WorkItem
        Fetched work items; parents may be missing from this set.
    worklogs : iterable of WorklogEntry
        Raw worklogs; filtered by local date in ``tz``.
    start, end : date
        Inclusive reporting window.
    tz : str | tzinfo | None
        Target zone for date bucketing (default: configured zone).
    fetch_ancestors : callable, optional
        Resolves missing parent ids to work items; they appear as zero-hour
        entries in ``parent_metadata``.
    now : datetime, optional
        Reference instant for due-date and forecast figures.
    """
    zone = resolve_timezone(tz) if tz is None or isinstance(tz, str) else tz
    agg = aggregate_worklogs(worklogs, start, end, zone)
    tree = build_issue_tree(items, fetch_ancestors)
    issues = compose_issues(tree, agg)
    parent_metadata = {item.key: _stub(item, tree) for item in tree.ancestors.values()}
    summary, trends, forecast = summarize(tree, agg, now or local_now(zone))
    return WorklogReport(
        summary=summary,
        issues=issues,
        parent_metadata=parent_metadata,
        trends=trends,
        forecast=forecast,
    )
