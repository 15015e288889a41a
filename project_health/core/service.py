"""ProjectHealthService: orchestrates fetching, mapping and the metric pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, timedelta
from typing import Any, Protocol, TypeVar

from project_health.analytics.aggregations.report import compose_report
from project_health.analytics.aggregations.worklogs import aggregate_worklogs
from project_health.analytics.metrics.activity import build_activity_feed
from project_health.analytics.metrics.burndown import project_burn_down, weekly_cumulative_hours
from project_health.analytics.metrics.capacity import build_capacity_rows, summarize_team_capacity

from .config import (
    ACTIVITY_FIELDS,
    ACTIVITY_SEARCH_LIMIT,
    ANCESTOR_CHUNK_SIZE,
    ANCESTOR_FIELDS,
    CHANGELOG_MAX_RESULTS,
    EMBEDDED_WORKLOG_PAGE_SIZE,
    EPIC_CHILD_FIELDS,
    EPIC_FIELDS,
    FETCH_MIN_PARALLEL,
    WORKLOG_REPORT_FIELDS,
    AppSettings,
)
from .jira_client import JiraAPI
from .mappers import map_issues, map_work_item
from .models import (
    ActivityItem,
    AllocationRecord,
    BurnDownPoint,
    CapacityRow,
    EpicSummary,
    TeamCapacitySummary,
    WorkItem,
    WorklogEntry,
    WorklogReport,
)
from .settings import load_settings
from .status import is_done_category, normalize_status_category
from .timezone import local_now, resolve_timezone

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]
T = TypeVar("T")


class AllocationRepository(Protocol):
    """Persistence collaborator for allocation records."""

    def get_allocations(self, project_key: str, start_date: date, end_date: date) -> list[AllocationRecord]: ...


def _chunks(values: Sequence[str], size: int) -> list[list[str]]:
    return [list(values[i : i + size]) for i in range(0, len(values), size)]


class ProjectHealthService:
    def __init__(
        self,
        api: JiraAPI,
        *,
        allocations: AllocationRepository | None = None,
        settings: AppSettings | None = None,
    ):
        self.api = api
        self.allocations = allocations
        self.settings = settings or load_settings()
        self._tz = resolve_timezone(self.settings.timezone)

    # ------------------ Fan-out ------------------
    def _run_parallel(
        self,
        tasks: Sequence[tuple[str, Callable[[], T]]],
        *,
        label: str,
        default: Callable[[], T],
        progress: ProgressCallback | None = None,
    ) -> dict[str, T]:
        """Run named fetch tasks, returning ``{name: result}``.

        Stays sequential below ``FETCH_MIN_PARALLEL`` tasks. A failed task is
        logged and contributes ``default()`` so the other tasks still count.
        """
        results: dict[str, T] = {}
        total = len(tasks)
        if not tasks:
            return results
        if progress:
            progress(label, 0, total)

        if total < FETCH_MIN_PARALLEL:
            for idx, (name, task) in enumerate(tasks, start=1):
                try:
                    results[name] = task()
                except Exception as exc:
                    logger.warning("%s failed for %s: %s", label, name, exc)
                    results[name] = default()
                if progress:
                    progress(label, idx, total)
            return results

        completed = 0
        with ThreadPoolExecutor(max_workers=self.settings.fetch_max_workers) as pool:
            futures = {pool.submit(task): name for name, task in tasks}
            for fut in as_completed(futures):
                name = futures[fut]
                try:
                    results[name] = fut.result()
                except Exception as exc:
                    logger.warning("%s failed for %s: %s", label, name, exc)
                    results[name] = default()
                finally:
                    completed += 1
                    if progress:
                        progress(label, completed, total)
        return results

    # ------------------ Ancestors ------------------
    def fetch_ancestors(self, parent_ids: Sequence[str]) -> list[WorkItem]:
        """Fetch work items for ``parent_ids`` in id chunks; failed chunks are skipped."""
        chunks = _chunks(list(parent_ids), ANCESTOR_CHUNK_SIZE)
        tasks = [
            (f"chunk-{idx}", lambda chunk=chunk: self.api.fetch_issues_by_ids(chunk, fields=ANCESTOR_FIELDS))
            for idx, chunk in enumerate(chunks)
        ]
        results = self._run_parallel(tasks, label="Fetching parent issues", default=list)
        items: list[WorkItem] = []
        for name, _ in tasks:
            items.extend(map_work_item(raw) for raw in results.get(name, []))
        return items

    # ------------------ Worklogs ------------------
    def _worklog_jql(self, project_key: str, start: date, end: date) -> str:
        # Jira's worklogDate is evaluated in the account's zone, so pad one day
        # either side and let local-date filtering decide.
        lo = (start - timedelta(days=1)).isoformat()
        hi = (end + timedelta(days=1)).isoformat()
        return f'project = "{project_key}" AND worklogDate >= "{lo}" AND worklogDate <= "{hi}"'

    def fetch_worklog_issues(
        self,
        project_key: str,
        start: date,
        end: date,
        *,
        progress: ProgressCallback | None = None,
    ) -> tuple[list[WorkItem], list[WorklogEntry]]:
        if progress:
            progress(f"Querying worklogs for {project_key}", None, None)
        try:
            raw = self.api.search_enhanced(self._worklog_jql(project_key, start, end), fields=WORKLOG_REPORT_FIELDS)
        except Exception as exc:
            logger.warning("Worklog search failed for %s: %s", project_key, exc)
            return [], []
        raw = self._inflate_truncated_worklogs(raw, progress=progress)
        return map_issues(raw)

    def _inflate_truncated_worklogs(
        self,
        raw_issues: list[dict[str, Any]],
        *,
        progress: ProgressCallback | None = None,
    ) -> list[dict[str, Any]]:
        """Return the issues with truncated embedded worklog lists replaced by full lists.

        Search results embed only the first page of worklogs but report the
        full count in ``fields.worklog.total``. Only affected issues are
        re-fetched, and they are copied rather than modified, so cached search
        payloads stay as returned by Jira.
        """
        work: list[dict[str, Any]] = []
        for issue in raw_issues:
            block = (issue.get("fields") or {}).get("worklog") or {}
            logs = block.get("worklogs") or []
            total = block.get("total")
            if (isinstance(total, int) and total > len(logs)) or (
                total is None and len(logs) >= EMBEDDED_WORKLOG_PAGE_SIZE
            ):
                work.append(issue)
        if not work:
            return raw_issues

        tasks = [
            (
                str(issue.get("id") or issue.get("key")),
                lambda iss=issue: self.api.fetch_issue_worklogs(str(iss.get("id") or iss.get("key"))),
            )
            for issue in work
        ]
        results = self._run_parallel(tasks, label="Loading complete worklog history", default=list, progress=progress)
        hydrated: dict[int, dict[str, Any]] = {}
        for issue, (name, _) in zip(work, tasks):
            full = results.get(name) or []
            fields = issue.get("fields") or {}
            embedded = (fields.get("worklog") or {}).get("worklogs") or []
            if len(full) >= len(embedded):
                worklog = {**(fields.get("worklog") or {}), "worklogs": full, "total": len(full)}
                hydrated[id(issue)] = {**issue, "fields": {**fields, "worklog": worklog}}
                logger.debug("Hydrated %s worklogs: %s", name, len(full))
        return [hydrated.get(id(issue), issue) for issue in raw_issues]

    def fetch_worklog_report(
        self,
        project_key: str,
        start: date,
        end: date,
        *,
        now: datetime | None = None,
        progress: ProgressCallback | None = None,
    ) -> WorklogReport:
        items, worklogs = self.fetch_worklog_issues(project_key, start, end, progress=progress)
        if progress:
            progress("Building worklog report", None, None)
        return compose_report(
            items,
            worklogs,
            start,
            end,
            tz=self._tz,
            fetch_ancestors=self.fetch_ancestors,
            now=now or local_now(self._tz),
        )

    def fetch_total_hours(self, project_key: str, *, since: date = date(2000, 1, 1), until: date | None = None) -> float:
        """All hours logged on the project between ``since`` and ``until`` (default: today)."""
        until = until or local_now(self._tz).date()
        _, worklogs = self.fetch_worklog_issues(project_key, since, until)
        return round(aggregate_worklogs(worklogs, since, until, self._tz).total_hours, 2)

    # ------------------ Burn-down ------------------
    def fetch_weekly_cumulative_hours(
        self,
        project_key: str,
        start: date,
        end: date,
        *,
        progress: ProgressCallback | None = None,
    ) -> dict[date, float]:
        _, worklogs = self.fetch_worklog_issues(project_key, start, end, progress=progress)
        return weekly_cumulative_hours(worklogs, start, end, self._tz)

    def fetch_burn_down(
        self,
        project_key: str,
        budget_hours: float,
        start: date,
        end: date,
        *,
        progress: ProgressCallback | None = None,
    ) -> list[BurnDownPoint]:
        weekly = self.fetch_weekly_cumulative_hours(project_key, start, end, progress=progress)
        return project_burn_down(budget_hours, start, end, weekly)

    # ------------------ Epics ------------------
    def fetch_epic_summaries(self, project_key: str, *, progress: ProgressCallback | None = None) -> list[EpicSummary]:
        if progress:
            progress(f"Querying epics for {project_key}", None, None)
        try:
            epics = self.api.search_enhanced(
                f'project = "{project_key}" AND issuetype = Epic ORDER BY key ASC', fields=EPIC_FIELDS
            )
        except Exception as exc:
            logger.warning("Epic search failed for %s: %s", project_key, exc)
            return []
        if not epics:
            return []
        ids = [str(e.get("id")) for e in epics if e.get("id")]
        children: list[dict[str, Any]] = []
        for chunk in _chunks(ids, ANCESTOR_CHUNK_SIZE):
            try:
                children.extend(
                    self.api.search_enhanced(f"parent in ({','.join(chunk)})", fields=EPIC_CHILD_FIELDS)
                )
            except Exception as exc:
                logger.warning("Epic child search failed for %s: %s", project_key, exc)

        totals: dict[str, list[int]] = {}
        for child in children:
            fields = child.get("fields") or {}
            parent = fields.get("parent") or {}
            status = fields.get("status") or {}
            category = normalize_status_category((status.get("statusCategory") or {}).get("key"), status.get("name"))
            counts = totals.setdefault(str(parent.get("id")), [0, 0])
            counts[0] += 1
            if is_done_category(category):
                counts[1] += 1

        out: list[EpicSummary] = []
        for epic in epics:
            total, done = totals.get(str(epic.get("id")), [0, 0])
            out.append(
                EpicSummary(
                    key=epic.get("key") or "",
                    summary=(epic.get("fields") or {}).get("summary") or "",
                    total_issues=total,
                    done=done,
                )
            )
        return out

    # ------------------ Activity ------------------
    def fetch_recent_activity(
        self,
        project_key: str,
        *,
        user: str | None = None,
        issue_key: str | None = None,
        now: datetime | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[ActivityItem]:
        days = self.settings.activity_lookback_days
        jql = f'project = "{project_key}" AND updated >= -{days}d'
        if issue_key and issue_key.strip():
            jql += f' AND key = "{issue_key.strip()}"'
        jql += " ORDER BY updated DESC"
        if progress:
            progress(f"Querying recent activity for {project_key}", None, None)
        try:
            issues = self.api.search_enhanced(jql, fields=ACTIVITY_FIELDS, max_results=ACTIVITY_SEARCH_LIMIT)
        except Exception as exc:
            logger.warning("Activity search failed for %s: %s", project_key, exc)
            return []

        tasks = [
            (
                str(issue.get("id")),
                lambda iid=str(issue.get("id")): self.api.fetch_changelog(iid, max_results=CHANGELOG_MAX_RESULTS),
            )
            for issue in issues
            if issue.get("id")
        ]
        histories = self._run_parallel(tasks, label="Loading change history", default=list, progress=progress)
        return build_activity_feed(
            issues,
            histories,
            now=now,
            user=user,
            lookback_days=days,
            limit=self.settings.activity_limit,
            tz=self._tz,
        )

    # ------------------ Capacity ------------------
    def team_capacity(
        self,
        project_key: str,
        start: date,
        end: date,
        *,
        progress: ProgressCallback | None = None,
    ) -> tuple[list[CapacityRow], TeamCapacitySummary]:
        """Allocation-vs-actual rows for everyone allocated to the project in the window."""
        if self.allocations is None:
            return [], TeamCapacitySummary()
        try:
            records = self.allocations.get_allocations(project_key, start, end)
        except Exception as exc:
            logger.warning("Allocation lookup failed for %s: %s", project_key, exc)
            return [], TeamCapacitySummary()
        _, worklogs = self.fetch_worklog_issues(project_key, start, end, progress=progress)
        actual = aggregate_worklogs(worklogs, start, end, self._tz).author_hours
        rows = build_capacity_rows(
            records, actual, start, end, hours_per_day=self.settings.hours_per_work_day
        )
        return rows, summarize_team_capacity(rows)
