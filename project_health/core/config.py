"""Central configuration, constants, thresholds, and Jira fetch field lists."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Time Zone & Calendar Settings
# =============================================================================
# Target zone for every worklog date bucket. Accepts IANA names or fixed
# offsets such as "UTC+7" (see core.timezone.resolve_timezone).
TIMEZONE = "Asia/Bangkok"
HOURS_PER_WORK_DAY: float = 8.0
WEEKEND_DAYS: frozenset[int] = frozenset({5, 6})  # Saturday, Sunday (date.weekday())

# =============================================================================
# Status Category Configuration
# =============================================================================
# Canonical status categories used throughout the engine
STATUS_CATEGORY_TODO = "todo"
STATUS_CATEGORY_IN_PROGRESS = "in-progress"
STATUS_CATEGORY_DONE = "done"

# Jira statusCategory keys plus common display names (lowercase keys)
STATUS_CATEGORY_ALIASES: dict[str, str] = {
    # Jira statusCategory.key values
    "new": STATUS_CATEGORY_TODO,
    "indeterminate": STATUS_CATEGORY_IN_PROGRESS,
    "done": STATUS_CATEGORY_DONE,
    # Display names
    "to do": STATUS_CATEGORY_TODO,
    "todo": STATUS_CATEGORY_TODO,
    "open": STATUS_CATEGORY_TODO,
    "backlog": STATUS_CATEGORY_TODO,
    "in progress": STATUS_CATEGORY_IN_PROGRESS,
    "in-progress": STATUS_CATEGORY_IN_PROGRESS,
    "inprogress": STATUS_CATEGORY_IN_PROGRESS,
    "in review": STATUS_CATEGORY_IN_PROGRESS,
    "testing": STATUS_CATEGORY_IN_PROGRESS,
    "blocked": STATUS_CATEGORY_IN_PROGRESS,
    "resolved": STATUS_CATEGORY_DONE,
    "closed": STATUS_CATEGORY_DONE,
    "complete": STATUS_CATEGORY_DONE,
    "completed": STATUS_CATEGORY_DONE,
    "cancelled": STATUS_CATEGORY_DONE,
    "canceled": STATUS_CATEGORY_DONE,
}

# Project statuses that count as "active" for overtime detection
# Keys are lowercase for case-insensitive matching
ACTIVE_PROJECT_STATUSES: frozenset[str] = frozenset(
    {
        "active",
        "on going",
        "ongoing",
        "in progress",
    }
)

# =============================================================================
# Insight Thresholds
# =============================================================================
SCHEDULE_VARIANCE_THRESHOLD: float = 10.0  # +/- percent before ahead/behind
BUDGET_AT_RISK_VARIANCE: float = 5.0  # spend ahead of time elapsed
BUDGET_FAST_BURN_VARIANCE: float = 15.0
BUDGET_UNDER_PLAN_VARIANCE: float = -10.0
RUNWAY_UNBOUNDED_WEEKS: float = 999.0  # sentinel when nothing is burning
LOW_RUNWAY_WEEKS: float = 4.0
HEALTHY_RUNWAY_WEEKS: float = 12.0
SEVERE_DELAY_DAYS: int = 14

# Utilization classifier bands (percent of allocation-weighted available hours)
UTILIZATION_OVERLOADED_ABOVE: float = 110.0
UTILIZATION_AT_RISK_ABOVE: float = 100.0
UTILIZATION_UNDERLOADED_BELOW: float = 50.0
MAX_ALLOCATION_PERCENT: float = 200.0

# =============================================================================
# Fetch Tuning
# =============================================================================
# Threads are used because the jira client is synchronous and I/O bound.
FETCH_MAX_WORKERS = 8
FETCH_MIN_PARALLEL = 4  # below this, stay sequential to reduce overhead
ANCESTOR_MAX_DEPTH = 3
ANCESTOR_CHUNK_SIZE = 50  # ids per "id in (...)" query
CHANGELOG_MAX_RESULTS = 10
EMBEDDED_WORKLOG_PAGE_SIZE = 20  # search results embed at most this many worklogs

# Activity feed
ACTIVITY_LOOKBACK_DAYS = 14
ACTIVITY_SEARCH_LIMIT = 20
ACTIVITY_LIMIT = 50

# =============================================================================
# Jira Field Lists
# =============================================================================
WORKLOG_REPORT_FIELDS: Sequence[str] = (
    "summary",
    "issuetype",
    "status",
    "assignee",
    "parent",
    "timetracking",
    "duedate",
    "created",
    "updated",
    "worklog",
)

ANCESTOR_FIELDS: Sequence[str] = (
    "summary",
    "issuetype",
    "status",
    "parent",
    "assignee",
)

ACTIVITY_FIELDS: Sequence[str] = (
    "summary",
    "comment",
    "creator",
    "created",
    "updated",
)

EPIC_FIELDS: Sequence[str] = ("summary", "status", "issuetype")
EPIC_CHILD_FIELDS: Sequence[str] = ("status", "parent")


@dataclass(slots=True)
class AppSettings:
    timezone: str = TIMEZONE
    hours_per_work_day: float = HOURS_PER_WORK_DAY
    fetch_max_workers: int = FETCH_MAX_WORKERS
    activity_lookback_days: int = ACTIVITY_LOOKBACK_DAYS
    activity_limit: int = ACTIVITY_LIMIT


SETTINGS = AppSettings()
