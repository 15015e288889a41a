"""Worklog binning by work item, author and local calendar day."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from project_health.core.models import AssigneeHours, DailyHours, WorklogEntry
from project_health.core.timezone import resolve_timezone, to_local_date

WORKLOG_COLUMNS = ["issue_id", "account_id", "author", "started", "hours", "local_date"]


@dataclass(slots=True)
class WorklogAggregate:
    """Unrounded hour totals for one reporting window."""

    issue_hours: dict[str, float] = field(default_factory=dict)
    issue_assignees: dict[str, list[AssigneeHours]] = field(default_factory=dict)
    author_hours: dict[str, AssigneeHours] = field(default_factory=dict)
    daily_hours: list[DailyHours] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return float(sum(self.issue_hours.values()))

    def hours_for(self, issue_id: str) -> float:
        return self.issue_hours.get(issue_id, 0.0)


def worklogs_to_dataframe(worklogs: Iterable[WorklogEntry], tz) -> pd.DataFrame:
    """Tabulate worklogs with hours and the local calendar date of ``started``."""
    tz = resolve_timezone(tz) if tz is None or isinstance(tz, str) else tz
    rows = [
        {
            "issue_id": w.issue_id,
            "account_id": w.author.account_id,
            "author": w.author.display_name,
            "started": w.started,
            "seconds": w.time_spent_seconds,
        }
        for w in worklogs
    ]
    if not rows:
        return pd.DataFrame(columns=WORKLOG_COLUMNS)
    df = pd.DataFrame(rows)
    df["hours"] = pd.to_numeric(df["seconds"], errors="coerce").fillna(0) / 3600.0
    df["local_date"] = df["started"].apply(lambda v: to_local_date(v, tz))
    return df[WORKLOG_COLUMNS]


def filter_window(df: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    """Keep rows whose local date lies in ``[start, end]`` (inclusive)."""
    if df.empty:
        return df
    dated = df[df["local_date"].notna()]
    if dated.empty:
        return dated
    mask = dated["local_date"].apply(lambda d: start <= d <= end).astype(bool)
    return dated[mask]


def aggregate_worklogs(
    worklogs: Iterable[WorklogEntry],
    start: date,
    end: date,
    tz=None,
) -> WorklogAggregate:
    """Aggregate worklogs falling inside a local-date window.

    Parameters
    ----------
    worklogs : iterable of WorklogEntry
        Raw entries; ``started`` is a UTC instant.
    start, end : date
        Inclusive window, compared against the local calendar date of each
        entry in ``tz`` (never against the UTC instant).
    tz : str | tzinfo | None
        Target zone; ``None`` uses the configured default.

    Returns
    -------
    WorklogAggregate
        Unrounded per-issue, per-(issue, author), per-author and per-day hours.
    """
    df = filter_window(worklogs_to_dataframe(worklogs, tz), start, end)
    out = WorklogAggregate()
    if df.empty:
        return out

    issue_totals = df.groupby("issue_id", sort=False)["hours"].sum()
    out.issue_hours = {str(k): float(v) for k, v in issue_totals.items()}

    pairs = (
        df.groupby(["issue_id", "account_id"], sort=False)
        .agg(author=("author", "first"), hours=("hours", "sum"))
        .reset_index()
        .sort_values(by=["issue_id", "hours", "author"], ascending=[True, False, True], kind="stable")
    )
    for row in pairs.itertuples(index=False):
        out.issue_assignees.setdefault(str(row.issue_id), []).append(
            AssigneeHours(account_id=str(row.account_id), name=str(row.author), hours=float(row.hours))
        )

    authors = df.groupby("account_id", sort=False).agg(author=("author", "first"), hours=("hours", "sum"))
    out.author_hours = {
        str(account_id): AssigneeHours(account_id=str(account_id), name=str(row["author"]), hours=float(row["hours"]))
        for account_id, row in authors.iterrows()
    }

    daily = df.groupby("local_date")["hours"].sum().sort_index()
    out.daily_hours = [DailyHours(date=d, hours=float(h)) for d, h in daily.items()]
    return out
