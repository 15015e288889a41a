"""Mapping raw Jira issue JSON and persistence rows into domain models."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

from .models import AllocationRecord, Author, WorkItem, WorklogEntry
from .status import normalize_status_category
from .timezone import parse_date

UNKNOWN_AUTHOR = Author(account_id="unknown", display_name="Unassigned")


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _name(node: Any, key: str = "name") -> str | None:
    if isinstance(node, dict):
        value = node.get(key)
        return str(value) if value is not None else None
    return None


def _estimate_seconds(fields: dict[str, Any]) -> int | None:
    tracking = fields.get("timetracking") or {}
    seconds = tracking.get("originalEstimateSeconds")
    if seconds is None:
        seconds = fields.get("timeoriginalestimate")
    try:
        return int(seconds) if seconds else None
    except (TypeError, ValueError):
        return None


def map_work_item(raw: dict[str, Any]) -> WorkItem:
    fields = raw.get("fields") or {}
    status = fields.get("status") or {}
    parent = fields.get("parent") or {}
    key = raw.get("key") or ""
    parent_id = parent.get("id") or parent.get("key")
    return WorkItem(
        id=str(raw.get("id") or key),
        key=key,
        summary=fields.get("summary") or "",
        status=_name(status) or "Unknown",
        status_category=normalize_status_category(
            _name(status.get("statusCategory") or {}, "key"), _name(status)
        ),
        issue_type=_name(fields.get("issuetype")) or "Unknown",
        parent_id=str(parent_id) if parent_id else None,
        parent_key=parent.get("key"),
        due_date=parse_date(fields.get("duedate")),
        original_estimate_seconds=_estimate_seconds(fields),
        created=parse_dt(fields.get("created")),
        updated=parse_dt(fields.get("updated")),
    )


def extract_text_from_adf(body) -> str:
    """Extract plain text from an Atlassian Document Format (ADF) body.

    ADF is the nested JSON structure Jira Cloud uses for comments and worklog
    notes. Text nodes are collected recursively and joined with spaces.

    Parameters
    ----------
    body : str, dict or list
        The body as a JSON string, a parsed ADF node, or a list of nodes.

    Returns
    -------
    str
        Plain text content (plain-string bodies are returned stripped).
    """
    if body is None:
        return ""
    if isinstance(body, str):
        stripped = body.strip()
        if stripped.startswith("{") and '"type"' in stripped:
            try:
                body = json.loads(stripped)
            except (json.JSONDecodeError, ValueError):
                return stripped[:500]
        else:
            return stripped[:500]
    if isinstance(body, dict):
        texts: list[str] = []
        if body.get("type") == "text" and "text" in body:
            texts.append(str(body["text"]))
        content = body.get("content")
        if isinstance(content, list):
            for item in content:
                extracted = extract_text_from_adf(item)
                if extracted:
                    texts.append(extracted)
        return " ".join(texts)
    if isinstance(body, list):
        return " ".join(t for t in (extract_text_from_adf(item) for item in body) if t)
    return str(body)[:500]


def _comment_text(comment: Any) -> str | None:
    if comment is None:
        return None
    return extract_text_from_adf(comment) or None


def map_worklog(raw_log: dict[str, Any], issue_id: str) -> WorklogEntry | None:
    """Map one Jira worklog object. Entries without a ``started`` instant are dropped."""
    started = parse_dt(raw_log.get("started"))
    if started is None:
        return None
    author_raw = raw_log.get("author") or {}
    author = (
        Author(
            account_id=author_raw.get("accountId") or "unknown",
            display_name=author_raw.get("displayName") or "Unassigned",
        )
        if author_raw
        else UNKNOWN_AUTHOR
    )
    try:
        seconds = int(raw_log.get("timeSpentSeconds") or 0)
    except (TypeError, ValueError):
        seconds = 0
    return WorklogEntry(
        issue_id=issue_id,
        author=author,
        started=started,
        time_spent_seconds=seconds,
        comment=_comment_text(raw_log.get("comment")),
        id=str(raw_log["id"]) if raw_log.get("id") is not None else None,
    )


def map_issue_worklogs(raw: dict[str, Any]) -> list[WorklogEntry]:
    fields = raw.get("fields") or {}
    issue_id = str(raw.get("id") or raw.get("key") or "")
    logs = (fields.get("worklog") or {}).get("worklogs") or []
    out: list[WorklogEntry] = []
    for log in logs:
        entry = map_worklog(log, issue_id)
        if entry is not None:
            out.append(entry)
    return out


def map_issues(raw_issues: Iterable[dict[str, Any]]) -> tuple[list[WorkItem], list[WorklogEntry]]:
    items: list[WorkItem] = []
    worklogs: list[WorklogEntry] = []
    for raw in raw_issues:
        items.append(map_work_item(raw))
        worklogs.extend(map_issue_worklogs(raw))
    return items, worklogs


def map_allocation(row: dict[str, Any]) -> AllocationRecord | None:
    """Map a persistence row (camelCase keys) into an AllocationRecord.

    Rows with unparseable dates are skipped (None) rather than raising.
    """
    start = parse_date(row.get("startDate"))
    end = parse_date(row.get("endDate"))
    if start is None or end is None:
        return None
    try:
        percent = float(row.get("allocationPercent") or 0)
    except (TypeError, ValueError):
        percent = 0.0
    return AllocationRecord(
        person_id=str(row.get("accountId") or ""),
        display_name=row.get("displayName") or "",
        start_date=start,
        end_date=end,
        allocation_percent=percent,
        note=row.get("notes"),
        id=str(row["id"]) if row.get("id") is not None else None,
    )
