"""Recent activity feed (issue creation, comments, changelog items)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

import pytz

from project_health.core.config import ACTIVITY_LIMIT, ACTIVITY_LOOKBACK_DAYS
from project_health.core.mappers import extract_text_from_adf
from project_health.core.models import ActivityItem
from project_health.core.timezone import normalize_timestamp, resolve_timezone

TYPE_CREATE = "create"
TYPE_COMMENT = "comment"
TYPE_HISTORY = "history"

UNKNOWN_USER = "Unknown"


def _display_name(person: Any) -> str:
    if isinstance(person, dict):
        return person.get("displayName") or UNKNOWN_USER
    return UNKNOWN_USER


def _local(value, tz) -> datetime | None:
    ts = normalize_timestamp(value, tz)
    return ts.to_pydatetime() if ts is not None else None


def _issue_events(
    issue: dict[str, Any],
    histories: Iterable[dict[str, Any]],
    cutoff: datetime,
    user: str | None,
    tz,
) -> list[ActivityItem]:
    fields = issue.get("fields") or {}
    issue_id = str(issue.get("id") or issue.get("key") or "")
    key = issue.get("key") or ""
    summary = fields.get("summary") or ""
    out: list[ActivityItem] = []

    def wanted(ts: datetime | None, name: str) -> bool:
        return ts is not None and ts >= cutoff and (not user or name == user)

    created = _local(fields.get("created"), tz)
    creator = _display_name(fields.get("creator"))
    if wanted(created, creator):
        out.append(
            ActivityItem(
                id=f"{issue_id}-create",
                type=TYPE_CREATE,
                user=creator,
                timestamp=created,
                issue_key=key,
                issue_summary=summary,
                field="Issue",
                to_value="Created",
            )
        )

    for comment in (fields.get("comment") or {}).get("comments") or []:
        ts = _local(comment.get("created"), tz)
        author = _display_name(comment.get("author"))
        if not wanted(ts, author):
            continue
        out.append(
            ActivityItem(
                id=f"comment-{comment.get('id')}",
                type=TYPE_COMMENT,
                user=author,
                timestamp=ts,
                issue_key=key,
                issue_summary=summary,
                comment_body=extract_text_from_adf(comment.get("body")),
            )
        )

    for history in histories or []:
        ts = _local(history.get("created"), tz)
        author = _display_name(history.get("author"))
        if not wanted(ts, author):
            continue
        for idx, item in enumerate(history.get("items") or []):
            out.append(
                ActivityItem(
                    id=f"history-{history.get('id')}-{idx}",
                    type=TYPE_HISTORY,
                    user=author,
                    timestamp=ts,
                    issue_key=key,
                    issue_summary=summary,
                    field=item.get("field"),
                    from_value=item.get("fromString"),
                    to_value=item.get("toString"),
                )
            )
    return out


def build_activity_feed(
    raw_issues: Iterable[dict[str, Any]],
    histories_by_issue: Mapping[str, list[dict[str, Any]]] | None = None,
    *,
    now: datetime | None = None,
    user: str | None = None,
    lookback_days: int = ACTIVITY_LOOKBACK_DAYS,
    limit: int = ACTIVITY_LIMIT,
    tz=None,
) -> list[ActivityItem]:
    """Flatten recent issue events into one feed, newest first.

    Parameters
    ----------
    raw_issues : iterable of dict
        Raw Jira issues carrying ``summary``, ``comment``, ``creator`` and
        ``created`` fields.
    histories_by_issue : mapping, optional
        Changelog histories keyed by issue id. Missing ids mean no history.
    now : datetime, optional
        Reference instant (tz-aware); the cutoff is ``now - lookback_days``.
    user : str, optional
        Keep only events whose actor display name equals this value.
    """
    zone = resolve_timezone(tz) if tz is None or isinstance(tz, str) else tz
    reference = now or datetime.now(tz=pytz.UTC)
    if reference.tzinfo is None:
        reference = pytz.UTC.localize(reference)
    cutoff = reference - timedelta(days=lookback_days)
    histories_by_issue = histories_by_issue or {}

    items: list[ActivityItem] = []
    for issue in raw_issues:
        if not issue.get("fields"):
            continue
        issue_id = str(issue.get("id") or issue.get("key") or "")
        items.extend(_issue_events(issue, histories_by_issue.get(issue_id, []), cutoff, user, zone))
    items.sort(key=lambda a: a.timestamp, reverse=True)
    return items[:limit]
