"""Jira REST v3 access: paginated JQL search, worklog and changelog endpoints."""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Sequence
from typing import Any

from jira import JIRA

from .config import CHANGELOG_MAX_RESULTS


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"}
        )
        # {(hash): (timestamp, data)}
        self._cache: dict[str, tuple[float, list]] = {}
        self._cache_ttl = 300.0  # seconds

    def clear_cache(self) -> None:
        """Reset the in-memory search cache."""
        cache = getattr(self, "_cache", None)
        if isinstance(cache, dict):
            cache.clear()

    def _cache_key(self, jql: str, fields, expand, page_size: int) -> str:
        payload = {
            "jql": jql,
            "fields": fields,
            "expand": expand,
            "page_size": page_size,
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()

    def _session(self):
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        return session

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        resp = self._session().get(f"{self.server}{path}", params=params or {})
        if resp.status_code >= 400:
            raise RuntimeError(f"GET {path} failed {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    def search_enhanced(
        self,
        jql: str,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
        page_size: int = 1000,
        max_results: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run a JQL search, following ``nextPageToken`` until the last page.

        ``max_results`` caps the total number of issues returned. Results are
        cached for ``_cache_ttl`` seconds keyed by query, fields and expand.
        """
        fields = list(fields) if fields else None
        expand = list(expand) if expand else None
        if max_results is not None:
            page_size = min(page_size, max_results)
        key = self._cache_key(jql, fields, expand, page_size)
        now = time.time()
        cached = self._cache.get(key)
        if cached and (now - cached[0]) < self._cache_ttl:
            return list(cached[1])
        params: dict[str, Any] = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)
        out: list[dict[str, Any]] = []
        token = None
        while True:
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            data = self._get_json("/rest/api/3/search/jql", qp)
            out.extend(data.get("issues", []))
            if max_results is not None and len(out) >= max_results:
                out = out[:max_results]
                break
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        self._cache[key] = (now, out)
        return list(out)

    def fetch_issues_by_ids(self, ids: Sequence[str], fields: Sequence[str] | None = None) -> list[dict[str, Any]]:
        """Fetch issues by numeric id (or key) in one ``id in (...)`` query."""
        if not ids:
            return []
        jql = f"id in ({','.join(str(i) for i in ids)})"
        return self.search_enhanced(jql, fields=fields, page_size=max(len(ids), 1))

    def fetch_changelog(self, issue_id: str, max_results: int = CHANGELOG_MAX_RESULTS) -> list[dict[str, Any]]:
        """Return the most recent changelog histories of one issue."""
        data = self._get_json(f"/rest/api/3/issue/{issue_id}/changelog", {"maxResults": max_results})
        return data.get("values") or data.get("histories") or []

    def fetch_issue_worklogs(self, issue_id: str) -> list[dict[str, Any]]:
        """Return every worklog of one issue, paging with ``startAt``."""
        out: list[dict[str, Any]] = []
        start_at = 0
        while True:
            data = self._get_json(
                f"/rest/api/3/issue/{issue_id}/worklog", {"startAt": start_at, "maxResults": 1000}
            )
            batch = data.get("worklogs") or []
            out.extend(batch)
            total = data.get("total")
            start_at += len(batch)
            if not batch or not isinstance(total, int) or start_at >= total:
                break
        return out
