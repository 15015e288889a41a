"""Status category normalization utilities.

Work items carry a free-form workflow status name plus Jira's status
category. The engine only reasons about three canonical categories:
``todo``, ``in-progress`` and ``done`` (see config.STATUS_CATEGORY_ALIASES).
"""

from __future__ import annotations

from .config import (
    ACTIVE_PROJECT_STATUSES,
    STATUS_CATEGORY_ALIASES,
    STATUS_CATEGORY_DONE,
    STATUS_CATEGORY_TODO,
)


def normalize_status_category(category_key: str | None, status_name: str | None = None) -> str:
    """Map a Jira status category key (or, failing that, a status name) to a canonical category.

    Parameters
    ----------
    category_key : str | None
        ``fields.status.statusCategory.key`` (``new``, ``indeterminate``, ``done``).
    status_name : str | None
        ``fields.status.name``, used when the category key is missing or unknown.

    Returns
    -------
    str
        One of ``todo``, ``in-progress``, ``done``. Unknown values map to ``todo``.

    Examples
    --------
    >>> normalize_status_category("indeterminate")
    'in-progress'
    >>> normalize_status_category(None, "Closed")
    'done'
    """
    for value in (category_key, status_name):
        if not value:
            continue
        text = str(value).strip().lower()
        if text in STATUS_CATEGORY_ALIASES:
            return STATUS_CATEGORY_ALIASES[text]
    return STATUS_CATEGORY_TODO


def is_done_category(category: str | None) -> bool:
    return category == STATUS_CATEGORY_DONE


def is_active_project_status(value: str | None) -> bool:
    """Check whether a project status marks the project as active.

    Matching is case-insensitive and whitespace-tolerant. An empty or missing
    status is not active.
    """
    if not value:
        return False
    text = " ".join(str(value).strip().lower().split())
    return text in ACTIVE_PROJECT_STATUSES
