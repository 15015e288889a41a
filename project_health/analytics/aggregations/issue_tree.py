"""Resolve a flat work item set into an id-indexed hierarchy, fetching missing ancestors."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from project_health.core.config import ANCESTOR_MAX_DEPTH
from project_health.core.models import WorkItem

logger = logging.getLogger(__name__)

# Takes parent ids, returns whichever of those work items could be fetched.
AncestorFetcher = Callable[[Sequence[str]], Iterable[WorkItem]]


@dataclass(slots=True)
class IssueTree:
    """Fetched work items plus any ancestors resolved on demand.

    Items are indexed by id. ``parent_id`` references may also hold a key, so
    :meth:`get` falls back to a key lookup.
    """

    items: dict[str, WorkItem] = field(default_factory=dict)
    ancestors: dict[str, WorkItem] = field(default_factory=dict)
    _by_key: dict[str, str] = field(default_factory=dict)

    def add(self, item: WorkItem, *, ancestor: bool = False) -> bool:
        if item.id in self.items or item.id in self.ancestors:
            return False
        (self.ancestors if ancestor else self.items)[item.id] = item
        if item.key and item.key not in self._by_key:
            self._by_key[item.key] = item.id
        return True

    def get(self, ref: str | None) -> WorkItem | None:
        if not ref:
            return None
        found = self.items.get(ref) or self.ancestors.get(ref)
        if found is not None:
            return found
        item_id = self._by_key.get(ref)
        if item_id is None:
            return None
        return self.items.get(item_id) or self.ancestors.get(item_id)

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and self.get(ref) is not None

    def missing_parent_ids(self, items: Iterable[WorkItem] | None = None) -> list[str]:
        """Parent references (in first-seen order) that resolve to nothing."""
        source = self.items.values() if items is None else items
        out: list[str] = []
        seen: set[str] = set()
        for item in source:
            ref = item.parent_id
            if ref and ref not in seen and ref not in self:
                seen.add(ref)
                out.append(ref)
        return out


def build_issue_tree(
    items: Iterable[WorkItem],
    fetch_ancestors: AncestorFetcher | None = None,
    *,
    max_depth: int = ANCESTOR_MAX_DEPTH,
) -> IssueTree:
    """Index ``items`` by id and resolve missing parents level by level.

    The first occurrence of a duplicated id wins. Each level's missing parent
    ids are requested in one call to ``fetch_ancestors``; newly fetched
    ancestors may themselves reference missing parents, which are requested
    on the next level, up to ``max_depth`` levels. Ids already requested are
    never requested again, so cyclic references terminate. A failing fetch is
    logged and treated as returning nothing.
    """
    tree = IssueTree()
    for item in items:
        tree.add(item)
    if fetch_ancestors is None:
        return tree

    requested: set[str] = set()
    frontier: list[WorkItem] = list(tree.items.values())
    for depth in range(max_depth):
        missing = [ref for ref in tree.missing_parent_ids(frontier) if ref not in requested]
        if not missing:
            break
        requested.update(missing)
        logger.debug("Resolving %d missing ancestors (level %d)", len(missing), depth + 1)
        try:
            fetched = list(fetch_ancestors(missing))
        except Exception as exc:
            logger.warning("Ancestor fetch failed for %s: %s", ", ".join(missing), exc)
            break
        frontier = [item for item in fetched if tree.add(item, ancestor=True)]
    return tree
