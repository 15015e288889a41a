from datetime import UTC, date, datetime

import pytest

from project_health.analytics.aggregations.issue_tree import build_issue_tree
from project_health.analytics.aggregations.report import compose_report
from project_health.core.models import Author, WorkItem, WorklogEntry

ALICE = Author("acc-alice", "Alice")
BOB = Author("acc-bob", "Bob")
START = date(2024, 3, 1)
END = date(2024, 3, 10)
NOW = datetime(2024, 3, 10, 12, 0)


def _item(id_, key, parent=None, category="in-progress", due=None, issue_type="Task"):
    return WorkItem(
        id=id_,
        key=key,
        summary=f"Summary {key}",
        status="Done" if category == "done" else "In Progress",
        status_category=category,
        issue_type=issue_type,
        parent_id=parent,
        due_date=due,
    )


def _log(issue_id, hours, day, author=ALICE):
    started = datetime(2024, 3, day, 3, 0, tzinfo=UTC)
    return WorklogEntry(issue_id=issue_id, author=author, started=started, time_spent_seconds=int(hours * 3600))


def _sample_items():
    return [
        _item("1", "PRJ-1", category="done", due=date(2024, 3, 15), issue_type="Epic"),
        _item("2", "PRJ-2", parent="1"),
        _item("3", "PRJ-3", parent="1"),
        _item("4", "PRJ-4", parent="3"),
        _item("5", "PRJ-5", parent="99", due=date(2024, 3, 1)),
    ]


def _sample_logs():
    return [
        _log("1", 1.0, 4),
        _log("2", 2.0, 4, BOB),
        _log("4", 1.5, 5),
        _log("5", 0.5, 6, BOB),
    ]


def _fetch_parent(ids):
    assert list(ids) == ["99"]
    return [_item("99", "PRJ-99", issue_type="Epic")]


def _assert_totals(node):
    assert node.total_hours == pytest.approx(node.own_hours + sum(c.total_hours for c in node.children))
    for child in node.children:
        _assert_totals(child)


def test_rolls_children_into_parent_and_promotes_orphans():
    report = compose_report(
        _sample_items(), _sample_logs(), START, END, tz="Asia/Bangkok", fetch_ancestors=_fetch_parent, now=NOW
    )
    assert [i.key for i in report.issues] == ["PRJ-1", "PRJ-4", "PRJ-5"]
    epic = report.issues[0]
    assert epic.own_hours == pytest.approx(1.0)
    assert epic.total_hours == pytest.approx(3.0)
    assert [c.key for c in epic.children] == ["PRJ-2"]
    for node in report.issues:
        _assert_totals(node)


def test_missing_ancestors_become_zero_hour_metadata():
    report = compose_report(
        _sample_items(), _sample_logs(), START, END, tz="Asia/Bangkok", fetch_ancestors=_fetch_parent, now=NOW
    )
    assert list(report.parent_metadata) == ["PRJ-99"]
    stub = report.parent_metadata["PRJ-99"]
    assert stub.own_hours == 0 and stub.total_hours == 0
    orphan = report.issues[-1]
    assert orphan.parent.key == "PRJ-99"
    assert orphan.parent.summary == "Summary PRJ-99"


def test_failed_ancestor_fetch_degrades_to_no_metadata():
    def boom(ids):
        raise RuntimeError("503")

    report = compose_report(_sample_items(), _sample_logs(), START, END, tz="Asia/Bangkok", fetch_ancestors=boom, now=NOW)
    assert report.parent_metadata == {}
    assert "PRJ-5" in [i.key for i in report.issues]


def test_summary_trends_and_forecast():
    report = compose_report(_sample_items(), _sample_logs(), START, END, tz="Asia/Bangkok", now=NOW)
    s = report.summary
    assert s.total_hours == pytest.approx(5.0)
    assert s.active_issues == 4
    assert s.completed_issues == 1
    assert s.team_members == 2
    assert s.on_time_issues == 1
    assert s.overdue_issues == 1
    assert [d.date for d in report.trends.daily_hours] == [date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6)]
    assert report.trends.burn_rate == pytest.approx(5.0 / 3)
    assert report.forecast.remaining_hours == pytest.approx(3.75)
    assert report.forecast.projected_completion == date(2024, 3, 13)


def test_parent_cycle_is_emitted_once():
    items = [_item("a", "PRJ-A", parent="b"), _item("b", "PRJ-B", parent="a")]
    logs = [_log("a", 1.0, 4), _log("b", 1.0, 4)]
    report = compose_report(items, logs, START, END, tz="UTC", now=NOW)
    assert len(report.issues) == 1
    top = report.issues[0]
    assert top.key == "PRJ-A"
    assert [c.key for c in top.children] == ["PRJ-B"]
    assert top.total_hours == pytest.approx(2.0)


def test_first_occurrence_of_duplicate_id_wins():
    first = _item("1", "PRJ-1")
    dup = WorkItem(id="1", key="PRJ-1", summary="other", status="x", status_category="todo", issue_type="Task")
    tree = build_issue_tree([first, dup])
    assert tree.get("1").summary == "Summary PRJ-1"
    assert tree.get("PRJ-1") is first


def test_ancestor_walk_stops_at_max_depth_and_cycles():
    calls = []

    def fetch(ids):
        calls.append(list(ids))
        ref = ids[0]
        nxt = str(int(ref) + 1)
        return [_item(ref, f"PRJ-{ref}", parent=nxt)]

    tree = build_issue_tree([_item("1", "PRJ-1", parent="2")], fetch, max_depth=2)
    assert calls == [["2"], ["3"]]
    assert set(tree.ancestors) == {"2", "3"}


def test_to_dict_rounds_only_at_output():
    items = [_item("1", "PRJ-1")]
    started = datetime(2024, 3, 4, 3, 0, tzinfo=UTC)
    logs = [WorklogEntry(issue_id="1", author=ALICE, started=started, time_spent_seconds=1200) for _ in range(3)]
    out = compose_report(items, logs, START, END, tz="UTC", now=NOW).to_dict()
    assert out["issues"][0]["ownHours"] == 1.0
    assert out["summary"]["totalHours"] == 1.0
