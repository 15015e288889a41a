from datetime import UTC, datetime

from project_health.analytics.metrics.activity import build_activity_feed

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def _adf(text):
    return {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]}


def _sample_issues():
    return [
        {
            "id": "10001",
            "key": "PRJ-1",
            "fields": {
                "summary": "Checkout flow",
                "created": "2024-03-08T10:00:00.000+0000",
                "creator": {"displayName": "Alice"},
                "comment": {
                    "comments": [
                        {
                            "id": "501",
                            "created": "2024-03-09T09:00:00.000+0000",
                            "author": {"displayName": "Bob"},
                            "body": _adf("Looks good"),
                        },
                        {
                            "id": "400",
                            "created": "2024-02-01T09:00:00.000+0000",
                            "author": {"displayName": "Bob"},
                            "body": "old note",
                        },
                    ]
                },
            },
        },
        {
            "id": "10002",
            "key": "PRJ-2",
            "fields": {
                "summary": "Legacy",
                "created": "2024-01-01T10:00:00.000+0000",
                "creator": {"displayName": "Carol"},
            },
        },
        {"id": "10003", "key": "PRJ-3"},
    ]


def _sample_histories():
    return {
        "10001": [
            {
                "id": "100",
                "created": "2024-03-09T12:00:00.000+0000",
                "author": {"displayName": "Alice"},
                "items": [
                    {"field": "status", "fromString": "To Do", "toString": "In Progress"},
                    {"field": "assignee", "fromString": None, "toString": "Alice"},
                ],
            }
        ]
    }


def test_feed_is_newest_first_within_lookback():
    feed = build_activity_feed(_sample_issues(), _sample_histories(), now=NOW, lookback_days=14, tz="UTC")
    assert [a.id for a in feed] == ["history-100-0", "history-100-1", "comment-501", "10001-create"]
    history = feed[0]
    assert (history.field, history.from_value, history.to_value) == ("status", "To Do", "In Progress")
    assert feed[2].comment_body == "Looks good"
    assert feed[2].user == "Bob"
    created = feed[3]
    assert (created.type, created.field, created.to_value) == ("create", "Issue", "Created")
    assert created.issue_key == "PRJ-1"


def test_user_filter_and_limit():
    feed = build_activity_feed(_sample_issues(), _sample_histories(), now=NOW, user="Alice", tz="UTC")
    assert {a.user for a in feed} == {"Alice"}
    assert len(feed) == 3

    capped = build_activity_feed(_sample_issues(), _sample_histories(), now=NOW, limit=2, tz="UTC")
    assert [a.id for a in capped] == ["history-100-0", "history-100-1"]


def test_timestamps_are_reported_in_target_zone():
    feed = build_activity_feed(_sample_issues(), now=NOW, tz="Asia/Bangkok")
    created = [a for a in feed if a.type == "create"][0]
    assert created.timestamp.hour == 17
    assert created.timestamp.utcoffset().total_seconds() == 7 * 3600


def test_missing_actor_is_unknown():
    issues = [
        {
            "id": "1",
            "key": "PRJ-9",
            "fields": {"summary": "x", "created": "2024-03-09T00:00:00.000+0000"},
        }
    ]
    feed = build_activity_feed(issues, now=NOW, tz="UTC")
    assert feed[0].user == "Unknown"
