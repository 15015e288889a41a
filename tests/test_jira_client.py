import pytest

from project_health.core.jira_client import JiraAPI


class FakeResponse:
    def __init__(self, payload, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        return self.responses.pop(0)


class FakeClient:
    def __init__(self, session):
        self._session = session


class SessionAPI(JiraAPI):
    def __init__(self, responses):
        self.server = "https://example.atlassian.net"
        self.session = FakeSession(responses)
        self.client = FakeClient(self.session)
        self._cache = {}
        self._cache_ttl = 300.0


def _page(ids, token=None, is_last=None):
    data = {"issues": [{"id": i} for i in ids]}
    if token:
        data["nextPageToken"] = token
    if is_last is not None:
        data["isLast"] = is_last
    return FakeResponse(data)


def test_search_follows_next_page_token():
    api = SessionAPI([_page(["1", "2"], token="t2"), _page(["3"], is_last=True)])
    out = api.search_enhanced('project = "PRJ"', fields=["summary", "status"])
    assert [i["id"] for i in out] == ["1", "2", "3"]
    (url, first), (_, second) = api.session.calls
    assert url == "https://example.atlassian.net/rest/api/3/search/jql"
    assert first["fields"] == "summary,status"
    assert "nextPageToken" not in first
    assert second["nextPageToken"] == "t2"


def test_search_results_are_cached_until_cleared():
    api = SessionAPI([_page(["1"]), _page(["1", "2"])])
    assert len(api.search_enhanced("key = PRJ-1")) == 1
    assert len(api.search_enhanced("key = PRJ-1")) == 1
    assert len(api.session.calls) == 1
    api.clear_cache()
    assert len(api.search_enhanced("key = PRJ-1")) == 2


def test_cached_results_survive_caller_mutation():
    api = SessionAPI([_page(["1", "2"])])
    first = api.search_enhanced("key in (PRJ-1, PRJ-2)")
    first.clear()
    second = api.search_enhanced("key in (PRJ-1, PRJ-2)")
    assert [i["id"] for i in second] == ["1", "2"]
    second.append({"id": "3"})
    assert len(api.search_enhanced("key in (PRJ-1, PRJ-2)")) == 2
    assert len(api.session.calls) == 1


def test_max_results_caps_page_size_and_output():
    api = SessionAPI([_page(["1", "2"], token="more")])
    out = api.search_enhanced("updated >= -14d", max_results=1)
    assert [i["id"] for i in out] == ["1"]
    assert api.session.calls[0][1]["maxResults"] == 1
    assert len(api.session.calls) == 1


def test_http_error_raises_runtime_error():
    api = SessionAPI([FakeResponse({}, status_code=503, text="Service Unavailable")])
    with pytest.raises(RuntimeError, match="503"):
        api.search_enhanced("project = PRJ")


def test_issue_worklogs_are_paged_with_start_at():
    api = SessionAPI(
        [
            FakeResponse({"worklogs": [{"id": "a"}, {"id": "b"}], "total": 3}),
            FakeResponse({"worklogs": [{"id": "c"}], "total": 3}),
        ]
    )
    logs = api.fetch_issue_worklogs("10001")
    assert [w["id"] for w in logs] == ["a", "b", "c"]
    assert [params["startAt"] for _, params in api.session.calls] == [0, 2]
    assert api.session.calls[0][0].endswith("/rest/api/3/issue/10001/worklog")


def test_changelog_and_id_lookup():
    api = SessionAPI([FakeResponse({"values": [{"id": "h1"}]}), _page(["7", "8"])])
    assert api.fetch_changelog("10001", max_results=5) == [{"id": "h1"}]
    assert api.session.calls[0][1] == {"maxResults": 5}
    assert [i["id"] for i in api.fetch_issues_by_ids(["7", "8"], fields=["summary"])] == ["7", "8"]
    assert api.session.calls[1][1]["jql"] == "id in (7,8)"
    assert api.fetch_issues_by_ids([]) == []
