from datetime import UTC, date, datetime

import pytest
import pytz

from project_health.core import settings as settings_module
from project_health.core.config import SETTINGS
from project_health.core.settings import load_settings
from project_health.core.status import is_active_project_status, normalize_status_category
from project_health.core.timezone import (
    normalize_timestamp,
    parse_date,
    resolve_timezone,
    to_local_naive,
    week_start,
)


# ------------------ settings ------------------
@pytest.fixture(autouse=True)
def _fresh_settings_cache(monkeypatch):
    monkeypatch.setattr(settings_module, "_CACHE", None)


def test_missing_settings_file_uses_defaults(tmp_path):
    assert load_settings(tmp_path, refresh=True) is SETTINGS


def test_settings_file_overrides_defaults(tmp_path):
    (tmp_path / "project_health.yaml").write_text(
        "project_health:\n  timezone: UTC\n  hours_per_work_day: 7.5\n  activity_limit: 10\n"
    )
    settings = load_settings(tmp_path, refresh=True)
    assert settings.timezone == "UTC"
    assert settings.hours_per_work_day == 7.5
    assert settings.activity_limit == 10
    assert settings.fetch_max_workers == SETTINGS.fetch_max_workers
    # cached until refreshed
    assert load_settings(tmp_path) is settings


def test_malformed_settings_fall_back(tmp_path):
    (tmp_path / "project_health.yaml").write_text("activity_limit: many\n")
    assert load_settings(tmp_path, refresh=True) is SETTINGS


# ------------------ time zones ------------------
@pytest.mark.parametrize(
    ("name", "offset_hours"),
    [("UTC+7", 7), ("+07:00", 7), ("GMT-03:30", -3.5), ("UTC", 0), ("Asia/Bangkok", 7)],
)
def test_resolve_timezone_forms(name, offset_hours):
    zone = resolve_timezone(name)
    instant = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
    assert instant.astimezone(zone).utcoffset().total_seconds() == offset_hours * 3600


def test_unknown_zone_raises():
    with pytest.raises(pytz.UnknownTimeZoneError):
        resolve_timezone("Mars/Olympus")


def test_naive_timestamps_are_taken_as_utc():
    ts = normalize_timestamp("2024-03-01 20:00:00", resolve_timezone("Asia/Bangkok"))
    assert ts.hour == 3
    assert ts.day == 2
    assert normalize_timestamp("garbage", pytz.UTC) is None


def test_parse_date_placeholders():
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_date(datetime(2024, 2, 29, 23, 0)) == date(2024, 2, 29)
    assert parse_date("-") is None
    assert parse_date("") is None
    assert parse_date("soon") is None


def test_local_naive_and_week_start():
    zone = resolve_timezone("Asia/Bangkok")
    assert to_local_naive(date(2024, 1, 16), zone) == datetime(2024, 1, 16)
    assert to_local_naive(datetime(2024, 1, 15, 20, 0, tzinfo=UTC), zone) == datetime(2024, 1, 16, 3, 0)
    assert week_start(date(2024, 1, 17)) == date(2024, 1, 15)
    assert week_start(date(2024, 1, 15)) == date(2024, 1, 15)


# ------------------ status ------------------
def test_status_normalization():
    assert normalize_status_category("new") == "todo"
    assert normalize_status_category("indeterminate", "Done") == "in-progress"
    assert normalize_status_category(None, "Resolved") == "done"
    assert normalize_status_category(None, "Something Custom") == "todo"


@pytest.mark.parametrize(
    ("value", "expected"),
    [("Active", True), ("  on   going ", True), ("Closed", False), ("", False), (None, False)],
)
def test_active_project_status(value, expected):
    assert is_active_project_status(value) is expected
