"""
Unit tests for configuration loading in room_calendar_sync.config.
"""

from datetime import date

import pytest

from room_calendar_sync.config import ACCESS_KEY_ENV
from room_calendar_sync.config import load_config
from room_calendar_sync.models import ConfigError
from room_calendar_sync.models import RoomConfig

_CONFIG = """\
[room-calendar-sync]
api_base_path = https://schedule.example.edu/api/v1
access_key = k3y%with%percent
email_domain = example.edu
timezone = America/Chicago
start_date = 2026-03-02
days_ahead = 7
max_workers = 4

[room:Science 101]
room_number = SCI-101
calendar_mailbox = sci-uid

[room:Library 2]
room_number = LIB-2
calendar_mailbox = lib-uid
"""


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv(ACCESS_KEY_ENV, raising=False)
    path = tmp_path / "room-calendar-sync.conf"
    path.write_text(_CONFIG)
    return path


def test_loads_everything(config_path):
    cfg = load_config(config_path, dry_run=True)

    assert cfg.api_base_path == "https://schedule.example.edu/api/v1"
    assert cfg.access_key == "k3y%with%percent"
    assert cfg.email_domain == "example.edu"
    assert cfg.timezone == "America/Chicago"
    assert cfg.window.start == date(2026, 3, 2)
    assert cfg.window.end == date(2026, 3, 9)
    assert cfg.max_workers == 4
    assert cfg.max_retries == 3
    assert cfg.dry_run is True
    assert cfg.rooms == (
        RoomConfig("Science 101", "SCI-101", "sci-uid"),
        RoomConfig("Library 2", "LIB-2", "lib-uid"),
    )


def test_cli_overrides_window(config_path):
    cfg = load_config(config_path, start_date="2026-04-01", days=1)
    assert cfg.window.start == date(2026, 4, 1)
    assert cfg.window.end == date(2026, 4, 2)


def test_room_selection(config_path):
    cfg = load_config(config_path, rooms=["Library 2"])
    assert [room.name for room in cfg.rooms] == ["Library 2"]


def test_unknown_room(config_path):
    with pytest.raises(ConfigError, match="Unknown room"):
        load_config(config_path, rooms=["Gym"])


def test_access_key_from_environment(config_path, monkeypatch):
    monkeypatch.setenv(ACCESS_KEY_ENV, "from-env")
    assert load_config(config_path).access_key == "from-env"


def test_missing_access_key(tmp_path, monkeypatch):
    monkeypatch.delenv(ACCESS_KEY_ENV, raising=False)
    path = tmp_path / "c.conf"
    path.write_text(_CONFIG.replace("access_key = k3y%with%percent\n", ""))
    with pytest.raises(ConfigError, match="access key"):
        load_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="api_base_path"):
        load_config(tmp_path / "absent.conf")


def test_no_rooms(tmp_path, monkeypatch):
    monkeypatch.delenv(ACCESS_KEY_ENV, raising=False)
    path = tmp_path / "c.conf"
    path.write_text(_CONFIG.split("[room:")[0])
    with pytest.raises(ConfigError, match="No \\[room:"):
        load_config(path)


def test_incomplete_room(tmp_path, monkeypatch):
    monkeypatch.delenv(ACCESS_KEY_ENV, raising=False)
    path = tmp_path / "c.conf"
    path.write_text(_CONFIG.replace("calendar_mailbox = lib-uid\n", ""))
    with pytest.raises(ConfigError, match="room:Library 2"):
        load_config(path)


@pytest.mark.parametrize(
    "old, new, message",
    [
        ("start_date = 2026-03-02", "start_date = soon", "Invalid date"),
        ("days_ahead = 7", "days_ahead = 0", "at least one day"),
        ("max_workers = 4", "max_workers = many", "integer"),
        ("timezone = America/Chicago", "timezone = Mars/Olympus", "Unknown timezone"),
    ],
)
def test_invalid_values(tmp_path, monkeypatch, old, new, message):
    monkeypatch.delenv(ACCESS_KEY_ENV, raising=False)
    path = tmp_path / "c.conf"
    path.write_text(_CONFIG.replace(old, new))
    with pytest.raises(ConfigError, match=message):
        load_config(path)
