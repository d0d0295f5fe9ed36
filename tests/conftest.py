"""Pytest configuration and shared fixtures."""

import sys
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tt_cli.config import Config, ConfigModel  # noqa: E402
from tt_cli.storage import Storage  # noqa: E402
from tt_cli.tasks import TaskService  # noqa: E402

# Thursday afternoon
NOW = datetime(2025, 1, 23, 15, 30, tzinfo=timezone.utc)


def set_local_timezone(monkeypatch, name):
    """Switch the process local time zone for the rest of the test."""
    monkeypatch.setenv("TZ", name)
    time.tzset()


@pytest.fixture(autouse=True)
def reset_config():
    Config.reset()
    yield
    Config.reset()


@pytest.fixture(autouse=True)
def utc_local_time(monkeypatch):
    """Run every test with UTC as the local time zone."""
    set_local_timezone(monkeypatch, "UTC")
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def local_timezone(monkeypatch):
    return lambda name: set_local_timezone(monkeypatch, name)


@pytest.fixture
def config(tmp_path):
    return ConfigModel(data_dir=str(tmp_path / "data"))


@pytest.fixture
def storage(config):
    return Storage(config)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def service(storage, clock):
    return TaskService(storage, clock=clock)
