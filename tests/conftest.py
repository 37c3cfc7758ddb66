from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from dependency_age.core.paths import global_paths
from tests.stubs.fake_clock import FakeClock


@pytest.fixture(autouse=True)
def tmp_working_directory(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Path:
    tmp_working_directory = tmp_path_factory.mktemp("test_cwd")
    monkeypatch.chdir(tmp_working_directory)
    return tmp_working_directory


@pytest.fixture(autouse=True)
def dependency_age_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Path:
    home = tmp_path_factory.mktemp("home") / ".dependency-age"
    home.mkdir(parents=True, exist_ok=True)
    monkeypatch.delenv("DEPENDENCY_AGE_HOME", raising=False)
    monkeypatch.setattr(global_paths, "_DEFAULT_DEPENDENCY_AGE_HOME", home)
    return home


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(now: datetime) -> FakeClock:
    return FakeClock(now)
