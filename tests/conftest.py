"""Shared fixtures for the unit tests."""

from __future__ import annotations

import pytest

from scrobble_dedup.metrics import RunStats

from .fakes import RecordingCache


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def stats() -> RunStats:
    return RunStats()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path
