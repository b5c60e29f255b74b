"""Shared fixtures for the claimer test suite."""

from __future__ import annotations

import random

import pytest

from claimer import ClaimOrchestrator, ClaimSettings
from tests.fakes import FakeChainClient, SleepRecorder, make_settings


@pytest.fixture
def fake_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def settings(tmp_path) -> ClaimSettings:
    return make_settings(tmp_path)


@pytest.fixture
def orchestrator(fake_client, settings, sleeper) -> ClaimOrchestrator:
    return ClaimOrchestrator(fake_client, settings, rng=random.Random(42), sleep=sleeper)
