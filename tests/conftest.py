"""
Shared fixtures: a guard context wired to fake load processes and a
scripted monitor, so no test spawns real load.
"""

from unittest.mock import patch

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from core.context import GuardContext
from core.guard import SpeedGuard
from core.history import AlertLog, HistoryBuffer
from core.load_controller import LoadController
from core.models import GuardSettings
from fakes import FakeExecutor, ScriptedMonitor


@pytest.fixture(autouse=True)
def eight_cores():
    """Worker caps are clamped to the core count; pin it so tests don't depend on the host."""
    with patch('core.load_controller.psutil.cpu_count', return_value=8):
        yield


@pytest.fixture
def settings():
    return GuardSettings(
        cpu_threshold=90.0,
        safety_threshold=95.0,
        memory_threshold=85.0,
        temperature_threshold=80.0,
        critical_temperature=90.0,
    )


@pytest.fixture
def history():
    return HistoryBuffer(100)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def controller(executor, history, settings):
    return LoadController(executor, history, settings, max_workers=2, grace_seconds=0.05,
                          sweep_untracked=False)


@pytest.fixture
def context(settings, history, controller):
    return GuardContext(settings=settings, history=history, alerts=AlertLog(), controller=controller)


@pytest.fixture
def monitor():
    return ScriptedMonitor()


@pytest.fixture
def guard(context, monitor):
    guard = SpeedGuard(context, monitor, interval_seconds=3600,
                       scheduler=BackgroundScheduler(daemon=True))
    yield guard
    guard.shutdown()
