"""
Shared pytest fixtures for resilient tests.

This module provides:
- A controllable clock for circuit breaker timing
- A recording sleep so retry tests never wait
- Structlog context cleanup between tests
"""

import sys
from pathlib import Path

import pytest
import structlog

# Ensure resilient package and test helpers are importable
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from tests._support.fault_injection import FakeClock, RecordingSleep


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def clean_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
