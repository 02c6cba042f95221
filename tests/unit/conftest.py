"""
Shared fixtures for unit tests.

Unit tests run against the in-memory key-value store and never need Redis
or network access.
"""

import base64
import io
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from echo_audit.core.kv_store import InMemoryKeyValueStore
from echo_audit.schemas.audit import SuggestedFix, Violation


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TickingClock:
    """UTC datetime clock that moves one second per call."""

    def __init__(self, start: datetime = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


def make_violation(severity="critical", criterion="1.4.3", **overrides) -> Violation:
    data = {
        "id": f"{severity}-{criterion}",
        "severity": severity,
        "wcag_criterion": criterion,
        "title": "Low contrast text",
        "description": "Body text fails the contrast minimum",
        "user_impact": "Hard to read for low-vision users",
        "suggested_fix": SuggestedFix(code="color: #222;", explanation="Darken the text"),
    }
    data.update(overrides)
    return Violation(**data)


def png_base64(size=(64, 48), color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def date_clock():
    return TickingClock()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def violation():
    """Factory for violations with sensible defaults."""
    return make_violation


@pytest.fixture
def png_frame_data():
    return png_base64
