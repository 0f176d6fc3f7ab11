"""Shared fixtures for jobfilter tests."""
from datetime import datetime, timezone

import pytest

from jobfilter.models import InboundEmail
from jobfilter.stats import CycleState


@pytest.fixture
def make_email():
    """Factory for InboundEmail with sensible defaults."""

    def _make(
        sender="noreply@example.com",
        subject="",
        body="",
        html="",
        message_id="msg-1",
        links=(),
    ):
        return InboundEmail(
            message_id=message_id,
            sender=sender,
            subject=subject,
            body=body,
            html=html,
            received_at=datetime(2026, 2, 20, 10, 0, tzinfo=timezone.utc),
            links=tuple(links),
        )

    return _make


@pytest.fixture
def state():
    return CycleState()


class RecordingSleep:
    """Stand-in for time.sleep that only remembers the delays."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def no_sleep():
    return RecordingSleep()
