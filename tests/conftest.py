"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests,
ensuring MOCK mode is used throughout.
"""

import os
import asyncio
import pytest

# CRITICAL: Set MOCK mode before any imports
os.environ["LLM_TYPE"] = "MOCK"

from safety_triage.config import AuditConfig, NotificationConfig
from safety_triage.triage.models import TriageAnswers


class RecordingChannel:
    """Notification channel that records deliveries in memory."""

    def __init__(self, fail_times: int = 0, delay: float = 0.0):
        self.fail_times = fail_times
        self.delay = delay
        self.attempts = 0
        self.delivered = []
        self.closed = False

    async def deliver(self, notice) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.attempts <= self.fail_times:
            raise RuntimeError("channel down")
        self.delivered.append(notice)

    async def close(self) -> None:
        self.closed = True


async def wait_for_deliveries(relay, count: int, timeout: float = 2.0) -> None:
    """Poll until the relay has delivered or failed ``count`` notices."""
    async def _poll():
        while relay.delivered_count + relay.failed_count < count:
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout=timeout)


def make_answers(**overrides) -> TriageAnswers:
    """Build answers with every question defaulting to "no"."""
    values = {
        "immediate_danger": False,
        "harm_self": False,
        "harm_others": False,
        "need_help_soon": False,
        "need_help_today": False,
    }
    values.update(overrides)
    return TriageAnswers(**values)


@pytest.fixture
def mock_mode():
    """Ensure mock mode is set."""
    original = os.environ.get("LLM_TYPE")
    os.environ["LLM_TYPE"] = "MOCK"
    yield True
    if original:
        os.environ["LLM_TYPE"] = original


@pytest.fixture
def audit_sink():
    """Create an in-memory AuditSink."""
    from safety_triage.audit.sink import AuditSink
    return AuditSink(AuditConfig())


@pytest.fixture
def file_audit_sink(tmp_path):
    """Create an AuditSink writing JSONL to a temp directory."""
    from safety_triage.audit.sink import AuditSink
    return AuditSink(AuditConfig(log_dir=str(tmp_path / "audit")))


@pytest.fixture
def recording_channel():
    """Create a RecordingChannel."""
    return RecordingChannel()


@pytest.fixture
async def relay(recording_channel):
    """Create a started NotificationRelay with no retry delay."""
    from safety_triage.notify.relay import NotificationRelay

    relay = NotificationRelay(
        channel=recording_channel,
        config=NotificationConfig(backoff_seconds=0.0, timeout=1.0)
    )
    await relay.start()
    yield relay
    await relay.stop(drain_timeout=1.0)


@pytest.fixture
async def crisis_router(audit_sink, relay):
    """Create a mock-mode CrisisRouter."""
    from safety_triage.main import CrisisRouter

    router = CrisisRouter(mock_mode=True, audit_sink=audit_sink, relay=relay)
    yield router
    for client in router._clients:
        await client.close()
