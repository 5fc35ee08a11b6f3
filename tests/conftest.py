"""
Shared fixtures for ThreatLens tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from threatlens.core.config import reload_config
from threatlens.normalizer.models import EntrySeverity, LogEntry
from threatlens.normalizer.timestamps import to_iso

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_config():
    """Start every test from default thresholds."""
    reload_config()
    yield
    reload_config()


@pytest.fixture
def make_entry():
    """Factory for LogEntry records with sensible defaults."""

    def _make(
        ip="10.0.0.1",
        offset=0.0,
        method="GET",
        path="",
        status=None,
        user_agent="",
        message="",
        severity=EntrySeverity.INFO,
        timestamp=None,
        raw_line=None,
    ):
        if timestamp is None:
            timestamp = to_iso(BASE_TIME + timedelta(seconds=offset))
        if raw_line is None:
            raw_line = f"{ip or '-'} {method} {path} {status or '-'} {message}".strip()
        return LogEntry(
            timestamp=timestamp,
            source_ip=ip,
            method=method,
            path=path,
            status_code=status,
            user_agent=user_agent,
            message=message,
            raw_line=raw_line,
            severity=severity,
        )

    return _make
