"""
Pytest configuration and shared fixtures.

Environment variables are set here before any package import so the
cached settings (and the SQLAlchemy engine built from them) point at a
throwaway SQLite database.
"""

import os
from datetime import datetime

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_copilot_analytics.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Clear settings cache before any app imports to ensure test env vars are used
from copilot_analytics.config import get_settings  # noqa: E402
get_settings.cache_clear()

from copilot_analytics.records import Appointment, Message, Snapshot  # noqa: E402


def msg(id, contact, received=None, sent=None, ts=None):
    """Build a Message record; ts may be a datetime or a raw string."""
    return Message(id=id, contact=contact, received_text=received, sent_text=sent, timestamp=ts)


@pytest.fixture
def scenario_messages():
    """Two contacts, three rows: A asks and gets an answer, B is left waiting."""
    return [
        msg(1, "A", received="agendar consulta", ts=datetime(2024, 1, 1, 9, 0)),
        msg(2, "A", sent="ok, confirmado", ts=datetime(2024, 1, 1, 9, 1)),
        msg(3, "B", received="qual o valor?", ts=datetime(2024, 1, 2, 20, 0)),
    ]


@pytest.fixture
def scenario_snapshot(scenario_messages):
    appointments = [
        Appointment(id=1, contact="A", status="Marcado", created_at="2024-01-01T09:02:00",
                    source="agendamento cora", scheduled_at="2024-01-05T10:00:00"),
        Appointment(id=2, contact="C", status="Confirmado", created_at="2024-01-03T11:00:00"),
    ]
    return Snapshot(messages=scenario_messages, appointments=appointments)
