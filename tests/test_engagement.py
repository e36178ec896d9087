"""
Tests for contact ranking and retention.

Tests cover:
- Ranking by volume with ascending identifier tie-break
- Top-20 limit and the long-conversation filter
- First/last seen timestamps
- Returning vs one-time contacts
"""

from datetime import datetime

from copilot_analytics.engagement import (
    average_messages_per_contact,
    contact_activity,
    long_conversations,
    top_contacts,
)
from copilot_analytics.records import Message
from copilot_analytics.retention import active_days_per_contact, retention


def msg(id, contact, ts=None, received="oi"):
    return Message(id=id, contact=contact, received_text=received, timestamp=ts)


def burst(contact, count, start_id=0, day=1):
    """`count` messages from one contact on 2024-01-<day>."""
    return [msg(start_id + i, contact, ts=datetime(2024, 1, day, 10, i)) for i in range(count)]


class TestTopContacts:
    """Test top_contacts ranking."""

    def test_tie_broken_by_contact_ascending(self):
        messages = burst("5552222", 10) + burst("5551111", 10, start_id=100)
        rows = top_contacts(messages)
        assert [r.contact for r in rows] == ["5551111", "5552222"]
        assert all(r.total_messages == 10 for r in rows)

    def test_sorted_by_volume_descending(self):
        messages = burst("A", 1) + burst("B", 3, start_id=10) + burst("C", 2, start_id=20)
        assert [(r.contact, r.total_messages) for r in top_contacts(messages)] == [
            ("B", 3), ("C", 2), ("A", 1),
        ]

    def test_limited_to_twenty(self):
        messages = []
        for i in range(25):
            messages += burst(f"55500{i:02d}", 1, start_id=i * 10)
        rows = top_contacts(messages)
        assert len(rows) == 20
        assert rows[0].contact == "5550000"

    def test_first_and_last_seen(self):
        messages = [
            msg(1, "A", ts="2024-01-02T10:00:00"),
            msg(2, "A", ts="2024-01-01T08:00:00"),
            msg(3, "A", ts="2024-01-03T18:30:00"),
        ]
        row = top_contacts(messages)[0]
        assert row.first_seen == datetime(2024, 1, 1, 8, 0)
        assert row.last_seen == datetime(2024, 1, 3, 18, 30)

    def test_malformed_timestamp_counted_without_dates(self):
        messages = [msg(1, "A", ts="bad")]
        row = top_contacts(messages)[0]
        assert row.total_messages == 1
        assert row.first_seen is None
        assert row.last_seen is None

    def test_contactless_messages_excluded(self):
        messages = [msg(1, ""), msg(2, None), msg(3, "A", ts="2024-01-01T10:00:00")]
        assert list(contact_activity(messages)) == ["A"]


class TestLongConversations:
    """Test long_conversations filter."""

    def test_requires_five_messages(self):
        messages = burst("A", 4) + burst("B", 5, start_id=10) + burst("C", 7, start_id=20)
        assert [(r.contact, r.total_messages) for r in long_conversations(messages)] == [
            ("C", 7), ("B", 5),
        ]

    def test_none_qualify(self):
        assert long_conversations(burst("A", 2)) == []


class TestAverageMessagesPerContact:
    """Test average_messages_per_contact."""

    def test_average(self):
        messages = burst("A", 1) + burst("B", 2, start_id=10) + [msg(99, "")]
        assert average_messages_per_contact(messages) == 1.5

    def test_empty(self):
        assert average_messages_per_contact([]) == 0.0


class TestRetention:
    """Test returning-contact detection."""

    def test_two_days_is_returning(self):
        messages = burst("A", 1, day=1) + burst("A", 1, start_id=10, day=2)
        assert active_days_per_contact(messages) == {"A": 2}
        result = retention(messages)
        assert result.total_contacts == 1
        assert result.returning_contacts == 1

    def test_many_messages_one_day_is_not_returning(self):
        result = retention(burst("A", 3, day=1))
        assert result.total_contacts == 1
        assert result.returning_contacts == 0

    def test_rate(self):
        messages = (
            burst("A", 1, day=1) + burst("A", 1, start_id=10, day=2)
            + burst("B", 2, start_id=20, day=1)
            + burst("C", 1, start_id=30, day=3)
        )
        result = retention(messages)
        assert (result.total_contacts, result.returning_contacts) == (3, 1)
        assert result.returning_rate == 33.33

    def test_empty_rate_is_zero(self):
        result = retention([])
        assert (result.total_contacts, result.returning_contacts, result.returning_rate) == (0, 0, 0.0)
