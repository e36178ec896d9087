"""
Contacts ranked by message volume.

Ranking is by total messages descending with the contact identifier as an
ascending tie-break, so the top-N is stable for a given snapshot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from copilot_analytics.records import MalformedRecord, Message
from copilot_analytics.metrics import record_malformed_record
from copilot_analytics.schemas import EngagementRow
from copilot_analytics.utils import round_half_up

logger = logging.getLogger(__name__)

TOP_CONTACTS = 20
LONG_CONVERSATION_MIN_MESSAGES = 5


@dataclass
class ContactActivity:
    """Running totals for one contact."""
    contact: str
    total_messages: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    def add(self, ts: Optional[datetime]) -> None:
        self.total_messages += 1
        if ts is None:
            return
        if self.first_seen is None or ts < self.first_seen:
            self.first_seen = ts
        if self.last_seen is None or ts > self.last_seen:
            self.last_seen = ts


def contact_activity(messages: Iterable[Message]) -> Dict[str, ContactActivity]:
    """
    Message totals and first/last timestamps per contact.

    A message with a bad timestamp still counts toward its contact's total
    but not toward first/last seen.
    """
    activity: Dict[str, ContactActivity] = {}
    for message in messages:
        if not message.has_contact:
            continue
        try:
            ts = message.parsed_timestamp()
        except MalformedRecord as e:
            logger.warning(f"Message without usable timestamp in engagement: {e}")
            record_malformed_record("engagement")
            ts = None

        entry = activity.get(message.contact)
        if entry is None:
            entry = activity[message.contact] = ContactActivity(contact=message.contact)
        entry.add(ts)
    return activity


def _ranked(activity: Iterable[ContactActivity], limit: int) -> List[EngagementRow]:
    ordered = sorted(activity, key=lambda entry: (-entry.total_messages, entry.contact))
    return [
        EngagementRow(
            contact=entry.contact,
            total_messages=entry.total_messages,
            first_seen=entry.first_seen,
            last_seen=entry.last_seen,
        )
        for entry in ordered[:limit]
    ]


def top_contacts(messages: Iterable[Message], limit: int = TOP_CONTACTS) -> List[EngagementRow]:
    return _ranked(contact_activity(messages).values(), limit)


def long_conversations(
    messages: Iterable[Message],
    limit: int = TOP_CONTACTS,
    min_messages: int = LONG_CONVERSATION_MIN_MESSAGES,
) -> List[EngagementRow]:
    """Top contacts among those with at least `min_messages` messages."""
    activity = contact_activity(messages).values()
    return _ranked((entry for entry in activity if entry.total_messages >= min_messages), limit)


def average_messages_per_contact(messages: Iterable[Message]) -> float:
    """Messages with a contact divided by distinct contacts; 0 when none."""
    activity = contact_activity(messages)
    if not activity:
        return 0.0
    total = sum(entry.total_messages for entry in activity.values())
    return round_half_up(total / len(activity), 2)
