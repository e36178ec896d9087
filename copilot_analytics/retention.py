"""
Returning vs one-time contacts.

A contact is returning when its messages span more than one calendar date.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, Set

from copilot_analytics.records import Message, message_dates
from copilot_analytics.schemas import Retention


def active_days_per_contact(messages: Iterable[Message]) -> Dict[str, int]:
    """Distinct calendar dates with at least one message, per contact."""
    days: Dict[str, Set[date]] = defaultdict(set)
    for message, day in message_dates(messages, "retention"):
        if message.has_contact:
            days[message.contact].add(day)
    return {contact: len(dates) for contact, dates in days.items()}


def retention(messages: Iterable[Message]) -> Retention:
    active_days = active_days_per_contact(messages)
    return Retention(
        total_contacts=len(active_days),
        returning_contacts=sum(1 for count in active_days.values() if count > 1),
    )
