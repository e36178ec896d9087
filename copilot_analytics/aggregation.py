"""
Time-bucketed activity counts.

Every function here takes already-loaded records and returns report rows.
Messages whose timestamp cannot be parsed are skipped (see
records.timed_messages); messages without a contact are counted but never
contribute to a distinct-contact count.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Set

from copilot_analytics.classifier import ServiceWindow, Topic, classify_service_window, classify_topic
from copilot_analytics.records import (
    Appointment,
    AppointmentStatus,
    MalformedRecord,
    Message,
    message_dates,
    timed_messages,
)
from copilot_analytics.metrics import record_malformed_record
from copilot_analytics.schemas import (
    DailyCompositeRow,
    DailyContactCount,
    DailyCount,
    HourlyCount,
    PeakDemandRow,
    ServiceWindowCount,
    TopicCount,
)
from copilot_analytics.utils import round_half_up

logger = logging.getLogger(__name__)

PEAK_DEMAND_LIMIT = 10


class Bucket:
    """Message count plus the set of distinct contacts seen in a bucket."""

    __slots__ = ("count", "contacts")

    def __init__(self):
        self.count = 0
        self.contacts: Set[str] = set()

    def add(self, message: Message) -> None:
        self.count += 1
        if message.has_contact:
            self.contacts.add(message.contact)

    @property
    def unique_contacts(self) -> int:
        return len(self.contacts)


def daily_message_counts(messages: Iterable[Message]) -> List[DailyCount]:
    """
    Count messages per calendar date, ascending by date.

    The counts always sum to the number of messages with a parseable
    timestamp.
    """
    counts: Dict[date, int] = defaultdict(int)
    for _, day in message_dates(messages, "daily_message_counts"):
        counts[day] += 1
    return [DailyCount(date=day, count=counts[day]) for day in sorted(counts)]


def contacts_per_day(messages: Iterable[Message]) -> List[DailyContactCount]:
    """Distinct contacts with at least one message, per calendar date."""
    contacts: Dict[date, Set[str]] = defaultdict(set)
    for message, day in message_dates(messages, "contacts_per_day"):
        day_contacts = contacts[day]
        if message.has_contact:
            day_contacts.add(message.contact)
    return [
        DailyContactCount(date=day, unique_contacts=len(contacts[day]))
        for day in sorted(contacts)
    ]


def hourly_activity(messages: Iterable[Message]) -> List[HourlyCount]:
    """
    Count messages and distinct contacts per hour of day across all dates.

    Only hours with activity are returned, ascending by hour.
    """
    buckets: Dict[int, Bucket] = defaultdict(Bucket)
    for message, ts in timed_messages(messages, "hourly_activity"):
        buckets[ts.hour].add(message)
    return [
        HourlyCount(hour=hour, count=buckets[hour].count, unique_contacts=buckets[hour].unique_contacts)
        for hour in sorted(buckets)
    ]


def peak_demand(messages: Iterable[Message], limit: int = PEAK_DEMAND_LIMIT) -> List[PeakDemandRow]:
    """
    Busiest (weekday, hour) slots.

    Sorted by message count descending, then weekday and hour ascending.
    """
    buckets: Dict[tuple, Bucket] = defaultdict(Bucket)
    for message, ts in timed_messages(messages, "peak_demand"):
        buckets[(ts.weekday(), ts.hour)].add(message)
    ranked = sorted(buckets.items(), key=lambda item: (-item[1].count, item[0]))
    return [
        PeakDemandRow(
            weekday=weekday,
            hour=hour,
            count=bucket.count,
            unique_contacts=bucket.unique_contacts,
        )
        for (weekday, hour), bucket in ranked[:limit]
    ]


def service_window_breakdown(messages: Iterable[Message]) -> List[ServiceWindowCount]:
    """
    Partition messages into business hours and off hours.

    percent is relative to all messages with a parseable timestamp, rounded
    to 2 decimals. Windows without messages are omitted.
    """
    buckets: Dict[ServiceWindow, Bucket] = defaultdict(Bucket)
    total = 0
    for message, ts in timed_messages(messages, "service_window_breakdown"):
        buckets[classify_service_window(ts)].add(message)
        total += 1

    rows = []
    for window in ServiceWindow:
        bucket = buckets.get(window)
        if bucket is None or bucket.count == 0:
            continue
        rows.append(ServiceWindowCount(
            window=window,
            count=bucket.count,
            unique_contacts=bucket.unique_contacts,
            percent=round_half_up(100 * bucket.count / total, 2),
        ))
    return rows


def topic_breakdown(messages: Iterable[Message]) -> List[TopicCount]:
    """
    Count inbound messages per topic.

    Outbound-only rows are ignored; an empty inbound text counts as Other.
    Sorted by count descending, then topic name.
    """
    buckets: Dict[Topic, Bucket] = defaultdict(Bucket)
    for message in messages:
        if message.is_inbound:
            buckets[classify_topic(message.received_text)].add(message)
    ranked = sorted(buckets.items(), key=lambda item: (-item[1].count, item[0].value))
    return [
        TopicCount(topic=topic, count=bucket.count, unique_contacts=bucket.unique_contacts)
        for topic, bucket in ranked
    ]


def daily_composite(
    messages: Iterable[Message],
    appointments: Iterable[Appointment],
) -> List[DailyCompositeRow]:
    """
    Per-date appointment outcomes alongside the number of contacts served.

    For each date present in either stream:
    - ai_appointments: appointments created that day by the assistant
    - confirmed / cancelled: status of manual appointments (no source) created
      that day; rows with any other source label are counted in neither
    - active_contacts: distinct contacts with at least one message that day

    Appointments are bucketed by creation date. Missing metrics are 0.
    """
    rows: Dict[date, dict] = defaultdict(lambda: {
        "ai_appointments": 0,
        "confirmed": 0,
        "cancelled": 0,
        "contacts": set(),
    })

    for appointment in appointments:
        try:
            day = appointment.parsed_created_at().date()
        except MalformedRecord as e:
            logger.warning(f"Skipping appointment in daily_composite: {e}")
            record_malformed_record("daily_composite")
            continue

        entry = rows[day]
        if appointment.is_ai_sourced:
            entry["ai_appointments"] += 1
        elif not appointment.is_manual:
            continue
        elif appointment.status is AppointmentStatus.CONFIRMED:
            entry["confirmed"] += 1
        elif appointment.status is AppointmentStatus.CANCELLED:
            entry["cancelled"] += 1

    for message, day in message_dates(messages, "daily_composite"):
        entry = rows[day]
        if message.has_contact:
            entry["contacts"].add(message.contact)

    return [
        DailyCompositeRow(
            date=day,
            ai_appointments=rows[day]["ai_appointments"],
            confirmed=rows[day]["confirmed"],
            cancelled=rows[day]["cancelled"],
            active_contacts=len(rows[day]["contacts"]),
        )
        for day in sorted(rows)
    ]
