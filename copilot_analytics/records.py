"""
Immutable record types the analytics pipelines operate on.

This module contains:
- Message / Appointment snapshots of the two source tables
- Appointment status normalization
- Timestamp parsing (no timezone conversion)

For SQLAlchemy table definitions, see models.py.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

from copilot_analytics.metrics import record_malformed_record

logger = logging.getLogger(__name__)

RecordId = Union[int, str]
RawTimestamp = Union[datetime, str, None]

# Value of `agendei` written by the scheduling assistant
AI_SOURCE_LABEL = "agendamento cora"


class MalformedRecord(ValueError):
    """A record lacks a usable value for the field an aggregation needs."""

    def __init__(self, record_id: RecordId, field_name: str, value: object):
        super().__init__(f"record {record_id!r}: bad {field_name} {value!r}")
        self.record_id = record_id
        self.field_name = field_name
        self.value = value


class AppointmentStatus(str, Enum):
    SCHEDULED = "Marcado"
    CONFIRMED = "Confirmado"
    CANCELLED = "Desmarcado"


# Lowercased, singular labels seen in the appointment table
_STATUS_LABELS = {
    "marcado": AppointmentStatus.SCHEDULED,
    "scheduled": AppointmentStatus.SCHEDULED,
    "confirmado": AppointmentStatus.CONFIRMED,
    "confirmed": AppointmentStatus.CONFIRMED,
    "desmarcado": AppointmentStatus.CANCELLED,
    "desmacado": AppointmentStatus.CANCELLED,
    "cancelled": AppointmentStatus.CANCELLED,
    "canceled": AppointmentStatus.CANCELLED,
}


def normalize_status(label: Optional[str]) -> Optional[AppointmentStatus]:
    """
    Map a free-text status label onto AppointmentStatus.

    Matching is case-insensitive and a plural label ("Desmarcados") folds to
    its singular form. Returns None for empty or unknown labels.
    """
    if isinstance(label, AppointmentStatus):
        return label
    if not label:
        return None
    key = label.strip().lower()
    if key.endswith("s") and key[:-1] in _STATUS_LABELS:
        key = key[:-1]
    return _STATUS_LABELS.get(key)


def parse_timestamp(value: RawTimestamp) -> datetime:
    """
    Parse a stored timestamp without any timezone conversion.

    Offsets are dropped, never applied: the stored wall-clock date and hour
    stay authoritative. Raises ValueError for missing or unparseable values.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1]
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"not a timestamp: {value!r}")
    return parsed.replace(tzinfo=None)


@dataclass(frozen=True)
class Message:
    """One row of the chat log. Both texts may be set on the same row."""
    id: RecordId
    contact: Optional[str]
    received_text: Optional[str] = None
    sent_text: Optional[str] = None
    timestamp: RawTimestamp = None

    @property
    def is_inbound(self) -> bool:
        return self.received_text is not None

    @property
    def is_outbound(self) -> bool:
        return self.sent_text is not None

    @property
    def has_contact(self) -> bool:
        return bool(self.contact)

    def parsed_timestamp(self) -> datetime:
        try:
            return parse_timestamp(self.timestamp)
        except ValueError:
            raise MalformedRecord(self.id, "timestamp", self.timestamp) from None


@dataclass(frozen=True)
class Appointment:
    """One row of the appointment table."""
    id: RecordId
    contact: Optional[str]
    scheduled_at: RawTimestamp = None
    status: Optional[AppointmentStatus] = None
    created_at: RawTimestamp = None
    source: Optional[str] = None
    external_id: Optional[str] = None
    client_name: Optional[str] = None

    def __post_init__(self):
        # Stored labels are inconsistent; keep only the closed enum
        if self.status is not None and not isinstance(self.status, AppointmentStatus):
            object.__setattr__(self, "status", normalize_status(self.status))

    @property
    def is_ai_sourced(self) -> bool:
        return self.source is not None and self.source.strip().lower() == AI_SOURCE_LABEL

    @property
    def is_manual(self) -> bool:
        """Entered by staff or by the confirmation flow (no source label)."""
        return self.source is None

    def parsed_created_at(self) -> datetime:
        try:
            return parse_timestamp(self.created_at)
        except ValueError:
            raise MalformedRecord(self.id, "created_at", self.created_at) from None


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time, read-only view of both streams."""
    messages: Tuple[Message, ...] = field(default_factory=tuple)
    appointments: Tuple[Appointment, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "messages", tuple(self.messages))
        object.__setattr__(self, "appointments", tuple(self.appointments))


def timed_messages(
    messages: Iterable[Message],
    pipeline: str,
) -> Iterator[Tuple[Message, datetime]]:
    """
    Yield (message, parsed timestamp) pairs, skipping malformed timestamps.

    Skipped records are logged as warnings and counted per pipeline.
    """
    for message in messages:
        try:
            yield message, message.parsed_timestamp()
        except MalformedRecord as e:
            logger.warning(f"Skipping message in {pipeline}: {e}")
            record_malformed_record(pipeline)


def message_dates(messages: Iterable[Message], pipeline: str) -> Iterator[Tuple[Message, date]]:
    """Like timed_messages, with the calendar date of each message."""
    for message, ts in timed_messages(messages, pipeline):
        yield message, ts.date()
