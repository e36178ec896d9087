"""
Response coverage and latency of the assistant.

Each contact's messages are ordered by (timestamp, id) and walked once. An
inbound message is paired with the record stored right after it, whatever
its direction: the next row counts as a reply when it carries a sent text.
Two inbound messages in a row therefore leave the first one unanswered.

NOTE ON LATENCY:
  Only replies strictly between 0 and 300 seconds are sampled. Negative
  deltas (clock skew) and slow replies still count as "responded".

Inbound totals cover threaded messages only: rows without a contact or
with an unparseable timestamp cannot be placed in a conversation and are
left out of totalInbound.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from operator import add
from typing import Dict, Iterable, List, Optional, Tuple

from copilot_analytics.records import Message, RecordId, timed_messages
from copilot_analytics.schemas import ResponseCoverage, ResponseLatency
from copilot_analytics.utils import round_half_up

logger = logging.getLogger(__name__)

MAX_REPLY_SECONDS = 300


@dataclass(frozen=True)
class ThreadStats:
    """
    Partial totals for one or more contacts.

    `+` is associative and commutative, so per-contact (or per-shard)
    results can be combined in any order.
    """
    responded: int = 0
    inbound: int = 0
    latency_total: float = 0.0
    latency_samples: int = 0

    def __add__(self, other: "ThreadStats") -> "ThreadStats":
        return ThreadStats(
            responded=self.responded + other.responded,
            inbound=self.inbound + other.inbound,
            latency_total=self.latency_total + other.latency_total,
            latency_samples=self.latency_samples + other.latency_samples,
        )

    @property
    def average_latency(self) -> Optional[float]:
        if not self.latency_samples:
            return None
        return round_half_up(self.latency_total / self.latency_samples, 2)


def _id_key(record_id: RecordId) -> Tuple[int, object]:
    # Numeric ids order numerically and before any string id
    if isinstance(record_id, int):
        return (0, record_id)
    return (1, str(record_id))


def group_by_contact(messages: Iterable[Message]) -> Dict[str, List[Tuple[Message, datetime]]]:
    """
    Group timed messages per contact, each group in conversation order.

    Messages without a contact or with an unparseable timestamp are left out.
    """
    groups: Dict[str, List[Tuple[Message, datetime]]] = defaultdict(list)
    for message, ts in timed_messages(messages, "conversations"):
        if message.has_contact:
            groups[message.contact].append((message, ts))
    for thread in groups.values():
        thread.sort(key=lambda pair: (pair[1], _id_key(pair[0].id)))
    return groups


def thread_stats(thread: List[Tuple[Message, datetime]]) -> ThreadStats:
    """
    Single forward pass over one contact's ordered messages.

    Args:
        thread: (message, timestamp) pairs sorted by timestamp then id

    Returns:
        Coverage and latency totals for this contact
    """
    responded = inbound = samples = 0
    latency_total = 0.0

    for index, (message, ts) in enumerate(thread):
        if not message.is_inbound:
            continue
        inbound += 1
        if index + 1 >= len(thread):
            continue

        reply, reply_ts = thread[index + 1]
        if not reply.is_outbound:
            continue
        responded += 1

        delta = (reply_ts - ts).total_seconds()
        if 0 < delta < MAX_REPLY_SECONDS:
            latency_total += delta
            samples += 1

    return ThreadStats(
        responded=responded,
        inbound=inbound,
        latency_total=latency_total,
        latency_samples=samples,
    )


def conversation_stats(messages: Iterable[Message]) -> ThreadStats:
    """Threads every contact and sums the per-contact totals."""
    groups = group_by_contact(messages)
    logger.debug(f"Threading {len(groups)} contacts")
    return reduce(add, (thread_stats(thread) for thread in groups.values()), ThreadStats())


def response_coverage(messages: Iterable[Message]) -> ResponseCoverage:
    stats = conversation_stats(messages)
    return ResponseCoverage(responded_count=stats.responded, total_inbound=stats.inbound)


def response_latency(messages: Iterable[Message]) -> ResponseLatency:
    """Mean reply delay in seconds; None when no reply qualifies."""
    stats = conversation_stats(messages)
    return ResponseLatency(average_seconds=stats.average_latency)
