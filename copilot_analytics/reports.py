"""
Report catalog.

Maps each report name to the pipeline computing it. Every pipeline is a
pure function of a Snapshot, so reports over the same snapshot can run in
parallel (see run_reports).
"""

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List

from pydantic import BaseModel

from copilot_analytics import aggregation, conversations, engagement, retention
from copilot_analytics.metrics import record_report_run
from copilot_analytics.records import Snapshot, message_dates
from copilot_analytics.schemas import ContactAverage, ContactTotal, ExecutiveSummary
from copilot_analytics.utils import round_half_up

logger = logging.getLogger(__name__)

RowSet = List[BaseModel]

# Metrics label for names outside the catalog
UNKNOWN_REPORT_LABEL = "unknown"


class ReportNotFound(LookupError):
    """Raised for a report name outside the catalog."""

    def __init__(self, name: str):
        super().__init__(f"unknown report: {name}")
        self.name = name


def executive_summary(snapshot: Snapshot) -> ExecutiveSummary:
    """
    Headline numbers: all messages, days with activity, and the average
    per active day (rounded to a whole number, 0 without active days).
    """
    total = len(snapshot.messages)
    active_days = len({day for _, day in message_dates(snapshot.messages, "executive_summary")})
    average = int(round_half_up(total / active_days)) if active_days else 0
    return ExecutiveSummary(
        total_messages=total,
        active_days=active_days,
        avg_messages_per_active_day=average,
    )


def total_unique_contacts(snapshot: Snapshot) -> ContactTotal:
    contacts = {message.contact for message in snapshot.messages if message.has_contact}
    return ContactTotal(total_unique_contacts=len(contacts))


# =============================================================================
# Catalog
# =============================================================================

REPORTS: Dict[str, Callable[[Snapshot], RowSet]] = {
    "dailyMessages": lambda s: aggregation.daily_message_counts(s.messages),
    "totalUniqueContacts": lambda s: [total_unique_contacts(s)],
    "messagesPerContact": lambda s: engagement.top_contacts(s.messages),
    "contactsPerDay": lambda s: aggregation.contacts_per_day(s.messages),
    "serviceHours": lambda s: aggregation.service_window_breakdown(s.messages),
    "hourlyActivity": lambda s: aggregation.hourly_activity(s.messages),
    "avgMessagesPerClient": lambda s: [
        ContactAverage(average_messages_per_contact=engagement.average_messages_per_contact(s.messages))
    ],
    "appointmentMessages": lambda s: aggregation.daily_composite(s.messages, s.appointments),
    "frequentQuestionTypes": lambda s: aggregation.topic_breakdown(s.messages),
    "longConversations": lambda s: engagement.long_conversations(s.messages),
    "aiResponseRate": lambda s: [conversations.response_coverage(s.messages)],
    "returningClients": lambda s: [retention.retention(s.messages)],
    "aiResponseSpeed": lambda s: [conversations.response_latency(s.messages)],
    "peakDemand": lambda s: aggregation.peak_demand(s.messages),
    "executiveSummary": lambda s: [executive_summary(s)],
}


def report_names() -> List[str]:
    return list(REPORTS)


def get_pipeline(name: str) -> Callable[[Snapshot], RowSet]:
    """
    Look up a report pipeline by name.

    Raises:
        ReportNotFound: if the name is not in the catalog
    """
    try:
        return REPORTS[name]
    except KeyError:
        # Unknown names share one label; request logs keep the raw name
        record_report_run(UNKNOWN_REPORT_LABEL, "not_found")
        raise ReportNotFound(name) from None


def validate_report_names(names: Iterable[str]) -> List[str]:
    """
    Deduplicate names, keeping request order, and check each one.

    Raises:
        ReportNotFound: for the first unknown name
    """
    requested = list(dict.fromkeys(names))
    for name in requested:
        get_pipeline(name)
    return requested


def run_report(name: str, snapshot: Snapshot) -> RowSet:
    """
    Compute one report over a snapshot.

    Args:
        name: Report name (see REPORTS)
        snapshot: Records to aggregate

    Returns:
        Ordered list of row models of a single shape

    Raises:
        ReportNotFound: if the name is not in the catalog
    """
    pipeline = get_pipeline(name)
    logger.debug(f"Running report {name}")

    start_time = time.perf_counter()
    rows = pipeline(snapshot)
    latency_seconds = time.perf_counter() - start_time

    record_report_run(name, "ok", latency_seconds)
    logger.info(f"Report computed: {name}, rows: {len(rows)}, latency_ms: {round(latency_seconds * 1000, 2)}")
    return rows


def run_reports(names: Iterable[str], snapshot: Snapshot, max_workers: int = 4) -> Dict[str, RowSet]:
    """
    Compute several reports over the same snapshot concurrently.

    All names are validated before any computation starts. Duplicate names
    are computed once. Results keep the requested order.

    Raises:
        ReportNotFound: for the first unknown name
    """
    requested = validate_report_names(names)
    if not requested:
        return {}

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(requested)))) as executor:
        # Each task carries the caller's context (request_id for logging)
        futures = {
            name: executor.submit(contextvars.copy_context().run, run_report, name, snapshot)
            for name in requested
        }
        return {name: futures[name].result() for name in requested}
