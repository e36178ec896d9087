"""
Rule-based classification of messages.

- Topic of an inbound text: ordered keyword rules, first match wins
- Service window of a timestamp: business hours vs off hours
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple


class Topic(str, Enum):
    PRICING = "Pricing"
    SCHEDULING = "Scheduling"
    LOCATION = "Location"
    PROCEDURES = "Procedures"
    INSURANCE = "Insurance"
    OTHER = "Other"


class ServiceWindow(str, Enum):
    BUSINESS_HOURS = "BusinessHours"
    OFF_HOURS = "OffHours"


# Evaluated in order: "valor da consulta" is Pricing, not Scheduling
TOPIC_RULES: Sequence[Tuple[Topic, Tuple[str, ...]]] = (
    (Topic.PRICING, ("preço", "valor", "custo")),
    (Topic.SCHEDULING, ("agendar", "consulta", "horario")),
    (Topic.LOCATION, ("endereço", "localização", "onde")),
    (Topic.PROCEDURES, ("exame", "procedimento")),
    (Topic.INSURANCE, ("convênio", "plano")),
)

BUSINESS_START_HOUR = 8
BUSINESS_END_HOUR = 18  # inclusive: 18:59 is still business hours
BUSINESS_WEEKDAYS = frozenset(range(5))  # Monday..Friday


def classify_topic(text: Optional[str]) -> Topic:
    """
    Classify an inbound text by case-insensitive substring match.

    Args:
        text: Received message text (None or empty is allowed)

    Returns:
        The topic of the first rule with a matching keyword, else Topic.OTHER
    """
    if not text:
        return Topic.OTHER
    lowered = text.lower()
    for topic, keywords in TOPIC_RULES:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return Topic.OTHER


def classify_service_window(timestamp: datetime) -> ServiceWindow:
    """Business hours are Mon-Fri with hour-of-day in [8, 18], as stored."""
    if (
        timestamp.weekday() in BUSINESS_WEEKDAYS
        and BUSINESS_START_HOUR <= timestamp.hour <= BUSINESS_END_HOUR
    ):
        return ServiceWindow.BUSINESS_HOURS
    return ServiceWindow.OFF_HOURS
