"""
Tests for the report catalog.

Tests cover:
- Dispatch of every catalog name
- ReportNotFound for unknown names
- Executive summary arithmetic
- Concurrent multi-report runs
- Row serialization shape
"""

from datetime import date, datetime

import pytest
from prometheus_client import REGISTRY

from copilot_analytics.records import Message, Snapshot
from copilot_analytics.reports import (
    REPORTS,
    ReportNotFound,
    UNKNOWN_REPORT_LABEL,
    executive_summary,
    report_names,
    run_report,
    run_reports,
    validate_report_names,
)

CATALOG = [
    "dailyMessages", "totalUniqueContacts", "messagesPerContact", "contactsPerDay",
    "serviceHours", "hourlyActivity", "avgMessagesPerClient", "appointmentMessages",
    "frequentQuestionTypes", "longConversations", "aiResponseRate", "returningClients",
    "aiResponseSpeed", "peakDemand", "executiveSummary",
]


class TestCatalog:
    """Test catalog contents and dispatch."""

    def test_closed_set_of_names(self):
        assert sorted(report_names()) == sorted(CATALOG)

    @pytest.mark.parametrize("name", CATALOG)
    def test_every_report_runs_on_scenario(self, name, scenario_snapshot):
        rows = run_report(name, scenario_snapshot)
        assert isinstance(rows, list)
        # All rows of a report share one shape
        assert len({type(row) for row in rows}) <= 1

    @pytest.mark.parametrize("name", CATALOG)
    def test_every_report_runs_on_empty_snapshot(self, name):
        """Test empty input never raises."""
        run_report(name, Snapshot())

    def test_unknown_report(self, scenario_snapshot):
        with pytest.raises(ReportNotFound) as exc_info:
            run_report("noSuchReport", scenario_snapshot)
        assert exc_info.value.name == "noSuchReport"

    def test_names_are_case_sensitive(self, scenario_snapshot):
        with pytest.raises(ReportNotFound):
            run_report("DailyMessages", scenario_snapshot)

    def test_idempotent(self, scenario_snapshot):
        assert run_report("aiResponseRate", scenario_snapshot) == run_report("aiResponseRate", scenario_snapshot)

    def test_unknown_names_share_one_metrics_series(self):
        """Test rejected names never become metric labels of their own."""
        labels = {"report": UNKNOWN_REPORT_LABEL, "result": "not_found"}
        before = REGISTRY.get_sample_value("report_runs_total", labels) or 0.0

        for i in range(5):
            with pytest.raises(ReportNotFound):
                run_report(f"bogus{i}", Snapshot())

        assert REGISTRY.get_sample_value("report_runs_total", labels) == before + 5
        for i in range(5):
            assert REGISTRY.get_sample_value(
                "report_runs_total", {"report": f"bogus{i}", "result": "not_found"}
            ) is None


class TestScenarioReports:
    """End-to-end results over the reference conversation."""

    def test_daily_messages(self, scenario_snapshot):
        rows = run_report("dailyMessages", scenario_snapshot)
        assert [row.model_dump(by_alias=True) for row in rows] == [
            {"date": date(2024, 1, 1), "count": 2},
            {"date": date(2024, 1, 2), "count": 1},
        ]

    def test_ai_response_rate(self, scenario_snapshot):
        (row,) = run_report("aiResponseRate", scenario_snapshot)
        assert row.model_dump(by_alias=True) == {
            "respondedCount": 1,
            "totalInbound": 2,
            "responseRate": 50.0,
        }

    def test_ai_response_speed(self, scenario_snapshot):
        (row,) = run_report("aiResponseSpeed", scenario_snapshot)
        assert row.average_seconds == 60

    def test_frequent_question_types(self, scenario_snapshot):
        rows = run_report("frequentQuestionTypes", scenario_snapshot)
        assert sorted(row.topic.value for row in rows) == ["Pricing", "Scheduling"]

    def test_service_hours(self, scenario_snapshot):
        rows = run_report("serviceHours", scenario_snapshot)
        dumped = [row.model_dump(mode="json", by_alias=True) for row in rows]
        assert dumped == [
            {"window": "BusinessHours", "count": 2, "uniqueContacts": 1, "percent": 66.67},
            {"window": "OffHours", "count": 1, "uniqueContacts": 1, "percent": 33.33},
        ]

    def test_total_unique_contacts(self, scenario_snapshot):
        (row,) = run_report("totalUniqueContacts", scenario_snapshot)
        assert row.total_unique_contacts == 2

    def test_returning_clients(self, scenario_snapshot):
        (row,) = run_report("returningClients", scenario_snapshot)
        assert (row.total_contacts, row.returning_contacts) == (2, 0)


class TestExecutiveSummary:
    """Test executive_summary."""

    def test_scenario(self, scenario_snapshot):
        summary = executive_summary(scenario_snapshot)
        assert summary.total_messages == 3
        assert summary.active_days == 2
        assert summary.avg_messages_per_active_day == 2  # 1.5 rounds half up

    def test_no_active_days(self):
        """Test zero active days yields 0 instead of a division error."""
        snapshot = Snapshot(messages=[Message(id=1, contact="A", timestamp="bad")])
        summary = executive_summary(snapshot)
        assert summary.total_messages == 1
        assert summary.active_days == 0
        assert summary.avg_messages_per_active_day == 0

    def test_serialized_keys(self, scenario_snapshot):
        (row,) = run_report("executiveSummary", scenario_snapshot)
        assert list(row.model_dump(by_alias=True)) == [
            "totalMessages", "activeDays", "avgMessagesPerActiveDay",
        ]


class TestRunReports:
    """Test concurrent multi-report runs."""

    def test_matches_sequential_results(self, scenario_snapshot):
        names = ["dailyMessages", "aiResponseSpeed", "serviceHours", "executiveSummary"]
        results = run_reports(names, scenario_snapshot, max_workers=4)
        assert list(results) == names
        for name in names:
            assert results[name] == run_report(name, scenario_snapshot)

    def test_duplicates_computed_once(self, scenario_snapshot):
        results = run_reports(["hourlyActivity", "hourlyActivity"], scenario_snapshot)
        assert list(results) == ["hourlyActivity"]

    def test_unknown_name_fails_before_running(self, scenario_snapshot, monkeypatch):
        called = []
        monkeypatch.setitem(REPORTS, "dailyMessages", lambda s: called.append(s) or [])
        with pytest.raises(ReportNotFound):
            run_reports(["dailyMessages", "bogus"], scenario_snapshot)
        assert called == []

    def test_empty_request(self, scenario_snapshot):
        assert run_reports([], scenario_snapshot) == {}

    def test_validate_names_keeps_order_without_duplicates(self):
        assert validate_report_names(["peakDemand", "dailyMessages", "peakDemand"]) == [
            "peakDemand", "dailyMessages",
        ]

    def test_validate_names_rejects_unknown(self):
        with pytest.raises(ReportNotFound) as exc_info:
            validate_report_names(["dailyMessages", "bogus"])
        assert exc_info.value.name == "bogus"

    def test_large_snapshot_all_reports(self):
        """Test every report over a bigger snapshot in parallel."""
        messages = [
            Message(
                id=i,
                contact=f"55{i % 7}",
                received_text="qual o valor?" if i % 2 == 0 else None,
                sent_text=None if i % 2 == 0 else "R$ 100",
                timestamp=datetime(2024, 1, 1 + i % 5, i % 24, i % 60),
            )
            for i in range(500)
        ]
        snapshot = Snapshot(messages=messages)
        results = run_reports(CATALOG, snapshot, max_workers=8)
        assert sum(row.count for row in results["dailyMessages"]) == 500
        assert results["executiveSummary"][0].total_messages == 500
