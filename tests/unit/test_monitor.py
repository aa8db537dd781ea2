"""
Unit Tests for Usage Monitoring
===============================

Tests for usage aggregation and execution-log queries.
"""

from datetime import timedelta

import pytest

from nl2sql_gateway.models import ExecutionLog, utcnow
from nl2sql_gateway.monitor import UsageMonitor
from nl2sql_gateway.store.memory import InMemoryConfigStore


@pytest.fixture
def monitor(store: InMemoryConfigStore) -> UsageMonitor:
    now = utcnow()
    logs = [
        ExecutionLog(
            user_input="q1",
            user_id="alice",
            provider_id="primary",
            model_id="m-sql-primary",
            input_tokens=100,
            output_tokens=20,
            latency_ms=200,
            created_at=now - timedelta(minutes=3),
        ),
        ExecutionLog(
            user_input="q2",
            user_id="alice",
            provider_id="primary",
            model_id="m-sql-primary",
            input_tokens=50,
            output_tokens=10,
            latency_ms=100,
            created_at=now - timedelta(minutes=2),
        ),
        ExecutionLog(
            user_input="q3",
            user_id="bob",
            provider_id="backup",
            model_id="m-sql-backup",
            input_tokens=10,
            output_tokens=5,
            latency_ms=300,
            success=False,
            was_blocked=True,
            created_at=now - timedelta(minutes=1),
        ),
        ExecutionLog(
            user_input="q4",
            success=False,
            error_message="No suitable model available",
            created_at=now - timedelta(days=3),
        ),
    ]
    for log in logs:
        store.add_execution_log(log)
    return UsageMonitor(store)


class TestUsageReport:
    """Tests for grouped usage totals."""

    def test_grouped_by_provider(self, monitor: UsageMonitor) -> None:
        report = monitor.usage_report()

        by_provider = {b.key: b for b in report.by_provider}
        primary = by_provider["primary"]
        assert primary.name == "Local Ollama"
        assert primary.requests == 2
        assert primary.input_tokens == 150
        assert primary.output_tokens == 30
        assert primary.total_tokens == 180
        assert by_provider["unknown"].requests == 1

    def test_buckets_ranked_by_requests(self, monitor: UsageMonitor) -> None:
        report = monitor.usage_report()
        assert report.by_model[0].key == "m-sql-primary"
        assert report.by_model[0].name == "SQLCoder"
        assert report.by_user[0].key == "alice"

    def test_anonymous_user_bucket(self, monitor: UsageMonitor) -> None:
        keys = [b.key for b in monitor.usage_report().by_user]
        assert "anonymous" in keys

    def test_period_filter(self, monitor: UsageMonitor) -> None:
        report = monitor.usage_report(start=utcnow() - timedelta(hours=1))

        assert report.total.requests == 3
        assert report.total.input_tokens == 160
        assert report.total.output_tokens == 35

    def test_deleted_provider_falls_back_to_id(
        self, monitor: UsageMonitor, store: InMemoryConfigStore
    ) -> None:
        store.add_execution_log(ExecutionLog(user_input="q5", provider_id="retired"))

        names = {b.key: b.name for b in monitor.usage_report().by_provider}
        assert names["retired"] == "retired"


class TestQueryLogs:
    """Tests for paged log queries."""

    def test_newest_first_with_total(self, monitor: UsageMonitor) -> None:
        page = monitor.query_logs(limit=2)

        assert page.total == 4
        assert [log.user_input for log in page.items] == ["q3", "q2"]

    def test_offset(self, monitor: UsageMonitor) -> None:
        page = monitor.query_logs(limit=2, offset=2)
        assert [log.user_input for log in page.items] == ["q1", "q4"]

    def test_filter_by_user_and_success(self, monitor: UsageMonitor) -> None:
        assert monitor.query_logs(user_id="alice").total == 2
        assert monitor.query_logs(success=False).total == 2
        assert monitor.query_logs(user_id="bob", success=True).total == 0


class TestSummary:
    """Tests for the request summary."""

    def test_summary(self, monitor: UsageMonitor) -> None:
        summary = monitor.summary(since=utcnow() - timedelta(hours=1))

        assert summary.total_requests == 3
        assert summary.blocked_count == 1
        assert summary.avg_latency_ms == 200
        assert round(summary.success_rate, 1) == 66.7

    def test_naive_bounds_read_as_utc(self, monitor: UsageMonitor) -> None:
        since = (utcnow() - timedelta(hours=1)).replace(tzinfo=None)

        assert monitor.usage_report(start=since).total.requests == 3
        assert monitor.query_logs(end=since).total == 1
        assert monitor.summary(since=since).total_requests == 3

    def test_empty_summary(self, empty_store: InMemoryConfigStore) -> None:
        summary = UsageMonitor(empty_store).summary()
        assert summary.total_requests == 0
        assert summary.success_rate == 0.0
