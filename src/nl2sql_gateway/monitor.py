"""
Usage Monitor
=============

Read-only reporting over execution logs: token usage grouped by provider,
model and user, paged log queries and a request summary.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from nl2sql_gateway.exceptions import NotFoundError
from nl2sql_gateway.models import ExecutionLog
from nl2sql_gateway.store.base import ConfigStore

UNKNOWN = "unknown"
ANONYMOUS = "anonymous"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read a naive bound (e.g. a query-string timestamp) as UTC; stored logs are aware."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass
class UsageBucket:
    key: str
    name: str
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class UsageReport:
    start: Optional[datetime]
    end: Optional[datetime]
    by_provider: list[UsageBucket] = field(default_factory=list)
    by_model: list[UsageBucket] = field(default_factory=list)
    by_user: list[UsageBucket] = field(default_factory=list)
    total: UsageBucket = field(default_factory=lambda: UsageBucket(key="total", name="total"))


@dataclass
class LogPage:
    items: list[ExecutionLog]
    total: int
    limit: int
    offset: int


@dataclass
class UsageSummary:
    total_requests: int
    success_rate: float
    avg_latency_ms: float
    blocked_count: int
    total_input_tokens: int
    total_output_tokens: int


class UsageMonitor:
    """Aggregates execution logs from the configuration store."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def _name_of(self, lookup, record_id: Optional[str]) -> str:
        if record_id is None:
            return UNKNOWN
        try:
            return lookup(record_id).name
        except NotFoundError:
            return record_id

    def usage_report(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> UsageReport:
        """
        Request and token totals for a period.

        Args:
            start: Inclusive lower bound on log creation time
            end: Inclusive upper bound on log creation time

        Returns:
            UsageReport with per-provider, per-model and per-user buckets,
            each sorted by request count (descending)
        """
        start, end = as_utc(start), as_utc(end)
        logs = self.store.list_execution_logs(start=start, end=end)
        groups: dict[str, dict[str, UsageBucket]] = defaultdict(dict)
        report = UsageReport(start=start, end=end)

        for log in logs:
            keys = {
                "provider": (
                    log.provider_id or UNKNOWN,
                    lambda: self._name_of(self.store.get_provider, log.provider_id),
                ),
                "model": (
                    log.model_id or UNKNOWN,
                    lambda: self._name_of(self.store.get_model, log.model_id),
                ),
                "user": (log.user_id or ANONYMOUS, lambda: log.user_id or ANONYMOUS),
            }
            for group, (key, name) in keys.items():
                bucket = groups[group].get(key)
                if bucket is None:
                    bucket = groups[group][key] = UsageBucket(key=key, name=name())
                self._add(bucket, log)
            self._add(report.total, log)

        def ranked(group: str) -> list[UsageBucket]:
            return sorted(groups[group].values(), key=lambda b: b.requests, reverse=True)

        report.by_provider = ranked("provider")
        report.by_model = ranked("model")
        report.by_user = ranked("user")
        return report

    @staticmethod
    def _add(bucket: UsageBucket, log: ExecutionLog) -> None:
        bucket.requests += 1
        bucket.input_tokens += log.input_tokens
        bucket.output_tokens += log.output_tokens

    def query_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        user_id: Optional[str] = None,
        success: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> LogPage:
        """Filtered execution logs, newest first, with the unpaged total."""
        start, end = as_utc(start), as_utc(end)
        logs = [
            log
            for log in self.store.list_execution_logs(start=start, end=end)
            if (user_id is None or log.user_id == user_id)
            and (success is None or log.success == success)
        ]
        return LogPage(
            items=logs[offset : offset + limit],
            total=len(logs),
            limit=limit,
            offset=offset,
        )

    def summary(self, since: Optional[datetime] = None) -> UsageSummary:
        logs = self.store.list_execution_logs(start=as_utc(since))
        total = len(logs)
        succeeded = sum(1 for log in logs if log.success)
        return UsageSummary(
            total_requests=total,
            success_rate=(succeeded / total * 100) if total else 0.0,
            avg_latency_ms=(sum(log.latency_ms for log in logs) / total) if total else 0.0,
            blocked_count=sum(1 for log in logs if log.was_blocked),
            total_input_tokens=sum(log.input_tokens for log in logs),
            total_output_tokens=sum(log.output_tokens for log in logs),
        )
