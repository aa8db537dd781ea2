"""
Diagnostic Engine
=================

Live health testing of completion providers.

Each provider runs a fixed battery: a connection probe that gates the rest,
then model listing, chat completion, streaming completion and generation
speed. Every test runs once and is timed on its own.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog
from opentelemetry import trace

from nl2sql_gateway.llm.base import DEFAULT_TEST_MODELS, ClientFactory, ConnectionProbe
from nl2sql_gateway.models import Provider, utcnow
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

MAX_LISTED_MODELS = 20


@dataclass
class TestResult:
    """Outcome of one diagnostic test."""

    # Keep pytest from collecting this as a test class
    __test__ = False

    name: str
    success: bool
    message: str
    latency_ms: int = 0
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class DiagnosticSummary:
    passed: int
    failed: int
    total_latency_ms: int
    status: str  # healthy, degraded, failed


@dataclass
class DiagnosticResult:
    """Full diagnostic report for one provider."""

    provider_id: str
    provider_name: str
    provider_type: str
    endpoint: str
    timestamp: datetime
    tests: list[TestResult]
    summary: DiagnosticSummary
    available_models: list[str] = field(default_factory=list)


@dataclass
class ProviderHealth:
    id: str
    name: str
    status: str  # healthy, unhealthy
    latency_ms: int = 0
    message: str = ""


@dataclass
class HealthReport:
    providers: list[ProviderHealth]
    overall_healthy: bool
    timestamp: datetime = field(default_factory=utcnow)


def summarize(tests: list[TestResult]) -> DiagnosticSummary:
    """Aggregate test outcomes into healthy / degraded / failed."""
    passed = sum(1 for t in tests if t.success)
    failed = len(tests) - passed
    if failed == 0:
        status = "healthy"
    elif passed > 0:
        status = "degraded"
    else:
        status = "failed"
    return DiagnosticSummary(
        passed=passed,
        failed=failed,
        total_latency_ms=sum(t.latency_ms for t in tests),
        status=status,
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class DiagnosticEngine:
    """Runs provider diagnostics against live (or mock) completion clients."""

    def __init__(
        self,
        store: ConfigStore,
        client_factory: ClientFactory,
        max_workers: int = 4,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Configuration store for providers and models
            client_factory: Builds clients for providers
            max_workers: Thread pool size for batch diagnostics
        """
        self.store = store
        self.client_factory = client_factory
        self.max_workers = max_workers

    def probe(self, provider: Provider) -> ConnectionProbe:
        """Cheap liveness probe used by health checks and failover routing."""
        result = self.client_factory.test_connection(provider)
        if not result.success:
            logger.warning(
                "provider_probe_failed",
                provider=provider.name,
                provider_id=provider.id,
                message=result.message,
            )
        return result

    def diagnose_provider(self, provider_id: str) -> DiagnosticResult:
        """
        Run the full test battery for one provider.

        Raises:
            NotFoundError: If the provider does not exist
        """
        provider = self.store.get_provider(provider_id)
        with tracer.start_as_current_span("diagnostics.provider") as span:
            span.set_attribute("provider.id", provider.id)
            span.set_attribute("provider.type", provider.type.value)
            tests, available = self._run_battery(provider)
            summary = summarize(tests)
            span.set_attribute("diagnostics.status", summary.status)

        logger.info(
            "provider_diagnosed",
            provider=provider.name,
            status=summary.status,
            passed=summary.passed,
            failed=summary.failed,
        )
        return DiagnosticResult(
            provider_id=provider.id,
            provider_name=provider.name,
            provider_type=provider.type.value,
            endpoint=provider.endpoint,
            timestamp=utcnow(),
            tests=tests,
            summary=summary,
            available_models=available,
        )

    def diagnose_all_providers(self) -> list[DiagnosticResult]:
        """
        Diagnose every active provider concurrently.

        Results come back in provider priority order. A provider whose run
        raises is reported with a single failing "Critical Error" test.
        """
        providers = self.store.find_active_providers()
        if not providers:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self.diagnose_provider, p.id) for p in providers]

        results = []
        for provider, future in zip(providers, futures):
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(
                    "provider_diagnostic_crashed", provider=provider.name, error=str(e)
                )
                results.append(self._critical_error(provider, e))
        return results

    def health_check(self) -> HealthReport:
        """Probe-only health check across active providers."""
        entries = []
        for provider in self.store.find_active_providers():
            try:
                probe = self.probe(provider)
                entries.append(
                    ProviderHealth(
                        id=provider.id,
                        name=provider.name,
                        status="healthy" if probe.success else "unhealthy",
                        latency_ms=probe.latency_ms,
                        message=probe.message,
                    )
                )
            except Exception as e:
                entries.append(
                    ProviderHealth(
                        id=provider.id, name=provider.name, status="unhealthy", message=str(e)
                    )
                )
        return HealthReport(
            providers=entries,
            overall_healthy=all(e.status == "healthy" for e in entries),
        )

    # Test battery

    def _run_battery(self, provider: Provider) -> tuple[list[TestResult], list[str]]:
        tests = [self._test_connection(provider)]
        if not tests[0].success:
            return tests, []

        model_list = self._test_model_list(provider)
        tests.append(model_list)
        available = list(model_list.details.get("models", [])) if model_list.success else []

        test_model = available[0] if available else self._fallback_model(provider)
        tests.append(self._test_chat(provider, test_model))
        tests.append(self._test_streaming(provider, test_model))
        tests.append(self._test_speed(provider, test_model))
        return tests, available

    def _fallback_model(self, provider: Provider) -> str:
        configured = self.store.find_models_by_provider(provider.id)
        if configured:
            return configured[0].model_id
        return DEFAULT_TEST_MODELS[provider.type]

    def _test_connection(self, provider: Provider) -> TestResult:
        probe = self.probe(provider)
        return TestResult(
            name="Connection",
            success=probe.success,
            message=probe.message,
            latency_ms=probe.latency_ms,
        )

    def _test_model_list(self, provider: Provider) -> TestResult:
        start = time.perf_counter()
        try:
            client = self.client_factory.build_client(provider)
            page = client.models.list()
            models = [m.id for m in (page.data or [])][:MAX_LISTED_MODELS]
            return TestResult(
                name="Model List",
                success=True,
                message=f"Found {len(models)} models",
                latency_ms=_elapsed_ms(start),
                details={"models": models, "count": len(models)},
            )
        except Exception as e:
            return TestResult(
                name="Model List",
                success=False,
                message=f"Model listing failed: {e}",
                latency_ms=_elapsed_ms(start),
            )

    def _test_chat(self, provider: Provider, model: str) -> TestResult:
        start = time.perf_counter()
        try:
            client = self.client_factory.build_client(provider)
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "user", "content": 'Say "test successful" in exactly 2 words.'}
                ],
                max_tokens=10,
                temperature=0,
            )
            content = ""
            if response.choices:
                content = response.choices[0].message.content or ""
            tokens = response.usage.total_tokens if response.usage else 0
            return TestResult(
                name="Chat Completion",
                success=True,
                message=f"Response generated ({tokens} tokens)",
                latency_ms=_elapsed_ms(start),
                details={"model": model, "response": content[:50], "tokens_used": tokens},
            )
        except Exception as e:
            return TestResult(
                name="Chat Completion",
                success=False,
                message=f"Chat completion failed: {e}",
                latency_ms=_elapsed_ms(start),
                details={"model": model},
            )

    def _test_streaming(self, provider: Provider, model: str) -> TestResult:
        start = time.perf_counter()
        try:
            client = self.client_factory.build_client(provider)
            stream = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": "Count from 1 to 3."}],
                max_tokens=20,
                stream=True,
            )
            chunks = 0
            content = ""
            first_chunk_ms: Optional[int] = None
            for chunk in stream:
                if first_chunk_ms is None:
                    first_chunk_ms = _elapsed_ms(start)
                chunks += 1
                if chunk.choices:
                    content += chunk.choices[0].delta.content or ""
            return TestResult(
                name="Streaming",
                success=True,
                message=f"Streaming succeeded ({chunks} chunks, first chunk {first_chunk_ms}ms)",
                latency_ms=_elapsed_ms(start),
                details={
                    "chunks": chunks,
                    "first_chunk_latency_ms": first_chunk_ms,
                    "response": content[:50],
                },
            )
        except Exception as e:
            return TestResult(
                name="Streaming",
                success=False,
                message=f"Streaming failed: {e}",
                latency_ms=_elapsed_ms(start),
            )

    def _test_speed(self, provider: Provider, model: str) -> TestResult:
        start = time.perf_counter()
        try:
            client = self.client_factory.build_client(provider)
            response = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": "List 10 random words, one per line."}],
                max_tokens=100,
                temperature=0.7,
            )
            latency_ms = _elapsed_ms(start)
            output_tokens = response.usage.completion_tokens if response.usage else 0
            tokens_per_second = (
                round(output_tokens / latency_ms * 1000) if output_tokens and latency_ms else 0
            )
            return TestResult(
                name="Generation Speed",
                success=True,
                message=f"{tokens_per_second} tokens/sec",
                latency_ms=latency_ms,
                details={
                    "output_tokens": output_tokens,
                    "tokens_per_second": tokens_per_second,
                },
            )
        except Exception as e:
            return TestResult(
                name="Generation Speed",
                success=False,
                message=f"Speed test failed: {e}",
                latency_ms=_elapsed_ms(start),
            )

    def _critical_error(self, provider: Provider, error: Exception) -> DiagnosticResult:
        tests = [TestResult(name="Critical Error", success=False, message=str(error))]
        return DiagnosticResult(
            provider_id=provider.id,
            provider_name=provider.name,
            provider_type=provider.type.value,
            endpoint=provider.endpoint,
            timestamp=utcnow(),
            tests=tests,
            summary=summarize(tests),
        )
