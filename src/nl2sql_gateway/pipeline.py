"""
NL2SQL Pipeline
===============

Orchestrates one natural-language-to-SQL request:

1. Screen the user input for prompt injection
2. Build the schema context for the target connection
3. Route to a SQL-capable model
4. Render the latest approved NL2SQL template (or the built-in one)
5. Call the model
6. Extract the SQL statement from the completion
7. Screen the SQL against the active security policy
8. Apply the row-limit guard

An execution log is written at entry and updated at every exit, including
unexpected failures.
"""

import time
from dataclasses import dataclass
from typing import Optional

import structlog
from opentelemetry import trace

from nl2sql_gateway.config import Settings
from nl2sql_gateway.extraction import extract_explanation, extract_sql
from nl2sql_gateway.llm.base import ClientFactory, chat_completion
from nl2sql_gateway.models import ExecutionLog, ModelPurpose, PromptPurpose, RoutingContext
from nl2sql_gateway.prompts import PromptManager, quote_note_for
from nl2sql_gateway.routing import ModelRouter
from nl2sql_gateway.schema_context import SchemaContextBuilder
from nl2sql_gateway.security.engine import SecurityPolicyEngine
from nl2sql_gateway.security.rules import SecurityCheckResult
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

NO_MODEL_LOG_MESSAGE = "No suitable model available"
NO_MODEL_ERROR = "No AI model available for SQL generation"


@dataclass
class GenerationRequest:
    query: str
    connection_id: str
    user_id: Optional[str] = None
    db_type: Optional[str] = None
    preferred_provider_id: Optional[str] = None
    preferred_model_id: Optional[str] = None


@dataclass
class GenerationResult:
    """Pipeline response."""

    success: bool
    outcome: str  # success, blocked, unavailable, error
    sql: Optional[str] = None
    explanation: Optional[str] = None
    security_check: Optional[SecurityCheckResult] = None
    execution_log: Optional[ExecutionLog] = None
    error: Optional[str] = None
    routing_reason: Optional[str] = None


class Nl2SqlPipeline:
    """Turns natural-language questions into screened, row-limited SQL."""

    def __init__(
        self,
        store: ConfigStore,
        router: ModelRouter,
        prompts: PromptManager,
        security: SecurityPolicyEngine,
        schema_builder: SchemaContextBuilder,
        client_factory: ClientFactory,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.router = router
        self.prompts = prompts
        self.security = security
        self.schema_builder = schema_builder
        self.client_factory = client_factory
        self.settings = settings or Settings()

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run the full pipeline for one request.

        Policy blocks, missing models and backend failures all come back as
        unsuccessful results; nothing raised inside the pipeline escapes.

        Args:
            request: Question, connection and routing hints

        Returns:
            GenerationResult with the final SQL or the failure reason
        """
        start = time.perf_counter()
        log = ExecutionLog(
            user_input=request.query,
            connection_id=request.connection_id,
            user_id=request.user_id,
        )
        self.store.add_execution_log(log)
        structlog.contextvars.bind_contextvars(execution_log_id=log.id)

        with tracer.start_as_current_span("nl2sql.generate") as span:
            span.set_attribute("nl2sql.connection_id", request.connection_id)
            try:
                result = self._run(request, log, start)
            except Exception as e:
                logger.exception("sql_generation_failed", error=str(e))
                log.success = False
                log.error_message = str(e)
                try:
                    self._persist(log, start)
                except Exception:
                    logger.exception("execution_log_write_failed", log_id=log.id)
                result = GenerationResult(
                    success=False,
                    outcome="error",
                    execution_log=log,
                    error=f"SQL generation failed: {e}",
                )
            span.set_attribute("nl2sql.outcome", result.outcome)

        structlog.contextvars.unbind_contextvars("execution_log_id")
        return result

    def _persist(self, log: ExecutionLog, start: float) -> None:
        log.latency_ms = int((time.perf_counter() - start) * 1000)
        self.store.save_execution_log(log)

    def _run(
        self, request: GenerationRequest, log: ExecutionLog, start: float
    ) -> GenerationResult:
        # 1. Prompt screening
        prompt_check = self.security.check_prompt_security(request.query)
        if prompt_check.is_blocked:
            log.success = False
            log.was_blocked = True
            log.block_reason = prompt_check.reason
            self._persist(log, start)
            logger.warning("prompt_blocked", reason=prompt_check.reason)
            return GenerationResult(
                success=False,
                outcome="blocked",
                security_check=prompt_check,
                execution_log=log,
                error=prompt_check.reason,
            )

        # 2. Schema context
        with tracer.start_as_current_span("nl2sql.schema_context"):
            schema_context = self.schema_builder.build(request.connection_id)

        # 3. Routing
        context = RoutingContext(
            purpose=ModelPurpose.SQL,
            db_type=request.db_type,
            preferred_provider_id=request.preferred_provider_id,
            preferred_model_id=request.preferred_model_id,
        )
        with tracer.start_as_current_span("nl2sql.route"):
            if self.settings.enable_failover:
                routed = self.router.select_with_failover(context)
            else:
                routed = self.router.select_model(context)

        if routed is None:
            log.success = False
            log.error_message = NO_MODEL_LOG_MESSAGE
            self._persist(log, start)
            return GenerationResult(
                success=False,
                outcome="unavailable",
                execution_log=log,
                error=NO_MODEL_ERROR,
            )

        log.model_id = routed.model.id
        log.provider_id = routed.provider.id

        # 4. Prompt rendering
        template = self.prompts.find_latest_active(PromptPurpose.NL2SQL)
        if template is not None:
            log.prompt_template_id = template.id
        else:
            template = self.prompts.default_template(PromptPurpose.NL2SQL)

        full_prompt = self.prompts.render_prompt(
            template,
            {
                "schema": schema_context,
                "user_query": request.query,
                "db_type": request.db_type or "generic",
                "quote_note": quote_note_for(request.db_type),
            },
        )
        log.full_prompt = full_prompt

        # 5. Completion
        with tracer.start_as_current_span("nl2sql.completion") as span:
            span.set_attribute("llm.model", routed.model.model_id)
            span.set_attribute("llm.provider", routed.provider.name)
            client = self.client_factory.build_client(routed.provider)
            response = chat_completion(client, routed.model, full_prompt)
        log.input_tokens = response.input_tokens
        log.output_tokens = response.output_tokens

        # 6. Extraction
        sql = extract_sql(response.content)
        log.generated_sql = sql

        # 7. SQL screening
        policy = self.security.get_active_policy()
        with tracer.start_as_current_span("nl2sql.sql_security"):
            sql_check = self.security.check_sql_security(sql, policy)

        if sql_check.is_blocked:
            log.success = False
            log.was_blocked = True
            log.block_reason = sql_check.reason
            self._persist(log, start)
            logger.warning("sql_blocked", reason=sql_check.reason)
            return GenerationResult(
                success=False,
                outcome="blocked",
                sql=sql,
                security_check=sql_check,
                execution_log=log,
                error=sql_check.reason,
                routing_reason=routed.reason,
            )

        # 8. Row-limit guard
        max_rows = policy.max_result_rows if policy is not None else self.settings.default_max_rows
        final_sql = self.security.add_limit_clause(sql_check.sanitized_sql or sql, max_rows)

        log.success = True
        log.generated_sql = final_sql
        self._persist(log, start)
        logger.info(
            "sql_generated",
            model=routed.model.model_id,
            input_tokens=log.input_tokens,
            output_tokens=log.output_tokens,
            latency_ms=log.latency_ms,
        )
        return GenerationResult(
            success=True,
            outcome="success",
            sql=final_sql,
            explanation=extract_explanation(response.content),
            security_check=sql_check,
            execution_log=log,
            routing_reason=routed.reason,
        )
