"""
Security Policy Engine
======================

Screens user input before generation and generated SQL after it.

The prompt check fails closed on the first instruction-override match.
The SQL check runs every rule, collects all findings and then decides.
"""

import re
from typing import Optional

import structlog

from nl2sql_gateway.models import SecurityPolicy
from nl2sql_gateway.security.patterns import PROMPT_INJECTION_PATTERNS
from nl2sql_gateway.security.rules import (
    FindingType,
    SecurityCheckResult,
    SecurityFinding,
    SecurityRule,
    Severity,
    default_rules,
    is_blocking,
)
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)

_EXISTING_LIMIT = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)
_EXISTING_FETCH = re.compile(r"FETCH\s+(FIRST|NEXT)\s+\d+", re.IGNORECASE)
_TRAILING_TERMINATORS = re.compile(r"[;\s]+$")


def add_limit_clause(sql: str, max_rows: int = 1000) -> str:
    """
    Append ``LIMIT max_rows;`` to a SELECT that has no row limit yet.

    Statements that don't start with SELECT, or already carry ``LIMIT n``
    or ``FETCH FIRST|NEXT n``, are returned unchanged.
    """
    if not sql.strip().upper().startswith("SELECT"):
        return sql
    if _EXISTING_LIMIT.search(sql) or _EXISTING_FETCH.search(sql):
        return sql
    body = _TRAILING_TERMINATORS.sub("", sql)
    # A trailing line comment would swallow a same-line clause
    if "--" in body.rsplit("\n", 1)[-1]:
        return f"{body}\nLIMIT {max_rows};"
    return f"{body} LIMIT {max_rows};"


class SecurityPolicyEngine:
    """Evaluates prompts and SQL against the active security policy."""

    def __init__(
        self,
        store: Optional[ConfigStore] = None,
        rules: Optional[list[SecurityRule]] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Configuration store used to resolve the active policy
            rules: SQL rules in evaluation order. Defaults to the standard set.
        """
        self.store = store
        self.rules = rules if rules is not None else default_rules()

    def get_active_policy(self) -> Optional[SecurityPolicy]:
        """Lowest-priority active policy, or None."""
        if self.store is None:
            return None
        policies = self.store.find_active_policies()
        return policies[0] if policies else None

    def check_prompt_security(self, user_input: str) -> SecurityCheckResult:
        """Block input that tries to override the model's instructions."""
        for pattern in PROMPT_INJECTION_PATTERNS:
            match = pattern.search(user_input)
            if match:
                finding = SecurityFinding(
                    type=FindingType.PROMPT_INJECTION,
                    severity=Severity.CRITICAL,
                    description="Potential prompt injection detected",
                    location=match.group(0),
                )
                logger.warning("prompt_injection_detected", location=finding.location)
                return SecurityCheckResult(
                    is_blocked=True,
                    reason="Prompt injection attempt detected",
                    findings=[finding],
                )
        return SecurityCheckResult(is_blocked=False)

    def check_sql_security(
        self, sql: str, policy: Optional[SecurityPolicy] = None
    ) -> SecurityCheckResult:
        """
        Run every SQL rule and reduce the findings to a block decision.

        Args:
            sql: Generated SQL statement
            policy: Policy to apply. Defaults to the active policy.

        Returns:
            SecurityCheckResult with findings and the sanitized statement
        """
        if policy is None:
            policy = self.get_active_policy()

        findings: list[SecurityFinding] = []
        sanitized = sql
        for rule in self.rules:
            findings.extend(rule.evaluate(sql, policy))
            sanitized = rule.sanitize(sanitized, policy)

        blocking = [f for f in findings if is_blocking(f)]
        result = SecurityCheckResult(
            is_blocked=bool(blocking),
            reason=blocking[0].description if blocking else None,
            sanitized_sql=sanitized,
            findings=findings,
        )

        if findings:
            logger.info(
                "sql_security_findings",
                blocked=result.is_blocked,
                policy=policy.name if policy else None,
                types=sorted({f.type.value for f in findings}),
            )
        return result

    def add_limit_clause(self, sql: str, max_rows: int = 1000) -> str:
        return add_limit_clause(sql, max_rows)
