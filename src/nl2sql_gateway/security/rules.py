"""
Security Rules
==============

Finding types and the independent rule evaluators applied to generated SQL.

Each rule inspects the statement under the active policy and yields zero
or more findings. Rules that rewrite output (PII masking) also implement
``sanitize``. The block decision is made elsewhere, over all findings.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from nl2sql_gateway.models import SecurityPolicy
from nl2sql_gateway.security.patterns import (
    DDL_KEYWORDS,
    DML_KEYWORDS,
    MASK_TOKEN,
    PII_COLUMN_PATTERNS,
    SQL_INJECTION_PATTERNS,
    word_pattern,
)


class FindingType(str, Enum):
    SQL_INJECTION = "sql_injection"
    PROMPT_INJECTION = "prompt_injection"
    DDL = "ddl"
    DML = "dml"
    PII = "pii"
    BLOCKED_KEYWORD = "blocked_keyword"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class SecurityFinding:
    """One typed, severity-ranked security observation."""

    type: FindingType
    severity: Severity
    description: str
    location: Optional[str] = None


@dataclass
class SecurityCheckResult:
    """Outcome of a prompt or SQL screening."""

    is_blocked: bool
    reason: Optional[str] = None
    sanitized_sql: Optional[str] = None
    findings: list[SecurityFinding] = field(default_factory=list)


class SecurityRule(ABC):
    """Base class for SQL screening rules."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def evaluate(self, sql: str, policy: Optional[SecurityPolicy]) -> list[SecurityFinding]:
        """
        Inspect a statement under a policy.

        Args:
            sql: Generated SQL statement
            policy: Active security policy, or None when none is configured

        Returns:
            Findings for this rule (empty when nothing matched)
        """
        pass

    def sanitize(self, sql: str, policy: Optional[SecurityPolicy]) -> str:
        """Rewrite the statement for output. Most rules leave it unchanged."""
        return sql


class InjectionRule(SecurityRule):
    """Syntactic injection heuristics. On unless a policy switches them off."""

    @property
    def name(self) -> str:
        return "injection"

    def evaluate(self, sql: str, policy: Optional[SecurityPolicy]) -> list[SecurityFinding]:
        if policy is not None and policy.enable_injection_check is False:
            return []

        findings = []
        for pattern in SQL_INJECTION_PATTERNS:
            match = pattern.search(sql)
            if match:
                findings.append(
                    SecurityFinding(
                        type=FindingType.SQL_INJECTION,
                        severity=Severity.CRITICAL,
                        description="Potential SQL injection pattern detected",
                        location=match.group(0),
                    )
                )
        return findings


class KeywordRule(SecurityRule):
    """Flags whole-word keywords from a fixed list when a policy flag is set."""

    def __init__(
        self,
        rule_name: str,
        keywords: list[str],
        finding_type: FindingType,
        severity: Severity,
        flag: str,
        label: str,
    ) -> None:
        self._name = rule_name
        self.patterns = [(kw, word_pattern(kw)) for kw in keywords]
        self.finding_type = finding_type
        self.severity = severity
        self.flag = flag
        self.label = label

    @property
    def name(self) -> str:
        return self._name

    def evaluate(self, sql: str, policy: Optional[SecurityPolicy]) -> list[SecurityFinding]:
        if policy is None or not getattr(policy, self.flag):
            return []
        return [
            SecurityFinding(
                type=self.finding_type,
                severity=self.severity,
                description=f"{self.label} statement ({keyword}) detected",
            )
            for keyword, pattern in self.patterns
            if pattern.search(sql)
        ]


def ddl_rule() -> KeywordRule:
    return KeywordRule("ddl", DDL_KEYWORDS, FindingType.DDL, Severity.HIGH, "block_ddl", "DDL")


def dml_rule() -> KeywordRule:
    return KeywordRule("dml", DML_KEYWORDS, FindingType.DML, Severity.MEDIUM, "block_dml", "DML")


class BlockedKeywordRule(SecurityRule):
    """Policy-supplied keyword blacklist, whole word and case-insensitive."""

    @property
    def name(self) -> str:
        return "blocked_keyword"

    def evaluate(self, sql: str, policy: Optional[SecurityPolicy]) -> list[SecurityFinding]:
        if policy is None:
            return []
        return [
            SecurityFinding(
                type=FindingType.BLOCKED_KEYWORD,
                severity=Severity.HIGH,
                description=f'Blocked keyword "{keyword}" detected',
            )
            for keyword in policy.blocked_keywords
            if keyword and word_pattern(keyword).search(sql)
        ]


class PiiRule(SecurityRule):
    """
    Personal-data column detection and masking.

    Covers the fixed column catalogue plus the policy's denied columns.
    Masking applies whenever the policy enables it, blocked run or not.
    """

    @property
    def name(self) -> str:
        return "pii"

    def _patterns(self, policy: SecurityPolicy):
        return PII_COLUMN_PATTERNS + [word_pattern(c) for c in policy.denied_columns if c]

    def _enabled(self, policy: Optional[SecurityPolicy]) -> bool:
        return policy is not None and policy.enable_pii_masking

    def evaluate(self, sql: str, policy: Optional[SecurityPolicy]) -> list[SecurityFinding]:
        if not self._enabled(policy):
            return []
        findings = []
        for pattern in self._patterns(policy):
            match = pattern.search(sql)
            if match:
                findings.append(
                    SecurityFinding(
                        type=FindingType.PII,
                        severity=Severity.MEDIUM,
                        description=f"Potential PII column access detected: {match.group(0)}",
                        location=match.group(0),
                    )
                )
        return findings

    def sanitize(self, sql: str, policy: Optional[SecurityPolicy]) -> str:
        if not self._enabled(policy):
            return sql
        for pattern in self._patterns(policy):
            sql = pattern.sub(MASK_TOKEN, sql)
        return sql


def default_rules() -> list[SecurityRule]:
    """Standard evaluation order."""
    return [InjectionRule(), ddl_rule(), dml_rule(), BlockedKeywordRule(), PiiRule()]


def is_blocking(finding: SecurityFinding) -> bool:
    """Critical findings block, and so do high DDL or blocked-keyword findings."""
    if finding.severity == Severity.CRITICAL:
        return True
    return finding.severity == Severity.HIGH and finding.type in (
        FindingType.DDL,
        FindingType.BLOCKED_KEYWORD,
    )
