"""
Security Module
===============

Prompt and SQL screening, PII masking, row-limit guard and policy activation.
"""

from nl2sql_gateway.security.engine import SecurityPolicyEngine, add_limit_clause
from nl2sql_gateway.security.policies import PolicyService
from nl2sql_gateway.security.rules import (
    FindingType,
    SecurityCheckResult,
    SecurityFinding,
    SecurityRule,
    Severity,
    default_rules,
)

__all__ = [
    "SecurityPolicyEngine",
    "add_limit_clause",
    "PolicyService",
    "FindingType",
    "SecurityCheckResult",
    "SecurityFinding",
    "SecurityRule",
    "Severity",
    "default_rules",
]
