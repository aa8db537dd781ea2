"""
Security Pattern Catalogues
===========================

Fixed regular-expression and keyword catalogues used by the security rules.
"""

import re

# Instruction-override phrasings in user input
PROMPT_INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(all\s+)?previous\s+instructions", re.IGNORECASE),
    re.compile(r"forget\s+(all\s+)?previous", re.IGNORECASE),
    re.compile(r"disregard\s+(all\s+)?above", re.IGNORECASE),
    re.compile(r"system\s*:\s*", re.IGNORECASE),
    re.compile(r"\[SYSTEM\]", re.IGNORECASE),
    re.compile(r"you\s+are\s+now\s+", re.IGNORECASE),
    re.compile(r"pretend\s+to\s+be", re.IGNORECASE),
]

# Suspicious syntax in generated SQL
SQL_INJECTION_PATTERNS = [
    re.compile(
        r"(\b(union\s+select|select\s+\*\s+from\s+information_schema)\b)", re.IGNORECASE
    ),
    re.compile(r"(\b(exec|execute)\s+(sp_|xp_))", re.IGNORECASE),
    re.compile(r"(;\s*(drop|delete|truncate|alter|create)\s+)", re.IGNORECASE),
    re.compile(r"(';\s*--)", re.IGNORECASE),
    re.compile(r"(\bor\s+1\s*=\s*1)", re.IGNORECASE),
    re.compile(r"(\bor\s+'[^']*'\s*=\s*'[^']*')", re.IGNORECASE),
]

DDL_KEYWORDS = ["CREATE", "ALTER", "DROP", "TRUNCATE", "RENAME", "GRANT", "REVOKE"]

DML_KEYWORDS = ["INSERT", "UPDATE", "DELETE", "MERGE", "UPSERT"]

# Column names that usually hold personal data (English and Korean)
PII_COLUMN_PATTERNS = [
    re.compile(r"\b(ssn|social_security|주민번호|resident_number)\b", re.IGNORECASE),
    re.compile(r"\b(credit_card|card_number|카드번호)\b", re.IGNORECASE),
    re.compile(r"\b(password|passwd|pwd|비밀번호)\b", re.IGNORECASE),
    re.compile(r"\b(phone|mobile|핸드폰|전화번호)\b", re.IGNORECASE),
    re.compile(r"\b(email|이메일)\b", re.IGNORECASE),
    re.compile(r"\b(address|주소)\b", re.IGNORECASE),
    re.compile(r"\b(birth_date|birthday|생년월일)\b", re.IGNORECASE),
]

MASK_TOKEN = "'***MASKED***'"


def word_pattern(word: str) -> re.Pattern:
    """Whole-word, case-insensitive pattern for a literal keyword."""
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
