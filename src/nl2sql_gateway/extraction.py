"""
SQL Extraction
==============

Best-effort recovery of a SQL statement (and trailing explanation) from a
model's free-form completion text.
"""

import re
from typing import Optional

_FENCED_BLOCK = re.compile(r"```(?:sql)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)
_FENCE_SPLIT = re.compile(r"```(?:sql)?.*?```", re.IGNORECASE | re.DOTALL)
_SELECT_STATEMENT = re.compile(r"(SELECT.*?;)", re.IGNORECASE | re.DOTALL)
_SQL_LABEL = re.compile(r"^sql:\s*", re.IGNORECASE)


def extract_sql(content: str) -> str:
    """
    Pull the SQL statement out of completion text.

    Prefers a fenced code block, then the first ``SELECT ... ;`` span, then
    the trimmed text with any leading ``sql:`` label removed.
    """
    match = _FENCED_BLOCK.search(content)
    if match:
        return match.group(1).strip()

    match = _SELECT_STATEMENT.search(content)
    if match:
        return match.group(1).strip()

    return _SQL_LABEL.sub("", content.strip())


def extract_explanation(content: str) -> Optional[str]:
    """Text following the first fenced code block, if there is any."""
    parts = _FENCE_SPLIT.split(content, maxsplit=1)
    if len(parts) > 1 and parts[1].strip():
        return parts[1].strip()
    return None
