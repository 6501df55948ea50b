"""Condition evaluation engine for declarative text rules."""

import re
from functools import lru_cache

from .config import ConditionConfig


def evaluate_condition(text: str, condition: ConditionConfig) -> bool:
    """Evaluate a condition tree against an input string.

    Leaf operators:
    - contains: case-insensitive substring
    - matches: case-insensitive regular expression search
    - any_char: the input contains at least one of the listed characters
    - longer_than: character length strictly greater than the value
    """
    op = condition.operator

    # Compound operators
    if op == "all":
        return all(evaluate_condition(text, c) for c in condition.conditions)
    if op == "any":
        return any(evaluate_condition(text, c) for c in condition.conditions)
    if op == "not":
        return not evaluate_condition(text, condition.condition)

    text = text or ""

    if op == "contains":
        return str(condition.value).lower() in text.lower()
    if op == "matches":
        return _compile(str(condition.value)).search(text) is not None
    if op == "any_char":
        return any(ch in text for ch in str(condition.value))
    if op == "longer_than":
        return len(text) > int(condition.value)

    raise ValueError(f"Unknown operator: {op!r}")


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)
