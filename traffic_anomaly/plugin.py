"""Plugin system for scoring logic that does not fit a declarative condition.

The builtin_* plugins are opt-in: the bundled default profile lists none of
them. Enable one by naming it under `plugins:` in a profile, e.g.
`traffic_anomaly.plugin:builtin_sql_comment`, or via
RuleScorer.register_plugin.
"""

import importlib
import re
from typing import Callable

from .models import RuleMatch

RulePlugin = Callable[[str], RuleMatch | None]

TRAVERSAL_RE = re.compile(r"\.\.[/\\]")
EVENT_HANDLER_RE = re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE)
# Trailing SQL comment after a quote: admin'-- or ' OR 1=1--
SQL_COMMENT_RE = re.compile(r"'[^']*--")


def load_plugin(dotted_path: str) -> RulePlugin:
    """Load a plugin callable from a dotted path.

    Supports two formats:
    - "module.path:function_name" (colon separator)
    - "module.path.function_name" (dot separator, last segment is the function)
    """
    if ":" in dotted_path:
        module_path, func_name = dotted_path.rsplit(":", 1)
    else:
        module_path, func_name = dotted_path.rsplit(".", 1)

    module = importlib.import_module(module_path)
    func = getattr(module, func_name)

    if not callable(func):
        raise TypeError(f"Plugin {dotted_path!r} is not callable")

    return func


def builtin_directory_traversal(text: str) -> RuleMatch | None:
    """Flag ../ or ..\\ path segments.

    Weight +0.7.
    """
    match = TRAVERSAL_RE.search(text or "")
    if match is None:
        return None
    return RuleMatch(
        rule_id="directory_traversal",
        weight=0.7,
        reason=f"Path traversal segment {match.group(0)!r}",
    )


def builtin_event_handler(text: str) -> RuleMatch | None:
    """Flag inline DOM event handlers such as onerror= or onload=.

    Weight +0.9, above the 0.8 of the script_injection rule.
    """
    match = EVENT_HANDLER_RE.search(text or "")
    if match is None:
        return None
    return RuleMatch(
        rule_id="event_handler",
        weight=0.9,
        reason=f"Inline event handler {match.group(0).strip()!r}",
    )


def builtin_sql_comment(text: str) -> RuleMatch | None:
    """Flag a quote followed by an SQL line comment, e.g. admin'--.

    Weight +0.8.
    """
    if SQL_COMMENT_RE.search(text or "") is None:
        return None
    return RuleMatch(
        rule_id="sql_comment",
        weight=0.8,
        reason="Quoted value terminated by an SQL comment",
    )
