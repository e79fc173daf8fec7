"""Response guard: bounds and redacts CLI output before it leaves the process.

Truncation runs first so the appended marker is never itself rewritten by a
redaction rule. Redaction is textual: a false positive costs a little output,
a false negative leaks a credential, so the rules err wide.
"""

from __future__ import annotations

import os
from typing import Optional

from .policy import HOME_PLACEHOLDER, SECRET_RULES, RuleTable

MAX_RESPONSE_SIZE = 32 * 1024


def _format_limit(max_size: int) -> str:
    if max_size % 1024 == 0:
        return f"{max_size // 1024}KB"
    return f"{max_size} chars"


def _resolve_home() -> str:
    return os.environ.get("HOME") or os.path.expanduser("~")


class ResponseGuard:
    """Stateless output sanitizer; safe to share across threads."""

    def __init__(
        self,
        max_size: int = MAX_RESPONSE_SIZE,
        home_dir: Optional[str] = None,
        rules: RuleTable = SECRET_RULES,
    ):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = int(max_size)
        self.rules = rules
        self.truncation_marker = f"\n[TRUNCATED: response exceeded {_format_limit(self.max_size)} limit]"
        home = home_dir if home_dir is not None else _resolve_home()
        home = home.rstrip("/\\")
        # A root home would rewrite every path separator.
        self.home_dir = home or None

    def sanitize(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return text

        result = text
        if len(result) > self.max_size:
            result = result[: self.max_size] + self.truncation_marker

        for rule in self.rules:
            result = rule.pattern.sub(rule.replacement or "[REDACTED]", result)

        if self.home_dir:
            result = result.replace(self.home_dir, HOME_PLACEHOLDER)

        return result


def sanitize_output(text: Optional[str]) -> Optional[str]:
    """Sanitize with the default limits and the current $HOME."""
    return ResponseGuard().sanitize(text)
