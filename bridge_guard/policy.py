"""
Bridge policy rule tables.

All pattern lists used by the prompt and response guards live here as ordered,
immutable, versioned tables. Guards only iterate a table; adding or retiring a
rule is a change to this module alone.

Patterns are compiled with ``re.ASCII`` so word boundaries behave the same way
they do in browser JavaScript: ``\\b`` must fire between a CJK character and a
Latin keyword. Under ``re.ASCII`` Python's ``\\s`` is narrower than the
JavaScript one, so prompt rules spell it as ``JS_WHITESPACE``.

Import from: bridge_guard.policy
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Pattern, Sequence, Tuple

RULESET_VERSION = "2"


@dataclass(frozen=True)
class PolicyRule:
    """One matcher. ``replacement`` is only used by redaction tables."""

    rule_id: str
    pattern: Pattern[str]
    description: str
    replacement: Optional[str] = None

    def search(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class RuleTable:
    name: str
    version: str
    rules: Tuple[PolicyRule, ...]

    def __iter__(self) -> Iterator[PolicyRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def first_match(self, text: str) -> Optional[PolicyRule]:
        for rule in self.rules:
            if rule.search(text):
                return rule
        return None

    def extended(self, extra: Sequence[PolicyRule], version: Optional[str] = None) -> "RuleTable":
        """Return a new table with ``extra`` appended after the existing rules."""
        return RuleTable(name=self.name, version=version or self.version, rules=self.rules + tuple(extra))


def _rule(rule_id: str, regex: str, description: str, flags: int = 0,
          replacement: Optional[str] = None) -> PolicyRule:
    return PolicyRule(rule_id, re.compile(regex, re.ASCII | flags), description, replacement)


# JavaScript's \s: ASCII whitespace plus the Unicode space separators,
# line/paragraph separators and BOM.
JS_WHITESPACE = r"(?:\s|[\u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff])"


def _prompt_rule(rule_id: str, regex: str, description: str, flags: int = 0) -> PolicyRule:
    # \s must not appear inside a character class here.
    return _rule(rule_id, regex.replace(r"\s", JS_WHITESPACE), description, flags)


# =============================================================================
# PROMPT RULES
# =============================================================================

SHELL_RULES = RuleTable("shell", RULESET_VERSION, (
    _prompt_rule("shell.subshell", r"\$\(.*\)", "$(command) substitution"),
    _prompt_rule("shell.backtick", r"`[^`]+`", "`command` substitution"),
    _prompt_rule("shell.keyword", r"\b(sudo|eval|exec|spawn)\b", "privilege escalation / eval keyword", re.I),
    _prompt_rule("shell.dev_redirect", r">\s*/dev/", "redirect into /dev"),
    _prompt_rule("shell.pipe_shell", r"\|\s*(bash|sh|zsh|cmd)", "pipe into a shell", re.I),
    _prompt_rule("shell.destructive_chain", r";\s*(rm|mv|cp|chmod|chown)\b", "chained destructive command", re.I),
))

INJECTION_RULES = RuleTable("injection", RULESET_VERSION, (
    _prompt_rule("injection.ignore", r"ignore\s+(above|previous|all)\s+(instructions|constraints|rules)",
                 "ignore prior instructions", re.I),
    _prompt_rule("injection.disregard", r"disregard\s+(system|above|previous)", "disregard system prompt", re.I),
    _prompt_rule("injection.override", r"override\s+(system|constraints|rules)", "override constraints", re.I),
    _prompt_rule("injection.role", r"you\s+are\s+now\s+a", "role reassignment", re.I),
    _prompt_rule("injection.new_instructions", r"new\s+instructions?:", "new instructions preamble", re.I),
    _prompt_rule("injection.delimiter", r"<\s*/?\s*(system_constraints|user_request)\s*>", "prompt delimiter tag", re.I),
))

SSRF_RULES = RuleTable("ssrf", RULESET_VERSION, (
    _prompt_rule("ssrf.link_local", r"https?://169\.254\.", "link-local / cloud metadata", re.I),
    _prompt_rule("ssrf.private_192", r"https?://192\.168\.", "private range 192.168/16", re.I),
    _prompt_rule("ssrf.private_10", r"https?://10\.\d+\.", "private range 10/8", re.I),
    _prompt_rule("ssrf.private_172", r"https?://172\.(1[6-9]|2\d|3[01])\.", "private range 172.16/12", re.I),
    _prompt_rule("ssrf.loopback", r"https?://127\.", "loopback", re.I),
    _prompt_rule("ssrf.unspecified", r"https?://0\.0\.0\.0", "unspecified address", re.I),
    _prompt_rule("ssrf.localhost", r"https?://localhost(?=[:/]|\s|$)", "localhost by name", re.I | re.M),
    _prompt_rule("ssrf.ipv6_loopback", r"https?://\[::1?\]", "IPv6 loopback / unspecified", re.I),
))

# Order matters only for which error message surfaces.
PROMPT_RULE_TABLES: Tuple[RuleTable, ...] = (SHELL_RULES, INJECTION_RULES, SSRF_RULES)

# Invisible / bidi-control code points stripped from prompts. Standard
# whitespace is kept.
INVISIBLE_CHARS = re.compile("[\u200B-\u200F\u202A-\u202E\u2060-\u2064\u2066-\u2069\uFEFF\u00AD]")

# =============================================================================
# RESPONSE REDACTION RULES
# =============================================================================

SECRET_RULES = RuleTable("secrets", RULESET_VERSION, (
    _rule("secret.openai", r"sk-[a-zA-Z0-9]{20,}", "OpenAI-style API key",
          replacement="[REDACTED:API_KEY]"),
    _rule("secret.github", r"ghp_[a-zA-Z0-9]{36}", "GitHub personal access token",
          replacement="[REDACTED:TOKEN]"),
    _rule("secret.supabase", r"sbp_[a-zA-Z0-9]{40}", "Supabase access token",
          replacement="[REDACTED:TOKEN]"),
    _rule("secret.pem", r"-----BEGIN [\w\s]*(?:PRIVATE )?KEY-----", "PEM key header",
          replacement="[REDACTED:PEM_KEY]"),
    _rule("secret.aws", r"AKIA[0-9A-Z]{16}", "AWS access key id",
          replacement="[REDACTED:AWS_KEY]"),
    _rule("secret.stripe", r"sk_live_[0-9a-zA-Z]{24}", "Stripe live key",
          replacement="[REDACTED:STRIPE_KEY]"),
    _rule("secret.slack", r"xox[baprs]-[0-9a-zA-Z]{10,48}", "Slack token",
          replacement="[REDACTED:SLACK_TOKEN]"),
    _rule("secret.assignment",
          r"(?:password|passwd|secret|private_key|access_token|DB_PASSWORD|DATABASE_URL|POSTGRES_PASSWORD)"
          r"\s*[:=]\s*\S+",
          "credential assignment", re.I, replacement="[REDACTED:CREDENTIAL]"),
    _rule("secret.google", r"AIza[0-9A-Za-z\-_]{30,}", "Google API key",
          replacement="[REDACTED:GOOGLE_KEY]"),
    _rule("secret.google_oauth", r"ya29\.[0-9A-Za-z\-_]+", "Google OAuth access token",
          replacement="[REDACTED:GOOGLE_OAUTH]"),
))

HOME_PLACEHOLDER = "[HOME]"
