"""Stable error taxonomy for the bridge security pipeline.

Every rejection raised by the core is a :class:`BridgeError` carrying a
machine-readable ``code``. Hosts translate errors into transport responses
through :meth:`BridgeError.as_dict` and ``http_status``; the core itself never
decides how a rejection is framed on the wire.

Design goals:
- Stable `code` string suitable for programmatic handling.
- Optional `retryable` flag and `http_status` for transport layers.
- Structured `details` for debugging without parsing messages.
- Typed subclasses so callers can ``except PolicyViolation`` etc.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# Authentication / admission
BRG_E_AUTH_INVALID = "BRG_E_AUTH_INVALID"
BRG_E_RATE_LIMITED = "BRG_E_RATE_LIMITED"
BRG_E_BANNED = "BRG_E_BANNED"

# Prompt policy
BRG_E_PROMPT_TOO_LONG = "BRG_E_PROMPT_TOO_LONG"
BRG_E_SHELL_PATTERN = "BRG_E_SHELL_PATTERN"
BRG_E_INJECTION_PATTERN = "BRG_E_INJECTION_PATTERN"
BRG_E_SSRF_PATTERN = "BRG_E_SSRF_PATTERN"

# Payload encryption
BRG_E_INTEGRITY = "BRG_E_INTEGRITY"

# Generic
BRG_E_BODY_TOO_LARGE = "BRG_E_BODY_TOO_LARGE"
BRG_E_BAD_REQUEST = "BRG_E_BAD_REQUEST"


@dataclass
class BridgeError(Exception):
    """Base bridge exception with stable error code."""

    code: str
    message: str
    retryable: bool = False
    http_status: int = 400
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": bool(self.retryable),
            "http_status": int(self.http_status),
        }
        if self.details:
            d["details"] = self.details
        return d

    def __str__(self) -> str:
        # Keep message readable; details are available via .as_dict()
        return f"{self.code}: {self.message}"


class AuthError(BridgeError):
    """Missing or invalid bearer credential."""

    def __init__(self, message: str = "Invalid or missing token", **details: Any):
        super().__init__(code=BRG_E_AUTH_INVALID, message=message, http_status=403, details=details)


class RateLimitExceeded(BridgeError):
    """Admission bucket is empty. ``retry_after_ms`` hints when a permit frees up."""

    def __init__(self, retry_after_ms: int, message: str = "Too many requests", **details: Any):
        details["retry_after_ms"] = int(retry_after_ms)
        super().__init__(
            code=BRG_E_RATE_LIMITED,
            message=message,
            retryable=True,
            http_status=429,
            details=details,
        )

    @property
    def retry_after_ms(self) -> int:
        return int(self.details["retry_after_ms"])


class BannedError(BridgeError):
    """Caller is temporarily banned after repeated violations."""

    def __init__(
        self,
        retry_after_ms: int,
        message: str = "Temporarily banned due to repeated violations",
        **details: Any,
    ):
        details["retry_after_ms"] = int(retry_after_ms)
        super().__init__(code=BRG_E_BANNED, message=message, http_status=403, details=details)

    @property
    def retry_after_ms(self) -> int:
        return int(self.details["retry_after_ms"])


class PolicyViolation(BridgeError):
    """Prompt rejected by the prompt policy.

    ``category`` names the rule family (``length``, ``shell``, ``injection``,
    ``ssrf``) and is what the violation tracker and stats are keyed on.
    """

    category = "policy"
    default_code = BRG_E_BAD_REQUEST

    def __init__(self, message: str, rule_id: Optional[str] = None, **details: Any):
        if rule_id:
            details["rule_id"] = rule_id
        super().__init__(code=self.default_code, message=message, http_status=400, details=details)

    @property
    def rule_id(self) -> Optional[str]:
        return self.details.get("rule_id")


class LengthError(PolicyViolation):
    category = "length"
    default_code = BRG_E_PROMPT_TOO_LONG

    def __init__(self, length: int, max_length: int):
        super().__init__(
            f"Prompt too long (max {max_length} chars, got {length})",
            length=int(length),
            max_length=int(max_length),
        )

    @property
    def length(self) -> int:
        return int(self.details["length"])


class ShellPatternError(PolicyViolation):
    category = "shell"
    default_code = BRG_E_SHELL_PATTERN

    def __init__(self, rule_id: Optional[str] = None):
        super().__init__("Prompt blocked: contains shell command patterns", rule_id=rule_id)


class InjectionPatternError(PolicyViolation):
    category = "injection"
    default_code = BRG_E_INJECTION_PATTERN

    def __init__(self, rule_id: Optional[str] = None):
        super().__init__("Prompt blocked: contains instruction override patterns", rule_id=rule_id)


class SSRFPatternError(PolicyViolation):
    category = "ssrf"
    default_code = BRG_E_SSRF_PATTERN

    def __init__(self, rule_id: Optional[str] = None):
        super().__init__("Prompt blocked: contains internal network addresses", rule_id=rule_id)


class IntegrityError(BridgeError):
    """Encrypted payload failed authentication or could not be decoded."""

    def __init__(self, message: str = "Encrypted payload failed integrity check", **details: Any):
        super().__init__(code=BRG_E_INTEGRITY, message=message, http_status=400, details=details)


class RequestTooLargeError(BridgeError):
    def __init__(self, size: int, max_size: int):
        super().__init__(
            code=BRG_E_BODY_TOO_LARGE,
            message=f"Request body too large (max {max_size} bytes)",
            http_status=413,
            details={"size": int(size), "max_size": int(max_size)},
        )


class BadRequestError(BridgeError):
    def __init__(self, message: str, **details: Any):
        super().__init__(code=BRG_E_BAD_REQUEST, message=message, http_status=400, details=details)

