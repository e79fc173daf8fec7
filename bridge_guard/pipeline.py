"""
Bridge security context.

``BridgeGuard`` is the one object a host constructs at startup and consults on
every request. It owns all mutable security state (credential, admission
bucket, violation log) and runs the per-request checks in a fixed order:

    ban check -> token validation -> rate limit       (admit)
    [decrypt] -> prompt policy + wrap                  (prepare_prompt)
    -- external CLI execution, not handled here --
    redaction -> [encrypt]                             (finalize_response)

Security Properties:
- A ban short-circuits every other check.
- Auth failures and prompt policy violations count toward the ban; rate-limit
  rejections and decryption failures do not.
- The admission sequence runs under one lock, so concurrent requests cannot
  over-consume the bucket or under-count violations.
- Rejections are terminal for the request and never raise anything but
  BridgeError subclasses.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .auth import TokenAuthority
from .config import BridgeConfig
from .crypto import EncryptedEnvelope, is_encrypted_envelope
from .errors import (
    AuthError,
    BadRequestError,
    BannedError,
    IntegrityError,
    PolicyViolation,
    RateLimitExceeded,
    RequestTooLargeError,
)
from .lockdown import ViolationTracker
from .ops_stats import OpsStats
from .prompt_guard import PromptGuard
from .ratelimit import TokenBucket
from .response_guard import ResponseGuard

logger = logging.getLogger("bridge_guard")

PROMPT_PREVIEW_CHARS = 100


def _preview(prompt: Optional[str]) -> str:
    return (prompt or "")[:PROMPT_PREVIEW_CHARS].replace("\n", " ")


@dataclass(frozen=True)
class PreparedPrompt:
    """A prompt that passed policy, ready to hand to a CLI."""

    wrapped: str
    encrypted: bool


class BridgeGuard:
    """Explicit security context for the bridge process."""

    def __init__(
        self,
        authority: TokenAuthority,
        config: Optional[BridgeConfig] = None,
        *,
        limiter: Optional[TokenBucket] = None,
        tracker: Optional[ViolationTracker] = None,
        prompt_guard: Optional[PromptGuard] = None,
        response_guard: Optional[ResponseGuard] = None,
        stats: Optional[OpsStats] = None,
    ):
        self.config = config or BridgeConfig()
        self.authority = authority
        self.limiter = limiter or TokenBucket(
            capacity=self.config.rate_capacity,
            refill_interval=self.config.rate_refill_seconds,
        )
        self.tracker = tracker or ViolationTracker(
            threshold=self.config.ban_threshold,
            window_seconds=self.config.ban_window_seconds,
            ban_seconds=self.config.ban_duration_seconds,
        )
        self.prompt_guard = prompt_guard or PromptGuard(max_length=self.config.max_prompt_length)
        self.response_guard = response_guard or ResponseGuard(max_size=self.config.max_response_size)
        self.stats = stats or OpsStats()
        self._state_lock = threading.RLock()

    @classmethod
    def from_env(cls) -> "BridgeGuard":
        config = BridgeConfig.from_env()
        return cls(TokenAuthority(config.token_dir), config)

    # ---------------------------
    # Admission
    # ---------------------------

    def _record_violation(self, reason: str, origin: Optional[str]) -> None:
        if self.tracker.record():
            self.stats.record_ban()
            logger.warning(
                "Ban started for %.0fs after %d violations (last: %s, origin=%s)",
                self.tracker.ban_seconds, self.tracker.threshold, reason, origin or "none",
            )

    def admit(self, token: Optional[str], *, cost: int = 1, origin: Optional[str] = None) -> None:
        """Authenticate and rate-limit one request.

        ``cost`` is the number of bucket permits the request needs (one per
        CLI for fan-out requests). Raises BannedError, AuthError or
        RateLimitExceeded.
        """
        with self._state_lock:
            try:
                self.tracker.raise_if_banned()
            except BannedError:
                self.stats.record_banned_rejection()
                raise

            if not self.authority.validate(token):
                self.stats.record_auth_failure()
                logger.warning("AUTH_FAIL origin=%s", origin or "none")
                self._record_violation("auth", origin)
                raise AuthError()

            if not self.limiter.try_consume(cost):
                self.stats.record_rate_limited()
                retry_ms = math.ceil(self.limiter.seconds_until_refill() * 1000)
                logger.info("RATE_LIMITED origin=%s cost=%d retry_after_ms=%d", origin or "none", cost, retry_ms)
                raise RateLimitExceeded(retry_after_ms=retry_ms)

        self.stats.record_admitted()

    def check_body_size(self, size: int) -> None:
        if size > self.config.max_body_size:
            raise RequestTooLargeError(size, self.config.max_body_size)

    # ---------------------------
    # Payloads
    # ---------------------------

    def prepare_prompt(
        self,
        prompt: Union[str, EncryptedEnvelope, Mapping[str, Any], None],
        *,
        origin: Optional[str] = None,
    ) -> PreparedPrompt:
        """Decrypt (if needed), validate and wrap a prompt.

        Raises IntegrityError, PolicyViolation or BadRequestError.
        """
        encrypted = is_encrypted_envelope(prompt)
        if encrypted:
            try:
                text = self.authority.cipher().decrypt(prompt)  # type: ignore[arg-type]
            except IntegrityError:
                self.stats.record_integrity_failure()
                logger.warning("DECRYPT_FAIL origin=%s", origin or "none")
                raise
        elif isinstance(prompt, str):
            text = prompt
        else:
            raise BadRequestError("prompt is required")

        if not text:
            raise BadRequestError("prompt is required")

        try:
            wrapped = self.prompt_guard.wrap(text)
        except PolicyViolation as e:
            self.stats.record_policy_violation(e.category)
            logger.warning(
                "POLICY_BLOCK category=%s rule=%s origin=%s prompt=%s",
                e.category, e.rule_id or "-", origin or "none", _preview(text),
            )
            with self._state_lock:
                self._record_violation(e.category, origin)
            raise

        return PreparedPrompt(wrapped=wrapped, encrypted=encrypted)

    def finalize_response(self, output: str, *, encrypt: bool = False) -> Union[str, Dict[str, str]]:
        """Sanitize CLI output and, for encrypted requests, seal it."""
        sanitized = self.response_guard.sanitize(output.strip() if output else output) or ""
        self.stats.record_response_sanitized()
        if encrypt:
            return self.authority.cipher().encrypt_to_dict(sanitized)
        return sanitized

    # ---------------------------
    # Introspection
    # ---------------------------

    def is_banned(self) -> bool:
        return self.tracker.is_banned()

    def health(self) -> Dict[str, Any]:
        return self.stats.snapshot(
            extra={
                "banned": self.tracker.is_banned(),
                "rate_remaining": self.limiter.remaining(),
                "rate_capacity": self.limiter.capacity,
            }
        )
