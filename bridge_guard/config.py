"""Host-supplied configuration for the bridge security core.

Environment variables (all optional):
- BRIDGE_TOKEN_DIR: directory holding ``bridge.token`` (default ~/.ai-stocks)
- BRIDGE_MAX_PROMPT_LENGTH: max prompt length in characters (default 4000)
- BRIDGE_MAX_RESPONSE_SIZE: max sanitized response size in characters (default 32768)
- BRIDGE_MAX_BODY_SIZE: max request body in bytes (default 8192)
- BRIDGE_RATE_CAPACITY: token bucket capacity (default 15)
- BRIDGE_RATE_REFILL_SECONDS: seconds per refilled token (default 6)
- BRIDGE_BAN_THRESHOLD: violations that trigger a ban (default 5)
- BRIDGE_BAN_WINDOW_SECONDS: sliding violation window (default 60)
- BRIDGE_BAN_DURATION_SECONDS: ban length (default 900)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

ENV_TOKEN_DIR = "BRIDGE_TOKEN_DIR"
DEFAULT_TOKEN_DIRNAME = ".ai-stocks"


def default_token_dir() -> Path:
    env_dir = (os.getenv(ENV_TOKEN_DIR) or "").strip()
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / DEFAULT_TOKEN_DIRNAME


@dataclass(frozen=True)
class BridgeConfig:
    """Limits and thresholds consumed by :class:`bridge_guard.pipeline.BridgeGuard`."""

    max_prompt_length: int = 4000
    max_response_size: int = 32 * 1024
    max_body_size: int = 8 * 1024
    rate_capacity: int = 15
    rate_refill_seconds: float = 6.0
    ban_threshold: int = 5
    ban_window_seconds: float = 60.0
    ban_duration_seconds: float = 15 * 60.0
    token_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        def _get_int(name: str, default: int) -> int:
            try:
                return int(os.getenv(name, str(default)).strip())
            except Exception:
                return default

        def _get_float(name: str, default: float) -> float:
            try:
                return float(os.getenv(name, str(default)).strip())
            except Exception:
                return default

        max_prompt = _get_int("BRIDGE_MAX_PROMPT_LENGTH", cls.max_prompt_length)
        max_response = _get_int("BRIDGE_MAX_RESPONSE_SIZE", cls.max_response_size)
        max_body = _get_int("BRIDGE_MAX_BODY_SIZE", cls.max_body_size)
        capacity = _get_int("BRIDGE_RATE_CAPACITY", cls.rate_capacity)
        refill = _get_float("BRIDGE_RATE_REFILL_SECONDS", cls.rate_refill_seconds)
        threshold = _get_int("BRIDGE_BAN_THRESHOLD", cls.ban_threshold)
        window = _get_float("BRIDGE_BAN_WINDOW_SECONDS", cls.ban_window_seconds)
        ban = _get_float("BRIDGE_BAN_DURATION_SECONDS", cls.ban_duration_seconds)
        token_dir = (os.getenv(ENV_TOKEN_DIR) or "").strip() or None

        # Clamp
        if max_prompt < 1:
            max_prompt = cls.max_prompt_length
        if max_response < 1:
            max_response = cls.max_response_size
        if max_body < 1:
            max_body = cls.max_body_size
        if capacity < 1:
            capacity = 1
        if refill <= 0:
            refill = cls.rate_refill_seconds
        if threshold < 1:
            threshold = 1
        if window <= 0:
            window = cls.ban_window_seconds
        if ban <= 0:
            ban = cls.ban_duration_seconds

        return cls(
            max_prompt_length=max_prompt,
            max_response_size=max_response,
            max_body_size=max_body,
            rate_capacity=capacity,
            rate_refill_seconds=refill,
            ban_threshold=threshold,
            ban_window_seconds=window,
            ban_duration_seconds=ban,
            token_dir=token_dir,
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
