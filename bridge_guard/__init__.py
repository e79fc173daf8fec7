"""bridge-guard package.

Security middleware for a local bridge that relays browser prompts to
command-line AI tools:

- Bearer token authentication (persisted, owner-only token file)
- Token-bucket admission control
- Violation circuit breaker with temporary bans
- Prompt shell/injection/SSRF filtering and policy wrapping
- Output secret redaction and size bounding
- AES-256-GCM payload encryption keyed by HKDF from the bearer token

Convenience imports
------------------
The package avoids import-time side effects. These are available as
top-level imports and are loaded lazily:

    from bridge_guard import BridgeGuard, BridgeConfig, TokenAuthority
    from bridge_guard import PromptGuard, ResponseGuard, PayloadCipher
"""

from __future__ import annotations

import re
from importlib import import_module
from pathlib import Path
from typing import Any


def _read_version_from_pyproject() -> str | None:
    """Best-effort version discovery for dev/test environments."""

    try:
        pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
        txt = pyproject.read_text(encoding="utf-8")
        m = re.search(r"^version\s*=\s*\"([^\"]+)\"\s*$", txt, flags=re.MULTILINE)
        return m.group(1) if m else None
    except OSError:
        return None


# Prefer repo-local pyproject version (tests), otherwise a hardcoded default.
__version__ = (
    _read_version_from_pyproject()
    or "0.3.0"
)

__all__ = [
    "__version__",
    "BridgeGuard",
    "BridgeConfig",
    "TokenAuthority",
    "TokenBucket",
    "ViolationTracker",
    "PromptGuard",
    "ResponseGuard",
    "PayloadCipher",
    "derive_key",
    "BridgeError",
    "sanitize_env",
]

# Lazy export map: name -> (module, attribute)
_LAZY_EXPORTS: dict[str, tuple[str, str]] = {
    "BridgeGuard": ("bridge_guard.pipeline", "BridgeGuard"),
    "BridgeConfig": ("bridge_guard.config", "BridgeConfig"),
    "TokenAuthority": ("bridge_guard.auth", "TokenAuthority"),
    "TokenBucket": ("bridge_guard.ratelimit", "TokenBucket"),
    "ViolationTracker": ("bridge_guard.lockdown", "ViolationTracker"),
    "PromptGuard": ("bridge_guard.prompt_guard", "PromptGuard"),
    "ResponseGuard": ("bridge_guard.response_guard", "ResponseGuard"),
    "PayloadCipher": ("bridge_guard.crypto", "PayloadCipher"),
    "derive_key": ("bridge_guard.crypto", "derive_key"),
    "BridgeError": ("bridge_guard.errors", "BridgeError"),
    "sanitize_env": ("bridge_guard.environment", "sanitize_env"),
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr)
        # Cache the resolved attribute on the module for faster future access.
        globals()[name] = value
        return value
    raise AttributeError(f"module 'bridge_guard' has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(list(globals().keys()) + list(_LAZY_EXPORTS.keys())))
