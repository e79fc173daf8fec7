"""Environment allowlist for spawned CLI processes.

Child processes inherit only what they need to run; API keys and other
secrets in the bridge's own environment never reach them.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping, Optional

ALLOWED_ENV_KEYS: FrozenSet[str] = frozenset({
    "PATH",
    "HOME",
    "LANG",
    "TERM",
    "SHELL",
    "USER",
    "TMPDIR",
})


def sanitize_env(env: Mapping[str, Optional[str]], allowed: FrozenSet[str] = ALLOWED_ENV_KEYS) -> Dict[str, str]:
    return {k: v for k, v in env.items() if k in allowed and v is not None}
