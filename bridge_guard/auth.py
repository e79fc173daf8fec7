"""Bearer token authentication for the bridge.

One static credential per installation. The token is a random UUID persisted
in ``<token_dir>/bridge.token`` so the browser client keeps working across
restarts. It is regenerated only when the file is missing, unreadable, or
empty, and the file is rewritten on every start so its permissions are always
owner-only.

Env vars:
  - BRIDGE_TOKEN_DIR: directory for the token file (default ~/.ai-stocks)
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Optional, Union

from .config import default_token_dir
from .crypto import PayloadCipher

logger = logging.getLogger("bridge_guard.auth")

TOKEN_FILENAME = "bridge.token"


class TokenAuthority:
    """Issues, persists, and validates the bridge bearer token."""

    def __init__(self, token_dir: Optional[Union[str, Path]] = None, filename: str = TOKEN_FILENAME):
        self._dir = Path(token_dir).expanduser() if token_dir else default_token_dir()
        self._file = self._dir / filename
        self._cipher: Optional[PayloadCipher] = None
        self._cipher_lock = threading.Lock()

        if not self._dir.exists():
            self._dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        token = self._read_existing()
        if not token:
            token = str(uuid.uuid4())
            logger.info("Generated new bridge token (%s)", self._file)
        self._token = token
        self._write(token)

    def _read_existing(self) -> Optional[str]:
        try:
            existing = self._file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Token file %s unreadable, regenerating: %s", self._file, e)
            return None
        return existing or None

    def _write(self, token: str) -> None:
        fd = os.open(str(self._file), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(token + "\n")
        # O_CREAT's mode only applies to new files.
        os.chmod(self._file, 0o600)

    @property
    def token(self) -> str:
        return self._token

    @property
    def token_file(self) -> Path:
        return self._file

    def validate(self, candidate: Any) -> bool:
        if not candidate or not isinstance(candidate, str):
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), self._token.encode("utf-8"))

    def cipher(self) -> PayloadCipher:
        """Payload cipher keyed from the current token (derived once, then cached)."""
        with self._cipher_lock:
            if self._cipher is None:
                self._cipher = PayloadCipher.from_token(self._token)
            return self._cipher
