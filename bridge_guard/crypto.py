"""
Bridge payload cryptography.

End-to-end authenticated encryption for prompt and response text crossing the
browser/process boundary. The browser (WebCrypto) and this process derive the
same AES key independently from the shared bearer token, so every constant
below is part of a cross-implementation contract and must match bit for bit:

- HKDF-SHA256, salt ``ai-stocks-bridge-v1-salt``, info ``bridge-prompt-encryption``
- 32-byte key, AES-256-GCM, 12-byte random nonce per message
- 16-byte tag appended to the ciphertext
- ``iv`` and ``ciphertext`` base64-encoded independently

Anyone holding the bearer token can derive the key and read traffic. That is
accepted: the token already grants full use of the bridge.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import IntegrityError

SALT = b"ai-stocks-bridge-v1-salt"
INFO = b"bridge-prompt-encryption"
KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16


def derive_key(token: Union[str, bytes]) -> bytes:
    """Derive the 256-bit payload key from the bearer token.

    Deterministic: the same token always yields the same key, here and in the
    browser.
    """
    material = token.encode("utf-8") if isinstance(token, str) else bytes(token)
    hkdf = HKDF(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=SALT, info=INFO)
    return hkdf.derive(material)


@dataclass(frozen=True)
class EncryptedEnvelope:
    """Wire form of an encrypted payload: base64 nonce + base64 ciphertext||tag."""

    iv: str
    ciphertext: str

    def as_dict(self) -> Dict[str, str]:
        return {"iv": self.iv, "ciphertext": self.ciphertext}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EncryptedEnvelope":
        if not is_encrypted_envelope(data):
            raise IntegrityError("Malformed encrypted envelope")
        return cls(iv=data["iv"], ciphertext=data["ciphertext"])


def is_encrypted_envelope(obj: Any) -> bool:
    """True if ``obj`` carries both an ``iv`` string and a ``ciphertext`` string."""
    if isinstance(obj, EncryptedEnvelope):
        return True
    if not isinstance(obj, Mapping):
        return False
    return isinstance(obj.get("iv"), str) and isinstance(obj.get("ciphertext"), str)


def _b64decode(value: str, field_name: str) -> bytes:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise IntegrityError(f"Invalid base64 in {field_name}") from e


def encrypt(plaintext: str, key: bytes) -> EncryptedEnvelope:
    iv = os.urandom(IV_LENGTH)
    # AESGCM.encrypt returns ciphertext with the tag already appended.
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return EncryptedEnvelope(
        iv=base64.b64encode(iv).decode("ascii"),
        ciphertext=base64.b64encode(sealed).decode("ascii"),
    )


def decrypt(envelope: Union[EncryptedEnvelope, Mapping[str, Any]], key: bytes) -> str:
    """Authenticate and decrypt an envelope.

    Raises IntegrityError on any failure; never returns unauthenticated text.
    """
    if not isinstance(envelope, EncryptedEnvelope):
        envelope = EncryptedEnvelope.from_mapping(envelope)

    iv = _b64decode(envelope.iv, "iv")
    raw = _b64decode(envelope.ciphertext, "ciphertext")
    if len(iv) != IV_LENGTH:
        raise IntegrityError("Invalid nonce length", iv_length=len(iv))
    if len(raw) < TAG_LENGTH:
        raise IntegrityError("Ciphertext truncated")

    try:
        plaintext = AESGCM(key).decrypt(iv, raw, None)
    except InvalidTag as e:
        raise IntegrityError() from e
    except ValueError as e:
        # Wrong key size and similar parameter errors
        raise IntegrityError(str(e)) from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IntegrityError("Decrypted payload is not valid UTF-8") from e


class PayloadCipher:
    """Stateless cipher bound to one derived key."""

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH:
            raise ValueError(f"key must be {KEY_LENGTH} bytes")
        self._key = bytes(key)

    @classmethod
    def from_token(cls, token: Union[str, bytes]) -> "PayloadCipher":
        return cls(derive_key(token))

    def encrypt(self, plaintext: str) -> EncryptedEnvelope:
        return encrypt(plaintext, self._key)

    def encrypt_to_dict(self, plaintext: str) -> Dict[str, str]:
        return self.encrypt(plaintext).as_dict()

    def decrypt(self, envelope: Union[EncryptedEnvelope, Mapping[str, Any]]) -> str:
        return decrypt(envelope, self._key)
