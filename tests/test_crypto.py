"""
Payload encryption tests.

Covers key derivation determinism, round trips across scripts and sizes,
tamper detection, and compatibility with envelopes produced by the browser /
Node implementations of the same contract.
"""

import base64

import pytest

from bridge_guard.crypto import (
    EncryptedEnvelope,
    IV_LENGTH,
    PayloadCipher,
    decrypt,
    derive_key,
    encrypt,
    is_encrypted_envelope,
)
from bridge_guard.errors import IntegrityError


TOKEN = "550e8400-e29b-41d4-a716-446655440000"

# Produced by Node's crypto.hkdfSync / aes-256-gcm with the same constants.
NODE_KEY_HEX = "f552d9eabce2a078dd938b71cc42ae1f8b798ef4169685502273ca648a766308"
NODE_ENVELOPE = {"iv": "BwcHBwcHBwcHBwcH", "ciphertext": "+4bh0ZNI7oyCitS7Y9Hv/VwwdlJihC/1eYg4"}


@pytest.fixture
def key():
    return derive_key(TOKEN)


# ---------------------------
# Key derivation
# ---------------------------

def test_derive_key_is_32_bytes_and_deterministic():
    k1 = derive_key(TOKEN)
    k2 = derive_key(TOKEN)
    assert len(k1) == 32
    assert k1 == k2


def test_derive_key_matches_cross_implementation_vector():
    assert derive_key(TOKEN).hex() == NODE_KEY_HEX


def test_distinct_tokens_yield_distinct_keys():
    assert derive_key("token-a") != derive_key("token-b")


def test_derive_key_accepts_bytes():
    assert derive_key(TOKEN.encode("utf-8")) == derive_key(TOKEN)


# ---------------------------
# Round trips
# ---------------------------

@pytest.mark.parametrize("plaintext", [
    "",
    "Analyze AAPL earnings for Q4",
    "分析 TSLA 的財報",
    "Ünïcödé ✓ 🚀 emoji",
    "x" * 4500,
])
def test_round_trip(key, plaintext):
    assert decrypt(encrypt(plaintext, key), key) == plaintext


def test_envelope_fields_are_base64_with_fresh_iv(key):
    a = encrypt("same text", key)
    b = encrypt("same text", key)
    assert len(base64.b64decode(a.iv)) == IV_LENGTH
    assert a.iv != b.iv
    assert a.ciphertext != b.ciphertext
    # plaintext bytes + 16-byte tag
    assert len(base64.b64decode(a.ciphertext)) == len(b"same text") + 16


def test_decrypt_accepts_plain_mapping(key):
    env = encrypt("hello", key).as_dict()
    assert set(env) == {"iv", "ciphertext"}
    assert decrypt(env, key) == "hello"


def test_decrypts_node_envelope():
    assert decrypt(NODE_ENVELOPE, derive_key(TOKEN)) == "分析 TSLA"


# ---------------------------
# Tamper detection
# ---------------------------

def test_every_flipped_ciphertext_byte_fails(key):
    env = encrypt("Analyze AAPL", key)
    raw = bytearray(base64.b64decode(env.ciphertext))
    for i in range(len(raw)):
        tampered = bytearray(raw)
        tampered[i] ^= 0x01
        bad = EncryptedEnvelope(iv=env.iv, ciphertext=base64.b64encode(bytes(tampered)).decode())
        with pytest.raises(IntegrityError):
            decrypt(bad, key)


def test_wrong_key_fails(key):
    env = encrypt("secret prompt", key)
    with pytest.raises(IntegrityError):
        decrypt(env, derive_key("another-token"))


def test_truncated_ciphertext_fails(key):
    env = encrypt("secret prompt", key)
    raw = base64.b64decode(env.ciphertext)
    short = EncryptedEnvelope(iv=env.iv, ciphertext=base64.b64encode(raw[:10]).decode())
    with pytest.raises(IntegrityError):
        decrypt(short, key)


def test_malformed_base64_fails(key):
    env = encrypt("secret prompt", key)
    with pytest.raises(IntegrityError):
        decrypt({"iv": env.iv, "ciphertext": "not base64!!"}, key)


def test_wrong_iv_length_fails(key):
    env = encrypt("secret prompt", key)
    bad_iv = base64.b64encode(b"\x00" * 16).decode()
    with pytest.raises(IntegrityError):
        decrypt({"iv": bad_iv, "ciphertext": env.ciphertext}, key)


def test_malformed_envelope_mapping_fails(key):
    with pytest.raises(IntegrityError):
        decrypt({"iv": "abc"}, key)


# ---------------------------
# Envelope discriminator
# ---------------------------

def test_is_encrypted_envelope():
    assert is_encrypted_envelope({"iv": "a", "ciphertext": "b"})
    assert is_encrypted_envelope(EncryptedEnvelope(iv="a", ciphertext="b"))
    assert not is_encrypted_envelope("plain prompt")
    assert not is_encrypted_envelope(None)
    assert not is_encrypted_envelope({"iv": "a"})
    assert not is_encrypted_envelope({"ciphertext": "b"})
    assert not is_encrypted_envelope({"iv": 1, "ciphertext": "b"})


# ---------------------------
# PayloadCipher
# ---------------------------

def test_payload_cipher_from_token_round_trip():
    cipher = PayloadCipher.from_token(TOKEN)
    env = cipher.encrypt_to_dict("分析 TSLA")
    assert PayloadCipher.from_token(TOKEN).decrypt(env) == "分析 TSLA"


def test_payload_cipher_rejects_short_key():
    with pytest.raises(ValueError):
        PayloadCipher(b"too short")
