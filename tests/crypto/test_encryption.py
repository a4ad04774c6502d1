import base64

import pytest

from uchat.core.encryption import (
    HEADER_LENGTH,
    NONCE_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    DecryptionError,
    decrypt_message,
    encrypt_message,
    generate_invite_code,
    generate_room_key,
)
from uchat.core.security import hash_access_secret, verify_access_secret

ROOM_KEY = generate_room_key()


def test_round_trip_preserves_text():
    text = "Hello, world! Ünïcödé and emoji 🎉"
    assert decrypt_message(encrypt_message(text, ROOM_KEY), ROOM_KEY) == text


def test_same_plaintext_encrypts_differently():
    first = encrypt_message("same text", ROOM_KEY)
    second = encrypt_message("same text", ROOM_KEY)
    assert first != second
    assert decrypt_message(first, ROOM_KEY) == decrypt_message(second, ROOM_KEY)


def test_token_layout():
    text = "layout"
    raw = base64.b64decode(encrypt_message(text, ROOM_KEY))
    assert HEADER_LENGTH == SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH == 60
    # GCM adds no padding, so the body is exactly as long as the plaintext.
    assert len(raw) == HEADER_LENGTH + len(text.encode("utf-8"))


def test_wrong_room_key_fails():
    token = encrypt_message("private", ROOM_KEY)
    with pytest.raises(DecryptionError):
        decrypt_message(token, generate_room_key())


def test_tampered_ciphertext_fails():
    raw = bytearray(base64.b64decode(encrypt_message("do not touch", ROOM_KEY)))
    raw[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        decrypt_message(base64.b64encode(bytes(raw)).decode(), ROOM_KEY)


@pytest.mark.parametrize("token", ["not base64!!", "", base64.b64encode(b"short").decode()])
def test_malformed_tokens_fail(token):
    with pytest.raises(DecryptionError):
        decrypt_message(token, ROOM_KEY)


def test_room_keys_are_unique_hex():
    keys = {generate_room_key() for _ in range(20)}
    assert len(keys) == 20
    assert all(len(k) == 64 and int(k, 16) >= 0 for k in keys)


def test_invite_codes_are_fixed_length_upper_hex():
    codes = {generate_invite_code() for _ in range(50)}
    assert len(codes) == 50
    for code in codes:
        assert len(code) == 32
        assert code == code.upper()
        int(code, 16)


def test_access_secret_hashing():
    hashed = hash_access_secret("secret123")
    assert hashed != "secret123"
    assert verify_access_secret("secret123", hashed)
    assert not verify_access_secret("wrong", hashed)
    assert not verify_access_secret("", hashed)
    assert not verify_access_secret(None, hashed)
