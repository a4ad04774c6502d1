"""
Per-room message encryption.

Each room owns a long-lived random key. Every message gets its own AES-256
key derived with PBKDF2-HMAC-SHA512 from the room key and a fresh random
salt, and is sealed with AES-GCM under a fresh nonce.

Token format: base64( salt[32] | nonce[12] | tag[16] | ciphertext )

The room key never leaves the server and decryption only happens
server-side. This protects messages at rest and in the database; it is not
end-to-end encryption and offers nothing against a compromised server.
"""

import base64
import binascii
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KEY_LENGTH = 32  # AES-256
SALT_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16
PBKDF2_ITERATIONS = 100_000
INVITE_CODE_BYTES = 16

HEADER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH


class DecryptionError(Exception):
    """Raised when a message token cannot be decoded, authenticated or decrypted."""


def generate_room_key() -> str:
    """Return a fresh 256-bit room secret, hex encoded."""
    return secrets.token_hex(KEY_LENGTH)


def generate_invite_code() -> str:
    """Return a 128-bit invite code as 32 upper-case hex characters."""
    return secrets.token_hex(INVITE_CODE_BYTES).upper()


def _derive_key(room_key: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(room_key.encode("utf-8"))


def encrypt_message(text: str, room_key: str) -> str:
    """
    Encrypt a message body for a room.

    Args:
        text: Plaintext message body
        room_key: The room's secret

    Returns:
        Base64 token; two calls with the same input never return the same token
    """
    salt = secrets.token_bytes(SALT_LENGTH)
    nonce = secrets.token_bytes(NONCE_LENGTH)
    key = _derive_key(room_key, salt)

    # AESGCM appends the tag to the ciphertext.
    sealed = AESGCM(key).encrypt(nonce, text.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

    return base64.b64encode(salt + nonce + tag + ciphertext).decode("ascii")


def decrypt_message(token: str, room_key: str) -> str:
    """
    Decrypt a token produced by encrypt_message.

    Raises:
        DecryptionError: If the token is malformed, was sealed under another
            room key, or was tampered with
    """
    try:
        combined = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError("Message token is not valid base64") from e

    if len(combined) < HEADER_LENGTH:
        raise DecryptionError("Message token is truncated")

    salt = combined[:SALT_LENGTH]
    nonce = combined[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH]
    tag = combined[SALT_LENGTH + NONCE_LENGTH:HEADER_LENGTH]
    ciphertext = combined[HEADER_LENGTH:]

    key = _derive_key(room_key, salt)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptionError("Message authentication failed") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Decrypted message is not valid UTF-8") from e
