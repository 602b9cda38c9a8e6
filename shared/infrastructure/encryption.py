"""
Encryption utilities

Symmetric encryption (Fernet) for personal data that is persisted on the
client session, e.g. billing details inside a saved payment retry payload.
"""

import base64
import hashlib
import json

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings


class DecryptionError(ValueError):
    """Raised when a stored value cannot be decrypted with the current key."""


def get_encryption_key() -> bytes:
    """
    Get the Fernet key from settings

    Any string is accepted: it is hashed down to 32 bytes and encoded the
    way Fernet expects.
    """
    key = getattr(settings, 'ENCRYPTION_KEY', None)

    if not key:
        raise ValueError("ENCRYPTION_KEY not configured in settings")

    if isinstance(key, str):
        key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())

    return key


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ''
    return Fernet(get_encryption_key()).encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    if not encrypted:
        return ''
    try:
        return Fernet(get_encryption_key()).decrypt(encrypted.encode()).decode()
    except InvalidToken as e:
        raise DecryptionError("Stored value could not be decrypted") from e


def encrypt_json(value: dict) -> str:
    """Serialize a JSON-compatible dict and encrypt it"""
    return encrypt_string(json.dumps(value, sort_keys=True))


def decrypt_json(encrypted: str) -> dict:
    plaintext = decrypt_string(encrypted)
    return json.loads(plaintext) if plaintext else {}
