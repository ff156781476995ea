"""
Symmetric encryption helpers for secrets stored on disk (Trakt tokens).
"""
import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from streamhub.core.config import settings

PREFIX = "enc:"


def _fernet(key: str) -> Fernet:
    """Derive a Fernet instance from a passphrase.
    Uses SHA-256 of the secret to produce a 32-byte key and urlsafe-base64 encodes it.
    """
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_secret(value: str, key: Optional[str] = None) -> str:
    """Encrypt a plaintext string as "enc:<token>"; returned unchanged without a key."""
    key = key if key is not None else settings.CREDENTIAL_KEY
    if not key or not value:
        return value
    token = _fernet(key).encrypt(value.encode("utf-8"))
    return PREFIX + token.decode("utf-8")


def decrypt_secret(value: str, key: Optional[str] = None) -> Optional[str]:
    """Decrypt an "enc:" value; unprefixed values are plaintext. None if undecryptable."""
    if not value.startswith(PREFIX):
        return value
    key = key if key is not None else settings.CREDENTIAL_KEY
    if not key:
        return None
    try:
        return _fernet(key).decrypt(value[len(PREFIX):].encode("utf-8")).decode("utf-8")
    except InvalidToken:
        return None
