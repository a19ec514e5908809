"""
Symmetric encryption for stored credentials.

Uses Fernet with a key derived from LIGHTDASH_SECRET. The service is passed
explicitly to the models that need it; nothing reads the secret globally.
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a value cannot be encrypted or decrypted."""


class EncryptionService:
    """Encrypts strings to opaque bytes and back."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("An encryption secret is required")
        # Fernet requires a 32-byte urlsafe base64 key
        key_bytes = hashlib.sha256(secret.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(key_bytes))

    def encrypt(self, plaintext: str) -> bytes:
        try:
            return self._fernet.encrypt(plaintext.encode())
        except (AttributeError, TypeError) as e:
            raise EncryptionError(f"Failed to encrypt value: {e}") from e

    def decrypt(self, encrypted: bytes) -> str:
        try:
            return self._fernet.decrypt(bytes(encrypted)).decode()
        except InvalidToken as e:
            logger.error("Failed to decrypt value: invalid token (secret may have changed)")
            raise EncryptionError("Failed to decrypt value") from e
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Failed to decrypt value: {e}") from e
