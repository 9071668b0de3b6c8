"""
AES-256-GCM field encryption for PII stored on account records.

Blob layout (base64 encoded for storage):

    nonce (12 bytes) | ciphertext (len(plaintext) bytes) | tag (16 bytes)

The key is handed to ``EncryptionService`` at construction; the app factory
builds one from ``ENCRYPTION_KEY`` and refuses to start if it is missing or
not exactly 32 bytes.
"""
import base64
import binascii
import logging
import os
import secrets
from enum import Enum
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from security.errors import (
    EncryptionError,
    EncryptionKeyError,
    MalformedCiphertextError,
    TamperDetectedError,
)

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


class FieldKind(str, Enum):
    PHONE = "PHONE"
    NAME = "NAME"
    EMAIL = "EMAIL"
    ADDRESS = "ADDRESS"


def generate_key_hex() -> str:
    return secrets.token_hex(KEY_LENGTH)


class EncryptionService:
    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise EncryptionKeyError(f"encryption key must be exactly {KEY_LENGTH} bytes")
        self._aesgcm = AESGCM(bytes(key))

    @classmethod
    def from_hex(cls, key_hex: Optional[str]) -> "EncryptionService":
        if not key_hex:
            raise EncryptionKeyError("ENCRYPTION_KEY is not set")
        try:
            key = bytes.fromhex(key_hex.strip())
        except ValueError:
            raise EncryptionKeyError("ENCRYPTION_KEY must be hex encoded") from None
        return cls(key)

    def encrypt(self, plaintext: Optional[str], field_kind: FieldKind) -> Optional[str]:
        """Encrypt a field value; absent or empty values stay absent (None)."""
        if plaintext is None:
            return None
        value = str(plaintext)
        if not value:
            return None

        try:
            nonce = os.urandom(NONCE_LENGTH)
            # AESGCM appends the 16-byte tag to the ciphertext
            sealed = self._aesgcm.encrypt(nonce, value.encode("utf-8"), None)
        except (ValueError, OverflowError) as exc:
            logger.error("field encryption failed kind=%s outcome=ENCRYPT_FAILED", field_kind)
            raise EncryptionError(field_kind, type(exc).__name__) from exc

        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, blob: Optional[str], field_kind: FieldKind) -> Optional[str]:
        """
        Decrypt a stored blob.

        Raises TamperDetectedError when the GCM tag does not verify (modified
        data or wrong key) and MalformedCiphertextError when the blob cannot
        even be split into its parts.
        """
        if not blob:
            return None

        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError):
            logger.error("field decryption failed kind=%s outcome=MALFORMED reason=encoding", field_kind)
            raise MalformedCiphertextError(field_kind, "not valid base64") from None

        if len(raw) < NONCE_LENGTH + TAG_LENGTH:
            logger.error("field decryption failed kind=%s outcome=MALFORMED reason=length", field_kind)
            raise MalformedCiphertextError(field_kind, "blob too short")

        nonce = raw[:NONCE_LENGTH]
        sealed = raw[NONCE_LENGTH:]

        try:
            plaintext = self._aesgcm.decrypt(nonce, sealed, None)
        except InvalidTag:
            logger.critical(
                "field decryption failed kind=%s outcome=TAMPER_DETECTED "
                "(authentication tag mismatch: modified data or wrong key)",
                field_kind,
            )
            raise TamperDetectedError(field_kind, "authentication tag mismatch") from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            logger.error("field decryption failed kind=%s outcome=MALFORMED reason=utf8", field_kind)
            raise MalformedCiphertextError(field_kind, "plaintext is not utf-8") from None
