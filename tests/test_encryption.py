"""
Tests for the AES-256-GCM field encryption service.
"""

import base64
import logging

import pytest

from security.encryption import (
    EncryptionService,
    FieldKind,
    KEY_LENGTH,
    NONCE_LENGTH,
    TAG_LENGTH,
    generate_key_hex,
)
from security.errors import (
    CryptoFailure,
    EncryptionKeyError,
    MalformedCiphertextError,
    TamperDetectedError,
)

KEY = bytes(range(32))


@pytest.fixture
def service():
    return EncryptionService(KEY)


class TestRoundTrip:

    @pytest.mark.parametrize("plaintext", [
        "+254700000000",
        "a",
        "Wanjiru Kamau-Otieno",
        "Nairobi, Kenya - éè \U0001F600",
        "x" * 4096,
    ])
    def test_decrypt_returns_original(self, service, plaintext):
        blob = service.encrypt(plaintext, FieldKind.PHONE)
        assert blob != plaintext
        assert service.decrypt(blob, FieldKind.PHONE) == plaintext

    def test_none_and_empty_are_absent(self, service):
        assert service.encrypt(None, FieldKind.PHONE) is None
        assert service.encrypt("", FieldKind.PHONE) is None
        assert service.decrypt(None, FieldKind.PHONE) is None
        assert service.decrypt("", FieldKind.PHONE) is None

    def test_fresh_nonce_per_call(self, service):
        first = service.encrypt("+254700000000", FieldKind.PHONE)
        second = service.encrypt("+254700000000", FieldKind.PHONE)

        assert first != second
        assert base64.b64decode(first)[:NONCE_LENGTH] != base64.b64decode(second)[:NONCE_LENGTH]
        assert service.decrypt(first, FieldKind.PHONE) == service.decrypt(second, FieldKind.PHONE)

    def test_blob_layout(self, service):
        plaintext = "+254700000000"
        raw = base64.b64decode(service.encrypt(plaintext, FieldKind.PHONE))
        assert len(raw) == NONCE_LENGTH + len(plaintext.encode("utf-8")) + TAG_LENGTH


class TestTamperDetection:

    def test_every_bit_flip_is_detected(self, service):
        blob = service.encrypt("+254700000000", FieldKind.PHONE)
        raw = base64.b64decode(blob)

        for byte_index in range(len(raw)):
            for bit in range(8):
                corrupted = bytearray(raw)
                corrupted[byte_index] ^= 1 << bit
                tampered = base64.b64encode(bytes(corrupted)).decode("ascii")
                with pytest.raises(TamperDetectedError) as exc_info:
                    service.decrypt(tampered, FieldKind.PHONE)
                assert exc_info.value.failure == CryptoFailure.TAMPER_DETECTED

    def test_wrong_key_is_tamper(self, service):
        blob = service.encrypt("secret", FieldKind.NAME)
        other = EncryptionService(bytes(reversed(KEY)))
        with pytest.raises(TamperDetectedError):
            other.decrypt(blob, FieldKind.NAME)

    def test_tamper_logged_critical_without_plaintext(self, service, caplog):
        blob = service.encrypt("+254711223344", FieldKind.PHONE)
        raw = bytearray(base64.b64decode(blob))
        raw[-1] ^= 0x01

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(TamperDetectedError):
                service.decrypt(base64.b64encode(bytes(raw)).decode(), FieldKind.PHONE)

        critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert critical
        assert "TAMPER_DETECTED" in critical[0].getMessage()
        assert "+254711223344" not in caplog.text
        assert KEY.hex() not in caplog.text


class TestMalformedInput:

    def test_invalid_base64_is_not_tamper(self, service):
        with pytest.raises(MalformedCiphertextError) as exc_info:
            service.decrypt("not base64 at all!!", FieldKind.PHONE)
        assert not isinstance(exc_info.value, TamperDetectedError)
        assert exc_info.value.failure == CryptoFailure.MALFORMED

    def test_too_short_blob(self, service):
        short = base64.b64encode(b"\x00" * (NONCE_LENGTH + TAG_LENGTH - 1)).decode()
        with pytest.raises(MalformedCiphertextError):
            service.decrypt(short, FieldKind.PHONE)


class TestKeyHandling:

    def test_generated_key_is_usable(self):
        key_hex = generate_key_hex()
        assert len(key_hex) == KEY_LENGTH * 2
        svc = EncryptionService.from_hex(key_hex)
        assert svc.decrypt(svc.encrypt("ok", FieldKind.EMAIL), FieldKind.EMAIL) == "ok"

    @pytest.mark.parametrize("key_hex", [None, "", "zz" * 32, "00" * 31, "00" * 33])
    def test_rejects_missing_or_wrong_size_key(self, key_hex):
        with pytest.raises(EncryptionKeyError):
            EncryptionService.from_hex(key_hex)

    def test_rejects_raw_key_of_wrong_length(self):
        with pytest.raises(EncryptionKeyError):
            EncryptionService(b"short")
