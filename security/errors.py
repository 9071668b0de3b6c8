"""
Closed error kinds for the account security subsystem.

Each component raises its own exception type tagged with an enum member;
the auth service translates component failures into ``AuthError`` whose
``kind`` decides the HTTP status and the message the caller gets to see.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    IDENTITY_CONFLICT = "IDENTITY_CONFLICT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    TAMPER_DETECTED = "TAMPER_DETECTED"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.IDENTITY_CONFLICT: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.TOKEN_INVALID: 401,
    ErrorKind.TAMPER_DETECTED: 500,
    ErrorKind.DEPENDENCY_FAILURE: 500,
}

# What the client sees. Server faults never carry internal detail.
SAFE_MESSAGES = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.IDENTITY_CONFLICT: "Email already registered",
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.RATE_LIMITED: "Too many login attempts. Please try again later.",
    ErrorKind.TOKEN_EXPIRED: "Token expired",
    ErrorKind.TOKEN_INVALID: "Invalid token",
    ErrorKind.TAMPER_DETECTED: "Internal server error",
    ErrorKind.DEPENDENCY_FAILURE: "Internal server error",
}


class AuthError(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        retry_after: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.kind = kind
        self.message = message or SAFE_MESSAGES[kind]
        self.retry_after = retry_after
        self.details = details
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict:
        if self.status_code >= 500:
            return {"error": self.kind.value, "message": SAFE_MESSAGES[self.kind]}

        body = {"error": self.kind.value, "message": self.message}
        if self.retry_after is not None:
            body["retryAfter"] = self.retry_after
        if self.details:
            body["errors"] = self.details
        return body


class TokenFailure(str, Enum):
    EXPIRED = "EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    MALFORMED = "MALFORMED"
    INVALID = "INVALID"
    REVOKED = "REVOKED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"


class TokenError(Exception):
    def __init__(self, failure: TokenFailure, detail: str = ""):
        self.failure = failure
        super().__init__(f"{failure.value}: {detail}" if detail else failure.value)


class CryptoFailure(str, Enum):
    KEY_INVALID = "KEY_INVALID"
    ENCRYPT_FAILED = "ENCRYPT_FAILED"
    MALFORMED = "MALFORMED"
    TAMPER_DETECTED = "TAMPER_DETECTED"


class EncryptionError(Exception):
    failure = CryptoFailure.ENCRYPT_FAILED

    def __init__(self, field_kind, detail: str = ""):
        self.field_kind = field_kind
        super().__init__(f"{self.failure.value} ({field_kind}): {detail}" if detail else f"{self.failure.value} ({field_kind})")


class EncryptionKeyError(EncryptionError):
    failure = CryptoFailure.KEY_INVALID

    def __init__(self, detail: str):
        super().__init__("KEY", detail)


class MalformedCiphertextError(EncryptionError):
    failure = CryptoFailure.MALFORMED


class TamperDetectedError(EncryptionError):
    failure = CryptoFailure.TAMPER_DETECTED
