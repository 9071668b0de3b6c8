"""
Register / login / refresh / logout flows for parent accounts.

Every failure leaves this module as an ``AuthError`` tagged with an
``ErrorKind``; the app's error handler renders it. Unknown email and wrong
password produce the same INVALID_CREDENTIALS answer, and unknown emails
still pay for one bcrypt verification.
"""
import logging

from flask import g
from sqlalchemy.exc import IntegrityError

from models import db
from models.parent import Parent
from security.encryption import FieldKind
from security.errors import (
    AuthError,
    EncryptionError,
    ErrorKind,
    TamperDetectedError,
    TokenError,
    TokenFailure,
)
from security.extensions import bruteforce_guard, encryption, tokens
from security.bruteforce import GuardDecision
from security.lockout import is_locked, register_failure, reset_attempts
from security.password import burn_password_check, hash_password, verify_password
from utils.audit import log_event
from utils.validators import normalize_email, validate_login_data, validate_registration_data

logger = logging.getLogger(__name__)


def _decrypt_phone(parent: Parent):
    try:
        return encryption().decrypt(parent.phone_number, FieldKind.PHONE)
    except TamperDetectedError as exc:
        log_event(
            "DECRYPTION_TAMPERING_DETECTED", user_id=parent.id, entity="parent", entity_id=parent.id,
            metadata={"field": FieldKind.PHONE.value}, severity="CRITICAL", result="FAILURE",
        )
        raise AuthError(ErrorKind.TAMPER_DETECTED) from exc
    except EncryptionError as exc:
        log_event(
            "DECRYPTION_FAILURE", user_id=parent.id, entity="parent", entity_id=parent.id,
            metadata={"field": FieldKind.PHONE.value, "reason": exc.failure.value},
            severity="HIGH", result="FAILURE",
        )
        raise AuthError(ErrorKind.DEPENDENCY_FAILURE) from exc


def serialize_parent(parent: Parent) -> dict:
    """Public profile: phone decrypted in memory only, digest never included."""
    return {
        "id": parent.id,
        "email": parent.email,
        "fullName": parent.full_name,
        "phoneNumber": _decrypt_phone(parent),
        "createdAt": parent.created_at.isoformat() if parent.created_at else None,
    }


def register_parent(data) -> dict:
    valid, errors = validate_registration_data(data)
    if not valid:
        raise AuthError(ErrorKind.VALIDATION, "Registration validation failed", details=errors)

    email = normalize_email(data["email"])

    if Parent.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", entity="parent", metadata={"email": email},
                  severity="MEDIUM", result="FAILURE")
        raise AuthError(ErrorKind.IDENTITY_CONFLICT)

    try:
        phone_blob = encryption().encrypt(data["phoneNumber"].strip(), FieldKind.PHONE)
    except EncryptionError as exc:
        log_event("ENCRYPTION_FAILURE", entity="parent", metadata={"field": FieldKind.PHONE.value},
                  severity="HIGH", result="FAILURE")
        raise AuthError(ErrorKind.DEPENDENCY_FAILURE) from exc

    parent = Parent(
        email=email,
        full_name=data["fullName"].strip(),
        phone_number=phone_blob,
        password_hash=hash_password(data["password"]),
        failed_login_attempts=0,
    )
    db.session.add(parent)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.session.rollback()
        log_event("REGISTER_FAIL_EMAIL_EXISTS", entity="parent", metadata={"email": email},
                  severity="MEDIUM", result="FAILURE")
        raise AuthError(ErrorKind.IDENTITY_CONFLICT) from None

    pair = tokens().issue_pair(parent)
    log_event("PARENT_REGISTRATION", user_id=parent.id, entity="parent", entity_id=parent.id,
              severity="MEDIUM")

    return {"parent": serialize_parent(parent), **pair.to_dict()}


def admit_login(origin: str) -> GuardDecision:
    """Count one login attempt for ``origin``; raises RATE_LIMITED while it is locked out."""
    decision = bruteforce_guard().hit(origin)
    g.rate_limit = decision
    if not decision.allowed:
        log_event("LOGIN_RATE_LIMIT", entity="auth",
                  metadata={"origin": origin, "retry_after": decision.retry_after},
                  severity="HIGH", result="BLOCKED")
        raise AuthError(ErrorKind.RATE_LIMITED, retry_after=decision.retry_after)
    return decision


def login_parent(data, origin: str) -> dict:
    valid, errors = validate_login_data(data)
    if not valid:
        raise AuthError(ErrorKind.VALIDATION, "Login validation failed", details=errors)

    email = normalize_email(data["email"])
    password = data["password"]

    parent = Parent.query.filter_by(email=email).first()
    if parent is None:
        burn_password_check(password)
        log_event("LOGIN_FAILED", entity="auth", metadata={"email": email, "reason": "EMAIL_NOT_FOUND"},
                  severity="MEDIUM", result="FAILURE")
        raise AuthError(ErrorKind.INVALID_CREDENTIALS)

    locked, seconds_left = is_locked(parent)
    if locked:
        log_event("LOGIN_ACCOUNT_LOCKED", user_id=parent.id, entity="auth",
                  metadata={"email": email, "seconds_left": seconds_left},
                  severity="HIGH", result="BLOCKED")
        raise AuthError(ErrorKind.RATE_LIMITED, retry_after=seconds_left)

    if not verify_password(password, parent.password_hash):
        # durable counter first; the guard was already counted on admission
        fail_count, locked_now = register_failure(parent)
        log_event(
            "LOGIN_ACCOUNT_LOCKED" if locked_now else "LOGIN_FAILED",
            user_id=parent.id, entity="auth",
            metadata={"email": email, "reason": "INVALID_PASSWORD", "fail_count": fail_count},
            severity="HIGH" if locked_now or fail_count >= 3 else "MEDIUM",
            result="BLOCKED" if locked_now else "FAILURE",
        )
        raise AuthError(ErrorKind.INVALID_CREDENTIALS)

    reset_attempts(parent)
    bruteforce_guard().reset(origin)

    pair = tokens().issue_pair(parent)
    log_event("LOGIN_SUCCESS", user_id=parent.id, entity="auth")

    return {"parent": serialize_parent(parent), **pair.to_dict()}


def refresh_tokens(data) -> dict:
    refresh_token = data.get("refreshToken") if isinstance(data, dict) else None
    if not isinstance(refresh_token, str) or not refresh_token:
        raise AuthError(ErrorKind.VALIDATION, "Refresh token is required")

    try:
        pair = tokens().rotate(refresh_token)
    except TokenError as exc:
        log_event(
            "TOKEN_REFRESH_FAILED", entity="auth", metadata={"reason": exc.failure.value},
            severity="HIGH" if exc.failure == TokenFailure.REVOKED else "MEDIUM",
            result="FAILURE",
        )
        if exc.failure == TokenFailure.EXPIRED:
            raise AuthError(ErrorKind.TOKEN_EXPIRED, "Refresh token expired") from None
        raise AuthError(ErrorKind.TOKEN_INVALID, "Invalid refresh token") from None

    log_event("TOKEN_REFRESH_SUCCESS", user_id=pair.parent_id, entity="auth")
    return pair.to_dict()


def logout_parent(parent: Parent) -> dict:
    tokens().revoke(parent.id)
    reset_attempts(parent)
    log_event("LOGOUT_SUCCESS", user_id=parent.id, entity="auth")
    return {"message": "Logout successful", "parentId": parent.id}
