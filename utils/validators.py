import re
from typing import Dict, Tuple

from security.password_policy import validate_password

_EMAIL = re.compile(r"^[^@\s<>()\[\]\\,;:\"]+@([A-Za-z0-9-]+\.)+[A-Za-z]{2,}$")
# Kenyan mobile (M-Pesa): +2547XXXXXXXX
_KENYAN_PHONE = re.compile(r"^\+2547\d{8}$")


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and len(email) <= 255 and bool(_EMAIL.match(email))


def _validate_full_name(full_name):
    if not isinstance(full_name, str) or not full_name.strip():
        return "Full name is required and must be a string"
    trimmed = full_name.strip()
    if len(trimmed) < 2:
        return "Full name must be at least 2 characters long"
    if len(trimmed) > 255:
        return "Full name must not exceed 255 characters"
    return None


def _validate_phone(phone):
    if not isinstance(phone, str) or not phone.strip():
        return "Phone number is required and must be a string"
    if not _KENYAN_PHONE.match(phone.strip()):
        return "Phone number must be in Kenyan format: +2547XXXXXXXX (e.g., +254700123456)"
    return None


def validate_registration_data(data) -> Tuple[bool, Dict[str, str]]:
    if not isinstance(data, dict) or not data:
        return False, {"general": "Request body is required"}

    errors = {}

    name_error = _validate_full_name(data.get("fullName"))
    if name_error:
        errors["fullName"] = name_error

    email = data.get("email")
    if not isinstance(email, str) or not email.strip():
        errors["email"] = "Email is required and must be a string"
    elif not is_valid_email(normalize_email(email)):
        errors["email"] = "Invalid email format"

    ok, pw_errors = validate_password(data.get("password"))
    if not ok:
        errors["password"] = pw_errors[0]

    phone_error = _validate_phone(data.get("phoneNumber"))
    if phone_error:
        errors["phoneNumber"] = phone_error

    return len(errors) == 0, errors


def validate_login_data(data) -> Tuple[bool, Dict[str, str]]:
    if not isinstance(data, dict) or not data:
        return False, {"general": "Request body is required"}

    errors = {}
    email = data.get("email")
    if not isinstance(email, str) or not is_valid_email(normalize_email(email)):
        errors["email"] = "Invalid email format"
    if not isinstance(data.get("password"), str) or not data.get("password"):
        errors["password"] = "Password is required"

    return len(errors) == 0, errors
