import bcrypt
from flask import current_app, has_app_context

DEFAULT_ROUNDS = 12

# Hash of a throwaway value; checked against when the account does not exist
# so that unknown emails cost the same bcrypt work as wrong passwords.
_DUMMY_HASHES = {}


def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes
    salt = bcrypt.gensalt(rounds=_rounds())
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        # malformed stored hash or password over bcrypt's 72-byte limit
        return False

def burn_password_check(plain_password: str) -> bool:
    """Spend one bcrypt verification for an account that does not exist. Always False."""
    rounds = _rounds()
    dummy = _DUMMY_HASHES.get(rounds)
    if dummy is None:
        dummy = bcrypt.hashpw(b"satsblox-timing-equalizer", bcrypt.gensalt(rounds=rounds)).decode("utf-8")
        _DUMMY_HASHES[rounds] = dummy
    verify_password(plain_password or "x", dummy)
    return False
