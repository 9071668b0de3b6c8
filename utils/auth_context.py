from functools import wraps
from flask import g, request

from models import db
from models.parent import Parent
from security.errors import AuthError, ErrorKind, TokenError, TokenFailure
from security.extensions import tokens


def _bearer_token():
    """Returns the token, None when no header was sent, or "" when the header is malformed."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return ""
    return parts[1]

def load_current_user():
    g.user = None
    g.token_claims = None
    g.auth_error = None

    token = _bearer_token()
    if token is None:
        return
    if token == "":
        g.auth_error = ErrorKind.TOKEN_INVALID
        return

    try:
        claims = tokens().verify_access(token)
    except TokenError as exc:
        g.auth_error = ErrorKind.TOKEN_EXPIRED if exc.failure == TokenFailure.EXPIRED else ErrorKind.TOKEN_INVALID
        return

    try:
        parent = db.session.get(Parent, int(claims["sub"]))
    except ValueError:
        parent = None
    if parent is None:
        g.auth_error = ErrorKind.TOKEN_INVALID
        return

    g.token_claims = claims
    g.user = parent

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            kind = getattr(g, "auth_error", None)
            if kind is None:
                raise AuthError(ErrorKind.TOKEN_INVALID, "Authentication required")
            raise AuthError(kind)
        return fn(*args, **kwargs)
    return wrapper
