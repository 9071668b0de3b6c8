from functools import wraps
from flask import g, jsonify

from security.errors import AuthError, ErrorKind

def require_roles(*role_names: str):
    """
    Usage: @require_roles("PARENT")
    Must sit below @login_required so the token claims are loaded.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            claims = getattr(g, "token_claims", None)
            if claims is None:
                raise AuthError(ErrorKind.TOKEN_INVALID, "Authentication required")

            if claims.get("role") not in set(role_names):
                return jsonify(error="FORBIDDEN", message="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
