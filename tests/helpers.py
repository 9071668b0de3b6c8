"""Small helpers shared by the test modules."""

import time

from security.tokens import TokenService


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def stale_token_service(app, seconds_ago=3600):
    """A TokenService with the app's secret whose clock runs ``seconds_ago`` behind."""
    return TokenService(
        secret=app.config["JWT_SECRET"],
        issuer=app.config["JWT_ISSUER"],
        access_ttl_seconds=60,
        refresh_ttl_seconds=60,
        clock=lambda: time.time() - seconds_ago,
    )
