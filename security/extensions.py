import logging

from flask import current_app

from security.bruteforce import BruteForceGuard
from security.encryption import EncryptionService
from security.tokens import TokenService

logger = logging.getLogger(__name__)

ENCRYPTION = "satsblox.encryption"
TOKENS = "satsblox.tokens"
GUARD = "satsblox.bruteforce_guard"


def init_security(app):
    """Build the security services for ``app``. Raises if a secret is missing or invalid."""
    # EncryptionKeyError propagates: no confidentiality guarantee, no app
    app.extensions[ENCRYPTION] = EncryptionService.from_hex(app.config.get("ENCRYPTION_KEY"))
    logger.info("encryption key loaded (AES-256-GCM)")

    app.extensions[TOKENS] = TokenService.from_config(app.config)

    guard = BruteForceGuard.from_config(app.config)
    app.extensions[GUARD] = guard
    if app.config.get("RATE_LIMIT_SWEEPER_ENABLED", True):
        guard.start_sweeper(app.config.get("RATE_LIMIT_SWEEP_SECONDS", 600))


def encryption() -> EncryptionService:
    return current_app.extensions[ENCRYPTION]

def tokens() -> TokenService:
    return current_app.extensions[TOKENS]

def bruteforce_guard() -> BruteForceGuard:
    return current_app.extensions[GUARD]
