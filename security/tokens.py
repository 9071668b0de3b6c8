"""
JWT access/refresh token issuance, verification and rotation.

Access tokens are verified statelessly. Refresh tokens carry a ``jti`` that
is mirrored on the account (``Parent.refresh_token_jti``); only the token
whose ``jti`` matches may be rotated, and rotation swaps the stored ``jti``
with a single conditional UPDATE so two concurrent rotations of the same
token cannot both win.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

import jwt
from sqlalchemy import update

from models import db
from models.parent import Parent
from security.errors import TokenError, TokenFailure

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"
ROLE_PARENT = "PARENT"
MIN_SECRET_LENGTH = 32

_REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti", "typ", "iss"]


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_jti: str
    expires_in: int
    parent_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
        }


class TokenService:
    def __init__(
        self,
        secret: str,
        issuer: str = "satsblox-api",
        access_ttl_seconds: int = 7 * 60,
        refresh_ttl_seconds: int = 7 * 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secret must be at least {MIN_SECRET_LENGTH} characters")
        self._secret = secret
        self.issuer = issuer
        self.access_ttl = int(access_ttl_seconds)
        self.refresh_ttl = int(refresh_ttl_seconds)
        self._clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenService":
        return cls(
            secret=config.get("JWT_SECRET"),
            issuer=config.get("JWT_ISSUER", "satsblox-api"),
            access_ttl_seconds=config.get("ACCESS_TOKEN_TTL_SECONDS", 7 * 60),
            refresh_ttl_seconds=config.get("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60),
        )

    def _sign(self, parent: Parent, typ: str, ttl: int, jti: str) -> str:
        now = int(self._clock())
        payload = {
            "iss": self.issuer,
            "sub": str(parent.id),
            "email": parent.email,
            "role": ROLE_PARENT,
            "typ": typ,
            "jti": jti,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def _build_pair(self, parent: Parent) -> TokenPair:
        refresh_jti = secrets.token_urlsafe(24)
        return TokenPair(
            access_token=self._sign(parent, ACCESS, self.access_ttl, secrets.token_urlsafe(16)),
            refresh_token=self._sign(parent, REFRESH, self.refresh_ttl, refresh_jti),
            refresh_jti=refresh_jti,
            expires_in=self.access_ttl,
            parent_id=parent.id,
        )

    def _decode(self, token: str) -> Dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise TokenError(TokenFailure.MALFORMED, "empty token")
        return jwt.decode(
            token,
            self._secret,
            algorithms=[ALGORITHM],
            issuer=self.issuer,
            options={"require": _REQUIRED_CLAIMS},
        )

    def issue_pair(self, parent: Parent) -> TokenPair:
        """Issue a new pair and make its refresh token the account's only active one."""
        pair = self._build_pair(parent)
        parent.refresh_token_jti = pair.refresh_jti
        db.session.commit()
        return pair

    def verify_access(self, token: str) -> Dict[str, Any]:
        try:
            claims = self._decode(token)
        except jwt.ExpiredSignatureError:
            raise TokenError(TokenFailure.EXPIRED) from None
        except jwt.InvalidSignatureError:
            raise TokenError(TokenFailure.INVALID_SIGNATURE) from None
        except jwt.InvalidTokenError as exc:
            raise TokenError(TokenFailure.MALFORMED, type(exc).__name__) from None

        if claims.get("typ") != ACCESS:
            # refresh tokens are never accepted as bearer credentials
            raise TokenError(TokenFailure.MALFORMED, "not an access token")
        return claims

    def rotate(self, refresh_token: str) -> TokenPair:
        try:
            claims = self._decode(refresh_token)
        except jwt.ExpiredSignatureError:
            raise TokenError(TokenFailure.EXPIRED) from None
        except (jwt.InvalidTokenError, TokenError) as exc:
            raise TokenError(TokenFailure.INVALID, type(exc).__name__) from None

        if claims.get("typ") != REFRESH:
            raise TokenError(TokenFailure.INVALID, "not a refresh token")

        try:
            parent_id = int(claims["sub"])
        except (TypeError, ValueError):
            raise TokenError(TokenFailure.INVALID, "bad subject") from None

        parent = db.session.get(Parent, parent_id)
        if parent is None:
            raise TokenError(TokenFailure.ACCOUNT_NOT_FOUND)

        pair = self._build_pair(parent)

        # compare-and-swap on the stored jti
        result = db.session.execute(
            update(Parent)
            .where(Parent.id == parent_id, Parent.refresh_token_jti == claims["jti"])
            .values(refresh_token_jti=pair.refresh_jti)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.warning("refresh token reuse or revoked token parent_id=%s", parent_id)
            raise TokenError(TokenFailure.REVOKED)

        db.session.commit()
        return pair

    def revoke(self, parent_id: int) -> bool:
        result = db.session.execute(
            update(Parent)
            .where(Parent.id == parent_id)
            .values(refresh_token_jti=None)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount == 1
