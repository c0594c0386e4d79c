from datetime import datetime, timedelta, timezone
import logging

import jwt

from otp_auth.errors import AuthenticationError, InternalError

LOGGER = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)


class TokenError(AuthenticationError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Signs and checks stateless bearer tokens carrying a user id.

    The secret is fixed for the life of the issuer; there is no revocation,
    so a token stays valid until its ``exp``.
    """

    def __init__(self, secret: str, lifetime: timedelta = TOKEN_LIFETIME) -> None:
        if not secret:
            raise ValueError("JWT secret is not configured")
        self._secret = secret
        self._lifetime = lifetime

    @property
    def lifetime_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self, user_id: int) -> str:
        now = _utcnow()
        expires_at = now + self._lifetime
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=SIGNING_ALGORITHM)
        except jwt.PyJWTError as exc:
            LOGGER.error("Failed to sign token for user_id=%s: %s", user_id, exc)
            raise InternalError("Token signing failed") from exc

    def validate(self, token: str) -> int:
        if not token:
            raise TokenError("Token is missing")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[SIGNING_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenError("Invalid token") from exc
        subject = str(payload["sub"])
        if not subject.isdigit():
            raise TokenError("Invalid token subject")
        return int(subject)
