from dataclasses import dataclass
import logging

from otp_auth.config import Settings
from otp_auth.errors import AuthenticationError, RateLimitedError, ValidationError
from otp_auth.models.user import UserEntry
from otp_auth.services.otp import OtpRecord, OtpStore
from otp_auth.services.rate_limit import RateLimiter
from otp_auth.services.tokens import TokenError, TokenIssuer
from otp_auth.services.users import UserStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedLogin:
    token: str
    user: UserEntry
    created: bool


def _require(value: str | None, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{name} is required")
    return cleaned


def _require_code(value: str | None) -> str:
    # Codes are compared verbatim; whitespace is not trimmed away.
    if not value or not value.strip():
        raise ValidationError("otp is required")
    return value


class AuthService:
    def __init__(
        self,
        settings: Settings,
        otp_store: OtpStore,
        rate_limiter: RateLimiter,
        user_store: UserStore,
        token_issuer: TokenIssuer,
    ) -> None:
        self._settings = settings
        self._otp_store = otp_store
        self._rate_limiter = rate_limiter
        self._user_store = user_store
        self._token_issuer = token_issuer

    def request_code(self, phone: str) -> OtpRecord:
        phone = _require(phone, "phone")
        allowed = self._rate_limiter.allow(
            phone,
            self._settings.rate_limit_max,
            self._settings.rate_limit_window_seconds,
        )
        if not allowed:
            raise RateLimitedError("Rate limit exceeded")
        record = self._otp_store.request_otp(phone)
        LOGGER.info("Generated OTP for phone=%s", phone)
        if self._settings.otp_debug:
            LOGGER.debug("OTP for phone=%s is %s", phone, record.code)
        return record

    def verify_code(self, phone: str, code: str) -> VerifiedLogin:
        phone = _require(phone, "phone")
        code = _require_code(code)
        if not self._otp_store.verify_and_consume(phone, code):
            # Wrong and expired codes are deliberately reported the same way.
            raise AuthenticationError("Invalid or expired OTP")
        user, created = self._user_store.ensure_user_for_phone(phone)
        if created:
            LOGGER.info("Registered user id=%s phone=%s", user.id, phone)
        token = self._token_issuer.issue(user.id)
        return VerifiedLogin(token=token, user=user, created=created)

    def authenticate(self, authorization: str | None) -> int:
        if not authorization:
            raise TokenError("Missing Authorization header")
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise TokenError("Invalid Authorization header")
        return self._token_issuer.validate(token)
