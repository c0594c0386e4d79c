from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets

import redis

from otp_auth.errors import GenerationError, InternalError

LOGGER = logging.getLogger(__name__)

# Compare and delete in one round trip so two verifiers cannot both consume
# the same code.
_VERIFY_AND_DELETE = """
local stored = redis.call('GET', KEYS[1])
if not stored then
    return 0
end
if stored ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""


@dataclass(frozen=True)
class OtpRecord:
    code: str
    created_at: datetime
    expires_at: datetime


def generate_code(length: int = 6) -> str:
    try:
        value = secrets.randbelow(10**length)
    except (NotImplementedError, OSError) as exc:
        raise GenerationError("Entropy source unavailable") from exc
    return str(value).zfill(length)


def _otp_key(phone: str) -> str:
    return f"otp:{phone}"


class OtpStore:
    def __init__(self, client: redis.Redis, ttl_seconds: int, code_length: int = 6) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._verify_script = client.register_script(_VERIFY_AND_DELETE)

    def request_otp(self, phone: str) -> OtpRecord:
        now = datetime.now(timezone.utc)
        record = OtpRecord(
            code=generate_code(self._code_length),
            created_at=now,
            expires_at=now + timedelta(seconds=self._ttl_seconds),
        )
        self.save(phone, record.code)
        return record

    def save(self, phone: str, code: str, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self._client.set(_otp_key(phone), code, px=max(1, int(ttl * 1000)))
        except redis.RedisError as exc:
            LOGGER.error("Failed to save OTP for phone=%s: %s", phone, exc)
            raise InternalError("OTP store unavailable") from exc

    def verify_and_consume(self, phone: str, code: str) -> bool:
        try:
            result = self._verify_script(keys=[_otp_key(phone)], args=[code])
        except redis.RedisError as exc:
            LOGGER.error("Failed to verify OTP for phone=%s: %s", phone, exc)
            raise InternalError("OTP store unavailable") from exc
        return int(result) == 1
