import logging

import redis

from otp_auth.errors import InternalError

LOGGER = logging.getLogger(__name__)

# INCR and arming the window expiry run as one script, so a counter can never
# be left without a TTL. A key found without one is re-armed as well.
_INCR_AND_ARM = """
local current = redis.call('INCR', KEYS[1])
if current == 1 or redis.call('PTTL', KEYS[1]) == -1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
return current
"""


def _rate_key(phone: str) -> str:
    return f"rl:{phone}"


class RateLimiter:
    """Fixed-reset window counter per phone.

    The first request of a dormant period opens a window of
    ``window_seconds``; every request inside it, accepted or not, increments
    the counter. The counter disappears when the window expires.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._script = client.register_script(_INCR_AND_ARM)

    def allow(self, phone: str, max_requests: int, window_seconds: float) -> bool:
        window_ms = max(1, int(window_seconds * 1000))
        try:
            count = int(self._script(keys=[_rate_key(phone)], args=[window_ms]))
        except redis.RedisError as exc:
            LOGGER.error("Rate limiter unavailable for phone=%s: %s", phone, exc)
            raise InternalError("Rate limiter unavailable") from exc
        if count > max_requests:
            LOGGER.info(
                "OTP request rate limited phone=%s count=%s max=%s",
                phone,
                count,
                max_requests,
            )
            return False
        return True
