import logging
import time

import redis

LOGGER = logging.getLogger(__name__)


def create_redis_client(redis_url: str, timeout_seconds: float) -> redis.Redis:
    if not redis_url:
        raise RuntimeError("REDIS_URL is not configured")
    if "://" not in redis_url:
        # Bare host:port, as REDIS_ADDR is usually given.
        redis_url = f"redis://{redis_url}"
    return redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


def wait_for_redis(client: redis.Redis, attempts: int, delay_seconds: float) -> None:
    wait = delay_seconds
    for attempt in range(1, attempts + 1):
        try:
            client.ping()
            LOGGER.info("Connected to redis")
            return
        except redis.RedisError as exc:
            if attempt == attempts:
                raise RuntimeError(
                    f"Unable to connect to redis after {attempts} attempts"
                ) from exc
            LOGGER.warning(
                "Redis not ready (attempt %s/%s), retrying in %ss",
                attempt,
                attempts,
                wait,
            )
            time.sleep(wait)
            wait *= 2
