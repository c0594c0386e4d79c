import asyncio
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from otp_auth import main
from otp_auth.cache import create_redis_client, wait_for_redis
from otp_auth.config import _env_flag, normalize_database_url
from otp_auth.errors import AuthenticationError, InternalError, ValidationError
from otp_auth.services.auth import AuthService
from otp_auth.services.otp import OtpStore
from otp_auth.services.rate_limit import RateLimiter


def test_settings_require_secret(settings):
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        replace(settings, jwt_secret="").validate()


def test_settings_require_redis(settings):
    with pytest.raises(RuntimeError, match="REDIS_URL"):
        replace(settings, redis_url="").validate()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db/otp", "postgresql+psycopg://u:p@db/otp"),
        ("postgresql://u:p@db/otp", "postgresql+psycopg://u:p@db/otp"),
        ("sqlite:///otp.db", "sqlite:///otp.db"),
    ],
)
def test_database_url_normalisation(raw, expected):
    assert normalize_database_url(raw) == expected


def test_bare_redis_address_is_accepted():
    client = create_redis_client("localhost:6379", 1.0)
    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["host"] == "localhost"
    assert kwargs["port"] == 6379
    assert kwargs["socket_timeout"] == 1.0


def test_wait_for_redis_gives_up(redis_client, redis_server, monkeypatch):
    sleeps = []
    monkeypatch.setattr("otp_auth.cache.time.sleep", sleeps.append)
    redis_server.connected = False

    with pytest.raises(RuntimeError, match="3 attempts"):
        wait_for_redis(redis_client, attempts=3, delay_seconds=1)
    assert sleeps == [1, 2]


def test_authenticate_parses_bearer_header(settings, redis_client, user_store, token_issuer):
    service = AuthService(
        settings=settings,
        otp_store=OtpStore(redis_client, settings.otp_ttl_seconds),
        rate_limiter=RateLimiter(redis_client),
        user_store=user_store,
        token_issuer=token_issuer,
    )
    token = token_issuer.issue(5)

    assert service.authenticate(f"Bearer {token}") == 5
    with pytest.raises(AuthenticationError):
        service.authenticate(None)
    with pytest.raises(AuthenticationError):
        service.authenticate(token)
    with pytest.raises(ValidationError):
        service.request_code("")


@pytest.mark.parametrize("ttl", [0, -5])
def test_settings_reject_non_positive_code_ttl(settings, ttl):
    with pytest.raises(RuntimeError, match="OTP_TTL_SECONDS"):
        replace(settings, otp_ttl_seconds=ttl).validate()


def test_store_checks_run_off_the_event_loop(settings, redis_client, engine, monkeypatch):
    seen = []

    def _record(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")

    monkeypatch.setattr(main, "wait_for_redis", _record)
    monkeypatch.setattr(main, "wait_for_database", _record)

    with TestClient(main.create_app(settings, redis_client=redis_client, engine=engine)):
        pass

    assert seen == ["worker thread", "worker thread"]


def test_large_offsets_are_wrapped_as_internal_errors(user_store):
    with pytest.raises(InternalError):
        user_store.list_users("", 10**25, 10)


@pytest.mark.parametrize(
    "raw, expected",
    [("1", True), (" Yes ", True), ("on", True), ("0", False), ("off", False), ("", False)],
)
def test_env_flag_parsing(monkeypatch, raw, expected):
    monkeypatch.setenv("OTP_DEBUG", raw)
    assert _env_flag("OTP_DEBUG") is expected


def test_env_flag_default_when_unset(monkeypatch):
    monkeypatch.delenv("OTP_DEBUG", raising=False)
    assert _env_flag("OTP_DEBUG", True) is True
