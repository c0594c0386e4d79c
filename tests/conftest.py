import fakeredis
import pytest
from fastapi.testclient import TestClient

from otp_auth.config import Settings
from otp_auth.database import create_db_engine, create_session_factory, init_db
from otp_auth.main import create_app
from otp_auth.services.auth import AuthService
from otp_auth.services.otp import OtpStore
from otp_auth.services.rate_limit import RateLimiter
from otp_auth.services.tokens import TokenIssuer
from otp_auth.services.users import UserStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'otp_auth.db'}",
        redis_url="redis://localhost:6379/0",
        jwt_secret="test-secret",
        otp_length=6,
        otp_ttl_seconds=120,
        otp_debug=True,
        rate_limit_max=3,
        rate_limit_window_seconds=600,
        startup_retry_attempts=1,
        startup_retry_delay_seconds=0,
    )


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url, settings.store_timeout_seconds)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(create_session_factory(engine))


@pytest.fixture
def token_issuer(settings) -> TokenIssuer:
    return TokenIssuer(settings.jwt_secret)


@pytest.fixture
def otp_store(settings, redis_client) -> OtpStore:
    return OtpStore(redis_client, settings.otp_ttl_seconds, settings.otp_length)


@pytest.fixture
def auth_service(settings, redis_client, otp_store, user_store, token_issuer) -> AuthService:
    return AuthService(
        settings=settings,
        otp_store=otp_store,
        rate_limiter=RateLimiter(redis_client),
        user_store=user_store,
        token_issuer=token_issuer,
    )


@pytest.fixture
def client(settings, redis_client, engine):
    app = create_app(settings, redis_client=redis_client, engine=engine)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    def _login(phone: str) -> dict:
        response = client.post("/otp/request", json={"phone": phone})
        assert response.status_code == 200, response.text
        code = response.json()["otp"]
        response = client.post("/otp/verify", json={"phone": phone, "code": code})
        assert response.status_code == 200, response.text
        return response.json()

    return _login
