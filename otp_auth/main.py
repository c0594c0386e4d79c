from contextlib import asynccontextmanager
import logging

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine

from otp_auth.cache import create_redis_client, wait_for_redis
from otp_auth.config import Settings, settings as default_settings
from otp_auth.database import create_db_engine, create_session_factory, init_db, wait_for_database
from otp_auth.errors import InternalError, OtpAuthError
from otp_auth.routers import auth, health, users
from otp_auth.services.auth import AuthService
from otp_auth.services.otp import OtpStore
from otp_auth.services.rate_limit import RateLimiter
from otp_auth.services.tokens import TokenIssuer
from otp_auth.services.users import UserStore

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    redis_client: redis.Redis | None = None,
    engine: Engine | None = None,
) -> FastAPI:
    settings = settings or default_settings
    settings.validate()

    if redis_client is None:
        redis_client = create_redis_client(settings.redis_url, settings.store_timeout_seconds)
    if engine is None:
        engine = create_db_engine(settings.database_url, settings.store_timeout_seconds)

    def startup() -> None:
        wait_for_redis(
            redis_client,
            settings.startup_retry_attempts,
            settings.startup_retry_delay_seconds,
        )
        wait_for_database(
            engine,
            settings.startup_retry_attempts,
            settings.startup_retry_delay_seconds,
        )
        init_db(engine)
        LOGGER.info("OTP auth service started")

    def shutdown() -> None:
        LOGGER.info("Shutting down, releasing store connections")
        redis_client.close()
        engine.dispose()

    # Startup sleeps between connection retries, so it runs off the event loop.
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(startup)
        yield
        await run_in_threadpool(shutdown)

    app = FastAPI(title="OTP Auth API", lifespan=lifespan)

    user_store = UserStore(create_session_factory(engine))
    token_issuer = TokenIssuer(settings.jwt_secret)
    app.state.settings = settings
    app.state.user_store = user_store
    app.state.token_issuer = token_issuer
    app.state.auth_service = AuthService(
        settings=settings,
        otp_store=OtpStore(redis_client, settings.otp_ttl_seconds, settings.otp_length),
        rate_limiter=RateLimiter(redis_client),
        user_store=user_store,
        token_issuer=token_issuer,
    )

    @app.exception_handler(OtpAuthError)
    async def _otp_auth_error_handler(request: Request, exc: OtpAuthError):
        if isinstance(exc, InternalError):
            LOGGER.error(
                "Internal error on %s %s: %s",
                request.method,
                request.url.path,
                exc,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request", "errors": _error_summary(exc)},
        )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    return app


def _error_summary(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
