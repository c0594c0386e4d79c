import logging
import time
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from otp_auth.config import normalize_database_url

LOGGER = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str, timeout_seconds: float) -> Engine:
    if not database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    database_url = normalize_database_url(database_url)
    engine_options = {}
    if database_url.startswith("postgresql"):
        timeout_ms = int(timeout_seconds * 1000)
        engine_options = {
            "pool_timeout": timeout_seconds,
            "connect_args": {
                "connect_timeout": max(1, int(timeout_seconds)),
                "options": f"-c statement_timeout={timeout_ms}",
            },
        }
    return create_engine(database_url, pool_pre_ping=True, **engine_options)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    from otp_auth.models import user as _user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def wait_for_database(engine: Engine, attempts: int, delay_seconds: float) -> None:
    wait = delay_seconds
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            LOGGER.info("Connected to database")
            return
        except OperationalError as exc:
            if attempt == attempts:
                raise RuntimeError(
                    f"Unable to connect to database after {attempts} attempts"
                ) from exc
            LOGGER.warning(
                "Database not ready (attempt %s/%s), retrying in %ss",
                attempt,
                attempts,
                wait,
            )
            time.sleep(wait)
            wait *= 2


@contextmanager
def session_scope(session_factory: sessionmaker):
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
