import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=True)


_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    return default if value is None else value.strip().lower() in _TRUTHY


def normalize_database_url(raw_url: str) -> str:
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+psycopg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


@dataclass(frozen=True)
class Settings:
    database_url: str = normalize_database_url(os.getenv("DATABASE_URL", ""))
    redis_url: str = os.getenv("REDIS_URL", os.getenv("REDIS_ADDR", ""))
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "120"))
    otp_debug: bool = _env_flag("OTP_DEBUG", False)
    rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "3"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "600"))
    store_timeout_seconds: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "3"))
    startup_retry_attempts: int = int(os.getenv("STARTUP_RETRY_ATTEMPTS", "8"))
    startup_retry_delay_seconds: float = float(
        os.getenv("STARTUP_RETRY_DELAY_SECONDS", "1")
    )
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
    shutdown_grace_seconds: int = int(os.getenv("SHUTDOWN_GRACE_SECONDS", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def validate(self) -> None:
        required = {
            "DATABASE_URL": self.database_url,
            "REDIS_URL": self.redis_url,
            "JWT_SECRET": self.jwt_secret,
        }
        for name, value in required.items():
            if not value:
                raise RuntimeError(f"{name} is not configured")
        if self.otp_length < 1:
            raise RuntimeError("OTP_LENGTH must be positive")
        if self.otp_ttl_seconds < 1:
            raise RuntimeError("OTP_TTL_SECONDS must be at least 1")
        if self.rate_limit_max < 1 or self.rate_limit_window_seconds < 1:
            raise RuntimeError("Rate limit settings must be positive")


settings = Settings()
