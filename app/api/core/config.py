import os
from pathlib import Path

from decouple import Config, RepositoryEnv
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = next(p for p in Path(__file__).resolve().parents if (p / "main.py").exists())
BASE_DIR = PROJECT_ROOT

# Determine which env file to load
env_file = os.getenv("ENV_FILE", ".env")
env_path = PROJECT_ROOT / env_file

# Only use RepositoryEnv if the env file exists
if env_path.exists():
    config = Config(RepositoryEnv(env_path))
else:
    # fallback: read directly from os.environ using decouple's AutoConfig
    from decouple import AutoConfig

    config = AutoConfig(search_path=None)

DEFAULT_JWT_SECRET = "your-super-secret-jwt-key-change-in-production"


class Settings(BaseSettings):
    # App general
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
    APP_NAME: str = config("APP_NAME", default="Waitlist")
    APP_TAGLINE: str = config("APP_TAGLINE", default="Find your dream job 10x faster")
    APP_VERSION: str = config("APP_VERSION", default="1.0.0")
    ENVIRONMENT: str = config("ENVIRONMENT", default="dev")
    APP_PORT: int = config("APP_PORT", default=8000, cast=int)
    PUBLIC_BASE_URL: str = config("PUBLIC_BASE_URL", default="http://localhost:8000")
    DEV_URL: str = config("DEV_URL", default="http://localhost:3000")

    # Database
    DB_TYPE: str = config("DB_TYPE", default="sqlite")
    DB_HOST: str = config("DB_HOST", default="localhost")
    DB_PORT: int = config("DB_PORT", default=5432, cast=int)
    DB_USER: str = config("DB_USER", default="user")
    DB_PASS: str = config("DB_PASS", default="password")
    DB_NAME: str = config("DB_NAME", default="waitlist")
    DATABASE_URL: str = config("DATABASE_URL", default="")
    SQL_ECHO: bool = config("SQL_ECHO", default=False, cast=bool)

    # Redis (shared rate limit backend)
    REDIS_URL: str = config("REDIS_URL", default="redis://localhost:6379/0")

    # Session tokens
    JWT_SECRET: str = config("JWT_SECRET", default=DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = config("JWT_ALGORITHM", default="HS256")
    SESSION_TOKEN_EXPIRE_DAYS: int = config("SESSION_TOKEN_EXPIRE_DAYS", default=30, cast=int)
    AUTH_COOKIE_NAME: str = config("AUTH_COOKIE_NAME", default="auth_token")

    # Welcome email (SMTP relay of the email provider, the password is the provider key)
    MAIL_USERNAME: str = config("MAIL_USERNAME", default="resend")
    MAIL_PASSWORD: str = config("MAIL_PASSWORD", default="")
    EMAIL: str = config("EMAIL", default="Waitlist <onboarding@resend.dev>")
    SMTP_SERVER: str = config("SMTP_SERVER", default="smtp.resend.com")
    SMTP_PORT: int = config("SMTP_PORT", default=587, cast=int)

    # Email validation
    EMAIL_MX_CHECK_ENABLED: bool = config("EMAIL_MX_CHECK_ENABLED", default=True, cast=bool)
    EMAIL_DNS_TIMEOUT: float = config("EMAIL_DNS_TIMEOUT", default=5.0, cast=float)
    ZEROBOUNCE_API_KEY: str = config("ZEROBOUNCE_API_KEY", default="")
    ZEROBOUNCE_API_URL: str = config("ZEROBOUNCE_API_URL", default="https://api.zerobounce.net/v2")
    ZEROBOUNCE_TIMEOUT: float = config("ZEROBOUNCE_TIMEOUT", default=10.0, cast=float)
    # "allow" or "reject"
    DELIVERABILITY_ON_PROVIDER_ERROR: str = config(
        "DELIVERABILITY_ON_PROVIDER_ERROR", default="allow"
    )

    # Signup rate limiting
    RATE_LIMIT_BACKEND: str = config("RATE_LIMIT_BACKEND", default="memory")
    RATE_LIMIT_MAX_ATTEMPTS: int = config("RATE_LIMIT_MAX_ATTEMPTS", default=5, cast=int)
    RATE_LIMIT_WINDOW_SECONDS: int = config("RATE_LIMIT_WINDOW_SECONDS", default=3600, cast=int)
    RATE_LIMIT_BLOCK_SECONDS: int = config("RATE_LIMIT_BLOCK_SECONDS", default=3600, cast=int)

    # Operator endpoints; empty disables them
    ADMIN_API_KEY: str = config("ADMIN_API_KEY", default="")

    # Admission
    WAITLIST_SERIALIZE_ADMISSIONS: bool = config(
        "WAITLIST_SERIALIZE_ADMISSIONS", default=False, cast=bool
    )
    INVITE_CODE_LENGTH: int = config("INVITE_CODE_LENGTH", default=8, cast=int)
    INVITE_CODE_MAX_ATTEMPTS: int = config("INVITE_CODE_MAX_ATTEMPTS", default=5, cast=int)
    LEADERBOARD_SIZE: int = config("LEADERBOARD_SIZE", default=10, cast=int)

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def CORS_ORIGINS(self) -> list[str]:
        return [self.PUBLIC_BASE_URL, self.DEV_URL]

    model_config = SettingsConfigDict(extra="allow")


settings = Settings()
