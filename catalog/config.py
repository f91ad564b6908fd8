from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings


class DatabaseSettings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./catalog.db"
    DATABASE_ECHO: bool = False


class RedisSettings(BaseSettings):
    REDIS_HOST: Optional[str] = None  # unset disables the token blacklist
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None


class AuthSettings(BaseSettings):
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12

    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "adminpassword"
    ADMIN_NAME: str = "Admin"


class RatingSettings(BaseSettings):
    RATING_MAX_RETRIES: int = 3
    ALLOW_RATING_UPDATE: bool = True


class AppSettings(DatabaseSettings, RedisSettings, AuthSettings, RatingSettings):
    ALLOWED_ORIGINS: str = ""

    class Config:
        env_file = "./.env"
        extra = "allow"


class LogConfig(BaseSettings):
    LOGGER_NAME: str = "catalog"
    LOG_FORMAT: str = "%(levelprefix)s | %(asctime)s | %(name)s | %(message)s"
    LOG_LEVEL: str = "INFO"

    version: int = 1
    disable_existing_loggers: bool = False
    formatters: Dict[str, Any] = {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": LOG_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    }
    handlers: Dict[str, Any] = {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    }
    loggers: Dict[str, Any] = {
        LOGGER_NAME: {"handlers": ["default"], "level": LOG_LEVEL},
    }


config = AppSettings()
