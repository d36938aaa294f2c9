"""
Environment-aware configuration.
Signing secrets have no defaults: a deployment without them must fail loudly
instead of signing tokens with a guessable key.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    # Reverse proxies in front of the app; X-Forwarded-For is ignored while this is 0
    TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///ats.db")
    SQL_ECHO = _env_bool("SQL_ECHO")

    # JWT: two independent secrets and lifetimes ("15m", "24h", "30d", ...)
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    ACCESS_TOKEN_EXPIRY = os.getenv("ACCESS_TOKEN_EXPIRY", "24h")
    REFRESH_TOKEN_EXPIRY = os.getenv("REFRESH_TOKEN_EXPIRY", "30d")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ROTATE_REFRESH_TOKENS = _env_bool("ROTATE_REFRESH_TOKENS")

    # Argon2 work factor; raise as hardware improves (old hashes get upgraded on login)
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))
    PASSWORD_HASH_MEMORY_COST = int(os.getenv("PASSWORD_HASH_MEMORY_COST", "65536"))
    PASSWORD_HASH_PARALLELISM = int(os.getenv("PASSWORD_HASH_PARALLELISM", "4"))
    PASSWORD_RESET_EXPIRY = os.getenv("PASSWORD_RESET_EXPIRY", "30m")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class ProductionConfig(BaseConfig):
    DEBUG = False
    DATABASE_URL = os.getenv("DATABASE_URL")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef0123456789"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-0123456789abcdef012345678"
    ACCESS_TOKEN_EXPIRY = "15m"
    REFRESH_TOKEN_EXPIRY = "7d"
    ROTATE_REFRESH_TOKENS = False
    # cheap hashes keep the suite fast
    PASSWORD_HASH_TIME_COST = 1
    PASSWORD_HASH_MEMORY_COST = 8
    PASSWORD_HASH_PARALLELISM = 1


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
