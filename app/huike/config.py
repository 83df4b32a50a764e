import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    captcha_enable: bool
    captcha_token_max_age: int

    access_token_ttl: int
    refresh_token_ttl: int

    cache_backend: str
    redis_url: str

    storage_backend: str
    storage_config_id: int
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str
    s3_domain: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    return int(raw) if raw else default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///huike.db"),
        captcha_enable=_getenv_bool("CAPTCHA_ENABLE", True),
        captcha_token_max_age=_getenv_int("CAPTCHA_TOKEN_MAX_AGE", 120),
        access_token_ttl=_getenv_int("ACCESS_TOKEN_TTL", 30 * 60),
        refresh_token_ttl=_getenv_int("REFRESH_TOKEN_TTL", 30 * 24 * 60 * 60),
        cache_backend=_getenv("CACHE_BACKEND", "memory"),
        redis_url=_getenv("REDIS_URL", "redis://localhost:6379/0"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_config_id=_getenv_int("STORAGE_CONFIG_ID", 1),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "us-east-1"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        s3_domain=_getenv("S3_DOMAIN", ""),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "CAPTCHA_ENABLE": s.captcha_enable,
        "CAPTCHA_TOKEN_MAX_AGE": s.captcha_token_max_age,
        "ACCESS_TOKEN_TTL": s.access_token_ttl,
        "REFRESH_TOKEN_TTL": s.refresh_token_ttl,
        "CACHE_BACKEND": s.cache_backend,
        "REDIS_URL": s.redis_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_CONFIG_ID": s.storage_config_id,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "S3_DOMAIN": s.s3_domain,
        # file upload limits (25MB)
        "MAX_CONTENT_LENGTH": 25 * 1024 * 1024,
    }
