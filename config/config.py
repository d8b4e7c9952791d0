"""Settings shared by every environment; each value can come from the environment (.env)."""

import os


def _flag(name: str, default: str) -> bool:
    return bool(int(os.getenv(name, default)))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    # Separate keys let bearer tokens and QR payloads be rotated independently.
    AUTH_TOKEN_SECRET = os.getenv("AUTH_TOKEN_SECRET", "")
    SESSION_SIGNING_SECRET = os.getenv("SESSION_SIGNING_SECRET", "")

    AUTH_TOKEN_TTL_HOURS = int(os.getenv("AUTH_TOKEN_TTL_HOURS", "24"))
    SESSION_VALIDITY_MINUTES = int(os.getenv("SESSION_VALIDITY_MINUTES", "30"))
    LATE_THRESHOLD_MINUTES = int(os.getenv("LATE_THRESHOLD_MINUTES", "15"))
    CLOCK_SKEW_SECONDS = int(os.getenv("CLOCK_SKEW_SECONDS", "0"))
    ENFORCE_GEOFENCE = _flag("ENFORCE_GEOFENCE", "1")

    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = int(os.getenv("DB_PORT", "3306"))
    DB_USER = os.getenv("DB_USER", "root")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")
    DB_NAME = os.getenv("DB_NAME", "roll_call_db")
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    AUTO_INIT_DB = _flag("AUTO_INIT_DB", "0")
    AUTO_SEED_DB = _flag("AUTO_SEED_DB", "0")


def db_config(cfg=Config) -> dict:
    return {
        "host": cfg.DB_HOST,
        "port": cfg.DB_PORT,
        "user": cfg.DB_USER,
        "password": cfg.DB_PASSWORD,
        "database": cfg.DB_NAME,
        "pool_size": cfg.DB_POOL_SIZE,
        "timeout": cfg.DB_TIMEOUT_SECONDS,
    }
