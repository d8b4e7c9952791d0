import os

from .config import Config, db_config

SECRET_KEY = Config.SECRET_KEY
AUTH_TOKEN_SECRET = Config.AUTH_TOKEN_SECRET
SESSION_SIGNING_SECRET = Config.SESSION_SIGNING_SECRET

AUTH_TOKEN_TTL_HOURS = Config.AUTH_TOKEN_TTL_HOURS
SESSION_VALIDITY_MINUTES = Config.SESSION_VALIDITY_MINUTES
LATE_THRESHOLD_MINUTES = Config.LATE_THRESHOLD_MINUTES
CLOCK_SKEW_SECONDS = Config.CLOCK_SKEW_SECONDS
ENFORCE_GEOFENCE = Config.ENFORCE_GEOFENCE

DB_CONFIG = db_config()

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = Config.AUTO_SEED_DB
