import os

from .config import Config, db_config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
AUTH_TOKEN_SECRET = Config.AUTH_TOKEN_SECRET
SESSION_SIGNING_SECRET = Config.SESSION_SIGNING_SECRET

AUTH_TOKEN_TTL_HOURS = Config.AUTH_TOKEN_TTL_HOURS
SESSION_VALIDITY_MINUTES = Config.SESSION_VALIDITY_MINUTES
LATE_THRESHOLD_MINUTES = Config.LATE_THRESHOLD_MINUTES
CLOCK_SKEW_SECONDS = Config.CLOCK_SKEW_SECONDS
ENFORCE_GEOFENCE = Config.ENFORCE_GEOFENCE

DB_CONFIG = db_config()

DEBUG = False
LOG_LEVEL = Config.LOG_LEVEL

AUTO_INIT_DB = Config.AUTO_INIT_DB
AUTO_SEED_DB = Config.AUTO_SEED_DB
