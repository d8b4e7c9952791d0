from .config import db_config

SECRET_KEY = "test-secret"
AUTH_TOKEN_SECRET = "test-auth-secret"
SESSION_SIGNING_SECRET = "test-session-secret"

AUTH_TOKEN_TTL_HOURS = 24
SESSION_VALIDITY_MINUTES = 30
LATE_THRESHOLD_MINUTES = 15
CLOCK_SKEW_SECONDS = 0
ENFORCE_GEOFENCE = True

DB_CONFIG = db_config()

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
