"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Settings modules may override every value below.
"""

DEFAULT_AUTH_TOKEN_TTL_HOURS = 24
DEFAULT_SESSION_VALIDITY_MINUTES = 30
DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_CLOCK_SKEW_SECONDS = 0
DEFAULT_DB_POOL_SIZE = 5
DEFAULT_DB_TIMEOUT_SECONDS = 5

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 50

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
