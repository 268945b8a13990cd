"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

GYM_CODE_PREFIX = "GYM-"
GYM_CODE_HEX_LENGTH = 8
MEMBER_BARCODE_LENGTH = 12
MAX_CODE_ATTEMPTS = 10
DEFAULT_NOTIFY_TIMEOUT_SECONDS = 10
MIN_PASSWORD_LENGTH = 6
