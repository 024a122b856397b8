"""
ArenaGuard - Centralized Constants
==================================

Fixed values shared across the service layer and the API.
Tunable policy values live in core.config instead.
"""

# =============================================================================
# Time Constants (in seconds)
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

# =============================================================================
# Database Constants
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0          # sqlite3.connect timeout
SQLITE_BUSY_TIMEOUT = 5000            # ms, PRAGMA busy_timeout

# Collections stored in the documents table
COLLECTION_COMMUNITIES = "communities"
COLLECTION_ROLES = "roles"
COLLECTION_CHANNELS = "channels"
COLLECTION_PARTICIPANTS = "participants"
COLLECTION_INVITATIONS = "invitations"
COLLECTION_INVITATION_USAGES = "invitation_usages"
COLLECTION_TICKETS = "tickets"
COLLECTION_MODERATION_ACTIONS = "moderation_actions"

# Never updated in place or deleted
APPEND_ONLY_COLLECTIONS = frozenset({
    COLLECTION_MODERATION_ACTIONS,
    COLLECTION_INVITATION_USAGES,
})

# =============================================================================
# Retry Constants
# =============================================================================

CONFLICT_BASE_DELAY = 0.002           # First backoff step after a lost CAS
CONFLICT_MAX_DELAY = 0.05             # Backoff cap

# =============================================================================
# Invitation Constants
# =============================================================================

INVITE_CODE_LENGTH = 8
INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
INVITE_LINK_PREFIX = "app://join/"
UNLIMITED_USES = -1

# =============================================================================
# Field Limits
# =============================================================================

MAX_NAME_LENGTH = 100
MAX_TITLE_LENGTH = 200
MAX_REASON_LENGTH = 1000
MAX_MESSAGE_LENGTH = 4000
MAX_DESCRIPTION_LENGTH = 4000

# =============================================================================
# Role Colors
# =============================================================================

DEFAULT_ROLE_COLOR = "#99AAB5"
