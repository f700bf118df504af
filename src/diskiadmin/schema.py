"""Collection names and document field names shared with the consumer app.

The chat app reads the same documents, so these names are a contract:
renaming one here without migrating the app breaks it.
"""

# --- Collections ---
MATCHES = "matches"
LIVE_MATCHES = "live_matches"
BANTER_ROOMS = "banter_rooms"
ACTIVE_USERS = "activeUsers"  # sub-collection of banter_rooms/{matchId}
TEAMS = "teams"
COMPETITIONS = "competitions"
USERS = "users"
METRICS = "metrics"
SUBSCRIPTION_ATTEMPTS = "subscription_attempts"
FEEDBACK = "feedback"

# --- Documents with fixed ids ---
SUBSCRIPTION_CLICKS_DOC = "subscription_clicks"  # in METRICS

# --- Match fields ---
STATUS_FIELD = "status"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"
MATCH_OF_THE_DAY_FIELD = "isMatchOfTheDay"
API_MATCH_ID_FIELD = "apiMatchId"

# --- Presence fields ---
LAST_ACTIVE_FIELD = "lastActive"


def active_users_path(match_id: str) -> str:
    """Collection path of a banter room's presence records."""
    return f"{BANTER_ROOMS}/{match_id}/{ACTIVE_USERS}"
