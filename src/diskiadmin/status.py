"""Match lifecycle and user moderation vocabularies.

API-Football reports fixture progress with short status codes (``NS``,
``1H``, ``HT``, ``FT``, ...). The consumer app only knows three lifecycle
states, so every code is folded into one of them. Unknown codes fall back
to ``upcoming``.
"""

UPCOMING = "upcoming"
LIVE = "live"
FINISHED = "finished"

LIFECYCLE_STATES = (UPCOMING, LIVE, FINISHED)

LIVE_CODES = frozenset({"1H", "2H", "HT", "ET", "BT", "P", "LIVE"})
FINISHED_CODES = frozenset({"FT", "AET", "PEN"})

# Labels the old manual match form used.
_FORM_LABELS = {
    "scheduled": UPCOMING,
    "upcoming": UPCOMING,
    "live": LIVE,
    "finished": FINISHED,
}

ACTIVE = "active"
SUSPENDED = "suspended"
BANNED = "banned"

MODERATION_STATES = (ACTIVE, SUSPENDED, BANNED)


def normalize_status(short: str | None) -> str:
    """Map an API-Football short status code to a lifecycle state.

    Never raises: ``None``, empty strings and codes we do not know yet
    (``NS``, ``TBD``, ``PST``, ...) are all ``upcoming``.
    """
    if short in LIVE_CODES:
        return LIVE
    if short in FINISHED_CODES:
        return FINISHED
    return UPCOMING


def normalize_form_status(label: str | None) -> str:
    """Map a manual-form status label onto the lifecycle vocabulary."""
    if not label:
        return UPCOMING
    return _FORM_LABELS.get(label.strip().lower(), UPCOMING)


def normalize_moderation_status(value: str | None) -> str:
    """Read a stored user status; absent or unrecognised means active."""
    if value and value.strip().lower() in MODERATION_STATES:
        return value.strip().lower()
    return ACTIVE
