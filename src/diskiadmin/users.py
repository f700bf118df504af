"""User moderation.

A user is in exactly one of three states: active, suspended or banned.
Any state can move to any other (a ban can be lifted) and each change is a
plain overwrite of the ``status`` field with a log line; there is no
separate audit record.
"""

import logging

from diskiadmin.exceptions import DocumentNotFound, InvalidStatus, ValidationFailed
from diskiadmin.models import UserModel
from diskiadmin.repository import UserRepository
from diskiadmin.schema import USERS
from diskiadmin.status import ACTIVE, BANNED, MODERATION_STATES, SUSPENDED
from diskiadmin.validation import validate_or_raise

logger = logging.getLogger(__name__)


def get_user(repo: UserRepository, uid: str) -> UserModel:
    """Return one user profile.

    Raises:
        DocumentNotFound: No user with this id.
        ValidationFailed: The stored profile is malformed.
    """
    doc = repo.get_user(uid)
    if doc is None:
        raise DocumentNotFound(USERS, str(uid))
    return validate_or_raise(doc, UserModel, {"uid": uid})


def _load_users(repo: UserRepository) -> list[UserModel]:
    """All readable profiles; malformed documents are logged and skipped."""
    users = []
    for doc in repo.list_users():
        try:
            users.append(validate_or_raise(doc, UserModel, {"uid": doc.get("id")}))
        except ValidationFailed as exc:
            logger.warning("Skipping user %s: %s", doc.get("id"), exc)
    return users


def set_user_status(repo: UserRepository, uid: str, status: str) -> UserModel:
    """Move a user to ``status`` and return the updated profile.

    Raises:
        InvalidStatus: ``status`` is not one of active/suspended/banned.
        DocumentNotFound: No user with this id.
    """
    target = (status or "").strip().lower()
    if target not in MODERATION_STATES:
        raise InvalidStatus(
            f"Unknown user status {status!r}; expected one of "
            f"{', '.join(MODERATION_STATES)}"
        )

    user = get_user(repo, uid)
    repo.set_status(uid, target)
    logger.info("User %s (%s): %s -> %s", uid, user.label, user.status, target)
    return user.model_copy(update={"status": target})


def suspend(repo: UserRepository, uid: str) -> UserModel:
    return set_user_status(repo, uid, SUSPENDED)


def ban(repo: UserRepository, uid: str) -> UserModel:
    return set_user_status(repo, uid, BANNED)


def activate(repo: UserRepository, uid: str) -> UserModel:
    return set_user_status(repo, uid, ACTIVE)


def list_users(repo: UserRepository, limit: int = 100) -> list[UserModel]:
    """Users ordered by points, highest first (missing points count as 0)."""
    users = _load_users(repo)
    users.sort(key=lambda u: u.points, reverse=True)
    return users[:limit]


def search_users(repo: UserRepository, term: str) -> list[UserModel]:
    """Users whose username, display name or email contains ``term``."""
    needle = term.strip().lower()
    users = _load_users(repo)
    return [
        u for u in users
        if any(
            needle in value.lower()
            for value in (u.username, u.display_name, u.email)
            if value
        )
    ]
