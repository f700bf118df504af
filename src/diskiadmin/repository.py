"""Data access layer over the document store.

Provides MatchRepository with merge (upsert) semantics for imported
matches, CRUD for manually created ones, and the rule that keeps
``live_matches`` in step with each match's lifecycle status, plus
CatalogRepository (teams, competitions) and UserRepository.

``live_matches`` is a view derived from ``matches``: a match is copied in
while its status is ``live`` and retracted as soon as it is not.
Banter rooms are created alongside the first live copy and never deleted
here -- they carry presence data the chat app owns.
"""

import logging
from datetime import datetime, timezone

from diskiadmin.exceptions import DocumentNotFound
from diskiadmin.schema import (
    BANTER_ROOMS,
    COMPETITIONS,
    CREATED_AT_FIELD,
    LAST_ACTIVE_FIELD,
    LIVE_MATCHES,
    MATCH_OF_THE_DAY_FIELD,
    MATCHES,
    STATUS_FIELD,
    TEAMS,
    UPDATED_AT_FIELD,
    USERS,
    active_users_path,
)
from diskiadmin.status import LIVE
from diskiadmin.store import DocumentStore

logger = logging.getLogger(__name__)

# sync_live_view outcomes
LIVE_ADDED = "added"
LIVE_REMOVED = "removed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MatchRepository:
    """Data access layer for match documents.

    Receives a DocumentStore so tests can pass a SQLite-backed store.
    Store exceptions are NOT caught -- they propagate to callers.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_match(self, match_id: str) -> dict | None:
        """Return a match document, or None if not found."""
        return self.store.get(MATCHES, str(match_id))

    def require_match(self, match_id: str) -> dict:
        """Return a match document or raise DocumentNotFound."""
        match = self.get_match(match_id)
        if match is None:
            raise DocumentNotFound(MATCHES, str(match_id))
        return match

    def list_matches(self) -> list[dict]:
        """Return all matches, newest first by creation time."""
        return self.store.list(MATCHES, order_by=CREATED_AT_FIELD, descending=True)

    def all_matches(self) -> list[dict]:
        """Return every match, unordered.

        Unlike ``list_matches`` this includes matches without ``createdAt``,
        which an ordered Firestore query leaves out.
        """
        return self.store.list(MATCHES)

    def list_live_matches(self) -> list[dict]:
        """Return the documents currently in the live view."""
        return self.store.list(LIVE_MATCHES)

    def get_live_match(self, match_id: str) -> dict | None:
        return self.store.get(LIVE_MATCHES, str(match_id))

    def get_banter_room(self, match_id: str) -> dict | None:
        return self.store.get(BANTER_ROOMS, str(match_id))

    def list_active_users(self, match_id: str, limit: int = 50) -> list[dict]:
        """Return banter presence records, most recently active first."""
        return self.store.list(
            active_users_path(str(match_id)),
            order_by=LAST_ACTIVE_FIELD,
            descending=True,
            limit=limit,
        )

    def count_matches(self) -> int:
        return self.store.count(MATCHES)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_match(self, match_id: str, record: dict) -> bool:
        """Merge a match record into ``matches/{match_id}``.

        ``createdAt`` is stamped only when the document is new; fields
        the record does not carry (e.g. ``isMatchOfTheDay``) are kept.

        Returns:
            True if the document was created, False if it was updated.
        """
        match_id = str(match_id)
        created = not self.store.exists(MATCHES, match_id)
        data = dict(record)
        data.setdefault(UPDATED_AT_FIELD, _now())
        if created:
            data[CREATED_AT_FIELD] = data[UPDATED_AT_FIELD]
        self.store.set(MATCHES, match_id, data, merge=True)
        return created

    def add_match(self, record: dict) -> str:
        """Create a match with a store-generated id (manual matches)."""
        now = _now()
        data = {**record, CREATED_AT_FIELD: now, UPDATED_AT_FIELD: now}
        return self.store.add(MATCHES, data)

    def update_match(self, match_id: str, fields: dict) -> None:
        """Overwrite the given fields of an existing match."""
        self.store.update(MATCHES, str(match_id), {**fields, UPDATED_AT_FIELD: _now()})

    def delete_match(self, match_id: str) -> None:
        """Delete a match and its live copy. Banter rooms are kept."""
        match_id = str(match_id)
        self.store.delete(MATCHES, match_id)
        if self.store.exists(LIVE_MATCHES, match_id):
            self.store.delete(LIVE_MATCHES, match_id)

    def set_match_of_the_day(self, match_id: str, flag: bool) -> None:
        """Set the highlight flag on one match; other matches are untouched."""
        self.store.update(MATCHES, str(match_id), {MATCH_OF_THE_DAY_FIELD: bool(flag)})

    # ------------------------------------------------------------------
    # Live view
    # ------------------------------------------------------------------

    def sync_live_view(self, match_id: str, match: dict | None = None) -> str | None:
        """Bring ``live_matches/{match_id}`` in line with the match status.

        * status ``live`` -> merge the match into the live view and make
          sure its banter room exists.
        * any other status, or the match is gone -> delete a stale live
          copy if there is one. Nothing is written when there is none.

        Args:
            match_id: Match document id.
            match: The current match document, if the caller already has
                it; otherwise it is read from the store.

        Returns:
            ``"added"``, ``"removed"`` or None when nothing changed.
        """
        match_id = str(match_id)
        if match is None:
            match = self.get_match(match_id)

        if match is not None and match.get(STATUS_FIELD) == LIVE:
            self.store.set(LIVE_MATCHES, match_id, {**match, "id": match_id}, merge=True)
            self.store.set(BANTER_ROOMS, match_id, {"matchId": match_id}, merge=True)
            return LIVE_ADDED

        if self.store.exists(LIVE_MATCHES, match_id):
            self.store.delete(LIVE_MATCHES, match_id)
            logger.info("Match %s is no longer live, removed from live view", match_id)
            return LIVE_REMOVED
        return None


class CatalogRepository:
    """Data access layer for team and competition documents.

    Both are keyed by their API-Football id and written as full
    overwrites: a sync replaces whatever the previous sync stored.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def save_team(self, team: dict) -> None:
        self.store.set(TEAMS, str(team["id"]), team)

    def get_team(self, team_id) -> dict | None:
        return self.store.get(TEAMS, str(team_id))

    def list_teams(self) -> list[dict]:
        """Return all teams ordered by name."""
        return self.store.list(TEAMS, order_by="name")

    def save_competition(self, competition: dict) -> None:
        self.store.set(COMPETITIONS, str(competition["id"]), competition)

    def get_competition(self, competition_id) -> dict | None:
        return self.store.get(COMPETITIONS, str(competition_id))

    def list_competitions(self) -> list[dict]:
        """Return all competitions ordered by name."""
        return self.store.list(COMPETITIONS, order_by="name")


class UserRepository:
    """Data access layer for user profiles.

    Profiles are created by the chat app; this side only reads them and
    overwrites the moderation ``status`` field.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_user(self, uid: str) -> dict | None:
        return self.store.get(USERS, str(uid))

    def list_users(self) -> list[dict]:
        return self.store.list(USERS)

    def set_status(self, uid: str, status: str) -> None:
        """Overwrite the moderation status. Raises DocumentNotFound."""
        self.store.update(USERS, str(uid), {STATUS_FIELD: status, UPDATED_AT_FIELD: _now()})
