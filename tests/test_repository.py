"""Tests for the repositories over a SQLite-backed document store.

Exercises match upsert semantics, the live-view rule, banter presence
listing and the catalog and user repositories.
"""

import pytest

from diskiadmin.db import Database
from diskiadmin.exceptions import DocumentNotFound
from diskiadmin.repository import (
    LIVE_ADDED,
    LIVE_REMOVED,
    CatalogRepository,
    MatchRepository,
    UserRepository,
)
from diskiadmin.store import SqliteDocumentStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store(tmp_path):
    database = Database(tmp_path / "repo.db")
    database.initialize()
    yield SqliteDocumentStore(database.conn)
    database.close()


@pytest.fixture
def repo(store):
    return MatchRepository(store)


def make_record(status="upcoming", **overrides):
    """Return an imported match record with sensible defaults."""
    data = {
        "homeTeam": "Kaizer Chiefs",
        "awayTeam": "Orlando Pirates",
        "homeScore": 0,
        "awayScore": 0,
        "status": status,
        "date": "2024-08-16",
        "time": "19:00",
        "apiMatchId": 1035037,
        "updatedAt": "2024-08-16T18:00:00+00:00",
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Upsert
# ---------------------------------------------------------------------------

class TestUpsertMatch:
    """Merge semantics and creation timestamps."""

    def test_first_upsert_creates(self, repo):
        assert repo.upsert_match("1035037", make_record()) is True
        match = repo.get_match("1035037")
        assert match["homeTeam"] == "Kaizer Chiefs"
        assert match["createdAt"] == match["updatedAt"]

    def test_second_upsert_updates_in_place(self, repo):
        repo.upsert_match("1035037", make_record())
        created_at = repo.get_match("1035037")["createdAt"]

        assert repo.upsert_match(
            "1035037",
            make_record(status="live", homeScore=1, updatedAt="2024-08-16T19:20:00+00:00"),
        ) is False

        match = repo.get_match("1035037")
        assert match["status"] == "live"
        assert match["homeScore"] == 1
        assert match["createdAt"] == created_at
        assert match["updatedAt"] == "2024-08-16T19:20:00+00:00"
        assert repo.count_matches() == 1

    def test_upsert_keeps_match_of_the_day(self, repo):
        repo.upsert_match("1", make_record())
        repo.set_match_of_the_day("1", True)
        repo.upsert_match("1", make_record(status="finished"))
        assert repo.get_match("1")["isMatchOfTheDay"] is True

    def test_upsert_stamps_updated_at_when_missing(self, repo):
        record = make_record()
        del record["updatedAt"]
        repo.upsert_match("1", record)
        assert repo.get_match("1")["updatedAt"]


class TestManualMatches:
    """add/update/delete and the match-of-the-day flag."""

    def test_add_generates_id(self, repo):
        match_id = repo.add_match({"homeTeam": "A", "awayTeam": "B"})
        match = repo.get_match(match_id)
        assert match["homeTeam"] == "A"
        assert match["createdAt"]
        assert "apiMatchId" not in match

    def test_update_missing_raises(self, repo):
        with pytest.raises(DocumentNotFound):
            repo.update_match("missing", {"venue": "x"})

    def test_require_match(self, repo):
        with pytest.raises(DocumentNotFound):
            repo.require_match("missing")

    def test_delete_removes_live_copy_keeps_room(self, repo, store):
        repo.upsert_match("1", make_record(status="live"))
        repo.sync_live_view("1")
        repo.delete_match("1")
        assert repo.get_match("1") is None
        assert repo.get_live_match("1") is None
        assert repo.get_banter_room("1") == {"id": "1", "matchId": "1"}

    def test_match_of_the_day_independent(self, repo):
        repo.upsert_match("1", make_record())
        repo.upsert_match("2", make_record())
        repo.set_match_of_the_day("1", True)
        repo.set_match_of_the_day("2", True)
        assert repo.get_match("1")["isMatchOfTheDay"] is True
        assert repo.get_match("2")["isMatchOfTheDay"] is True

    def test_list_newest_first(self, repo, store):
        store.set("matches", "old", {"createdAt": "2024-01-01T00:00:00+00:00"})
        store.set("matches", "new", {"createdAt": "2024-06-01T00:00:00+00:00"})
        store.set("matches", "legacy", {"homeTeam": "no timestamp"})
        assert [m["id"] for m in repo.list_matches()] == ["new", "old", "legacy"]


# ---------------------------------------------------------------------------
# Live view
# ---------------------------------------------------------------------------

class TestSyncLiveView:
    """live_matches follows match status."""

    def test_live_match_copied_with_room(self, repo):
        repo.upsert_match("1035037", make_record(status="live"))
        assert repo.sync_live_view("1035037") == LIVE_ADDED

        live = repo.get_live_match("1035037")
        assert live["id"] == "1035037"
        assert live["homeTeam"] == "Kaizer Chiefs"
        assert live["status"] == "live"
        assert repo.get_banter_room("1035037")["matchId"] == "1035037"

    @pytest.mark.parametrize("status", ["upcoming", "finished"])
    def test_never_live_writes_nothing(self, repo, store, status):
        repo.upsert_match("1", make_record(status=status))
        assert repo.sync_live_view("1") is None
        assert store.count("live_matches") == 0
        assert store.count("banter_rooms") == 0

    def test_finished_match_retracted(self, repo):
        repo.upsert_match("1", make_record(status="live"))
        repo.sync_live_view("1")
        repo.upsert_match("1", make_record(status="finished"))

        assert repo.sync_live_view("1") == LIVE_REMOVED
        assert repo.get_live_match("1") is None
        assert repo.get_banter_room("1") is not None

    def test_missing_match_retracted(self, repo, store):
        store.set("live_matches", "ghost", {"id": "ghost", "status": "live"})
        assert repo.sync_live_view("ghost") == LIVE_REMOVED
        assert repo.get_live_match("ghost") is None

    def test_existing_room_presence_untouched(self, repo, store):
        store.set("banter_rooms/1/activeUsers", "u1", {"lastActive": "t"})
        repo.upsert_match("1", make_record(status="live"))
        repo.sync_live_view("1")
        assert len(repo.list_active_users("1")) == 1


class TestActiveUsers:
    """Banter presence ordering and limit."""

    def test_most_recent_first_with_limit(self, repo, store):
        path = "banter_rooms/7/activeUsers"
        store.set(path, "a", {"lastActive": "2024-08-16T19:01:00+00:00"})
        store.set(path, "b", {"lastActive": "2024-08-16T19:09:00+00:00"})
        store.set(path, "c", {"lastActive": "2024-08-16T19:05:00+00:00"})

        users = repo.list_active_users("7", limit=2)
        assert [u["id"] for u in users] == ["b", "c"]


# ---------------------------------------------------------------------------
# Catalog and users
# ---------------------------------------------------------------------------

class TestCatalogRepository:
    """Teams and competitions are keyed by API id and overwritten."""

    def test_save_team_overwrites(self, store):
        catalog = CatalogRepository(store)
        catalog.save_team({"id": 2698, "name": "Kaizer Chiefs", "logo": "old.png"})
        catalog.save_team({"id": 2698, "name": "Kaizer Chiefs"})
        team = catalog.get_team(2698)
        assert "logo" not in team
        assert team["id"] == 2698

    def test_lists_ordered_by_name(self, store):
        catalog = CatalogRepository(store)
        catalog.save_competition({"id": 39, "name": "Premier League"})
        catalog.save_competition({"id": 2, "name": "Champions League"})
        assert [c["name"] for c in catalog.list_competitions()] == [
            "Champions League",
            "Premier League",
        ]


class TestUserRepository:
    """Only the status field is written."""

    def test_set_status_keeps_profile(self, store):
        store.set("users", "u1", {"username": "thabo10", "points": 40})
        UserRepository(store).set_status("u1", "suspended")
        user = store.get("users", "u1")
        assert user["status"] == "suspended"
        assert user["points"] == 40

    def test_set_status_missing_user(self, store):
        with pytest.raises(DocumentNotFound):
            UserRepository(store).set_status("ghost", "banned")
