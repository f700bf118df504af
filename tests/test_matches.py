"""Tests for match administration (manual matches, highlight, detail view)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from diskiadmin.db import Database
from diskiadmin.exceptions import DocumentNotFound, RemoteSourceError, ValidationFailed
from diskiadmin.matches import (
    create_match,
    delete_match,
    get_match_detail,
    list_matches,
    toggle_match_of_the_day,
    update_match,
)
from diskiadmin.repository import MatchRepository
from diskiadmin.store import SqliteDocumentStore


@pytest.fixture
def store(tmp_path):
    database = Database(tmp_path / "matches.db")
    database.initialize()
    yield SqliteDocumentStore(database.conn)
    database.close()


@pytest.fixture
def repo(store):
    return MatchRepository(store)


FORM = {
    "homeTeam": "Mamelodi Sundowns",
    "awayTeam": "Cape Town City",
    "date": "2024-09-14",
    "time": "15:30",
    "venue": "Loftus Versfeld",
}


class TestCreateMatch:
    """Manual match creation."""

    def test_creates_with_defaults(self, repo):
        match_id = create_match(repo, FORM)
        match = repo.get_match(match_id)
        assert match["homeTeam"] == "Mamelodi Sundowns"
        assert match["status"] == "upcoming"
        assert match["homeScore"] == 0
        assert match["isMatchOfTheDay"] is False
        assert match["createdAt"]
        assert "apiMatchId" not in match

    def test_legacy_label_normalized(self, repo):
        match_id = create_match(repo, {**FORM, "status": "Scheduled"})
        assert repo.get_match(match_id)["status"] == "upcoming"

    def test_live_manual_match_enters_live_view(self, repo):
        match_id = create_match(repo, {**FORM, "status": "Live"})
        assert repo.get_live_match(match_id) is not None
        assert repo.get_banter_room(match_id) is not None

    def test_missing_required_field(self, repo, store):
        form = dict(FORM)
        del form["awayTeam"]
        with pytest.raises(ValidationFailed, match="awayTeam"):
            create_match(repo, form)
        assert store.count("matches") == 0


class TestUpdateMatch:
    """Editing an existing match."""

    def test_update_fields(self, repo):
        match_id = create_match(repo, FORM)
        update_match(repo, match_id, {**FORM, "homeScore": 2, "status": "finished"})
        match = repo.get_match(match_id)
        assert match["homeScore"] == 2
        assert match["status"] == "finished"

    def test_update_keeps_highlight_when_not_given(self, repo):
        match_id = create_match(repo, {**FORM, "isMatchOfTheDay": True})
        update_match(repo, match_id, {**FORM, "venue": "FNB Stadium"})
        assert repo.get_match(match_id)["isMatchOfTheDay"] is True

    def test_going_live_and_back(self, repo):
        match_id = create_match(repo, FORM)
        update_match(repo, match_id, {**FORM, "status": "live"})
        assert repo.get_live_match(match_id) is not None
        update_match(repo, match_id, {**FORM, "status": "finished"})
        assert repo.get_live_match(match_id) is None

    def test_unknown_match(self, repo):
        with pytest.raises(DocumentNotFound):
            update_match(repo, "missing", FORM)

    def test_invalid_form(self, repo):
        match_id = create_match(repo, FORM)
        with pytest.raises(ValidationFailed):
            update_match(repo, match_id, {**FORM, "time": "half past three"})


class TestDeleteAndList:
    """Deletion and listing."""

    def test_delete(self, repo):
        match_id = create_match(repo, {**FORM, "status": "live"})
        delete_match(repo, match_id)
        assert repo.get_match(match_id) is None
        assert repo.get_live_match(match_id) is None

    def test_delete_unknown(self, repo):
        with pytest.raises(DocumentNotFound):
            delete_match(repo, "missing")

    def test_list(self, repo):
        create_match(repo, FORM)
        create_match(repo, {**FORM, "homeTeam": "Chippa United"})
        assert len(list_matches(repo)) == 2


class TestMatchOfTheDay:
    """The highlight flag toggles per match."""

    def test_toggle(self, repo):
        match_id = create_match(repo, FORM)
        assert toggle_match_of_the_day(repo, match_id) is True
        assert toggle_match_of_the_day(repo, match_id) is False
        assert repo.get_match(match_id)["isMatchOfTheDay"] is False

    def test_several_matches_can_be_highlighted(self, repo):
        first = create_match(repo, FORM)
        second = create_match(repo, FORM)
        toggle_match_of_the_day(repo, first)
        toggle_match_of_the_day(repo, second)
        assert repo.get_match(first)["isMatchOfTheDay"] is True
        assert repo.get_match(second)["isMatchOfTheDay"] is True

    def test_missing_flag_counts_as_off(self, repo, store):
        store.set("matches", "legacy", {"homeTeam": "A"})
        assert toggle_match_of_the_day(repo, "legacy") is True


class TestMatchDetail:
    """Detail view combines the document, live API data and presence."""

    @pytest.mark.asyncio
    async def test_without_client(self, repo, store):
        match_id = create_match(repo, FORM)
        store.set(f"banter_rooms/{match_id}/activeUsers", "u1", {"lastActive": "t"})

        detail = await get_match_detail(repo, match_id)

        assert detail["match"]["homeTeam"] == "Mamelodi Sundowns"
        assert detail["live"] is None
        assert [u["id"] for u in detail["active_users"]] == ["u1"]

    @pytest.mark.asyncio
    async def test_with_client_for_imported_match(self, repo, store):
        store.set("matches", "1035037", {"apiMatchId": 1035037, "homeTeam": "A"})
        client = MagicMock()
        client.get_fixture = AsyncMock(return_value={
            "fixture": {"id": 1035037, "status": {"short": "2H", "elapsed": 71}},
            "goals": {"home": 1, "away": 1},
            "events": [{"type": "Goal"}],
            "lineups": [],
        })

        detail = await get_match_detail(repo, "1035037", client)

        client.get_fixture.assert_awaited_once_with(1035037)
        assert detail["live"]["elapsed"] == 71
        assert detail["live"]["status"] == "2H"
        assert detail["live"]["events"] == [{"type": "Goal"}]

    @pytest.mark.asyncio
    async def test_manual_match_skips_api(self, repo):
        match_id = create_match(repo, FORM)
        client = MagicMock()
        client.get_fixture = AsyncMock()

        detail = await get_match_detail(repo, match_id, client)

        client.get_fixture.assert_not_awaited()
        assert detail["live"] is None

    @pytest.mark.asyncio
    async def test_api_failure_is_not_fatal(self, repo, store):
        store.set("matches", "5", {"apiMatchId": 5})
        client = MagicMock()
        client.get_fixture = AsyncMock(side_effect=RemoteSourceError("timeout"))

        detail = await get_match_detail(repo, "5", client)

        assert detail["live"] is None
        assert detail["match"]["apiMatchId"] == 5

    @pytest.mark.asyncio
    async def test_presence_limit(self, repo, store):
        store.set("matches", "9", {"homeTeam": "A"})
        for i in range(5):
            store.set("banter_rooms/9/activeUsers", f"u{i}", {"lastActive": f"2024-01-0{i + 1}"})

        detail = await get_match_detail(repo, "9", active_users_limit=3)

        assert [u["id"] for u in detail["active_users"]] == ["u4", "u3", "u2"]

    @pytest.mark.asyncio
    async def test_unknown_match(self, repo):
        with pytest.raises(DocumentNotFound):
            await get_match_detail(repo, "missing")
