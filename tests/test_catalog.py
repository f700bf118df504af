"""Tests for team and competition sync."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from diskiadmin.catalog import (
    build_competition_record,
    build_team_record,
    list_competitions,
    list_teams,
    pick_season,
    search_teams,
    sync_competitions,
    sync_teams,
)
from diskiadmin.db import Database
from diskiadmin.exceptions import RemoteSourceError, ValidationFailed
from diskiadmin.repository import CatalogRepository
from diskiadmin.storage import PayloadArchive
from diskiadmin.store import SqliteDocumentStore

NOW = datetime(2024, 8, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    database = Database(tmp_path / "catalog.db")
    database.initialize()
    yield SqliteDocumentStore(database.conn)
    database.close()


@pytest.fixture
def repo(store):
    return CatalogRepository(store)


def make_team_row(team_id=2698, name="Kaizer Chiefs", founded=1970, venue_name="FNB Stadium"):
    return {
        "team": {
            "id": team_id,
            "name": name,
            "code": "KAI",
            "country": "South-Africa",
            "founded": founded,
            "national": False,
            "logo": f"https://media.api-sports.io/football/teams/{team_id}.png",
        },
        "venue": {
            "id": 1543,
            "name": venue_name,
            "address": "Nasrec Road",
            "city": "Johannesburg",
            "capacity": 94736,
            "surface": "grass",
            "image": "https://media.api-sports.io/football/venues/1543.png",
        },
    }


def make_league_row(league_id=288, seasons=None):
    return {
        "league": {"id": league_id, "name": "Premier Soccer League", "type": "League", "logo": "l.png"},
        "country": {"name": "South-Africa", "code": "ZA", "flag": "za.svg"},
        "seasons": seasons if seasons is not None else [
            {"year": 2022, "current": False},
            {"year": 2023, "current": True},
            {"year": 2024, "current": False},
        ],
    }


class TestTeamRecords:
    """Flattening /teams rows."""

    def test_flattened_venue(self):
        record = build_team_record(make_team_row(), 2023, NOW)
        assert record["id"] == 2698
        assert record["venue_name"] == "FNB Stadium"
        assert record["venue_capacity"] == 94736
        assert record["season"] == 2023
        assert record["updatedAt"] == NOW

    def test_missing_founded_is_zero(self):
        assert build_team_record(make_team_row(founded=None), 2023, NOW)["founded"] == 0

    def test_missing_venue(self):
        row = make_team_row()
        row["venue"] = None
        assert build_team_record(row, 2023, NOW)["venue_name"] is None

    def test_missing_id_rejected(self):
        row = make_team_row()
        row["team"]["id"] = None
        with pytest.raises(ValidationFailed):
            build_team_record(row, 2023, NOW)


class TestPickSeason:
    """Season selection for competitions."""

    def test_current_flag_wins(self):
        assert pick_season([{"year": 2023, "current": True}, {"year": 2024}]) == 2023

    def test_latest_when_none_current(self):
        assert pick_season([{"year": 2021}, {"year": 2024}, {"year": 2022}]) == 2024

    def test_empty(self):
        assert pick_season([]) is None


class TestCompetitionRecords:
    """Building competition documents."""

    def test_fields(self):
        record = build_competition_record(make_league_row(), NOW)
        assert record == {
            "id": 288,
            "name": "Premier Soccer League",
            "country": "South-Africa",
            "countryCode": "ZA",
            "logo": "l.png",
            "type": "League",
            "season": 2023,
            "updatedAt": NOW,
        }


class TestSyncTeams:
    """Team sync writes one document per team."""

    @pytest.mark.asyncio
    async def test_writes_teams(self, repo):
        client = MagicMock()
        client.get_teams = AsyncMock(return_value=[
            make_team_row(2698, "Kaizer Chiefs"),
            make_team_row(2699, "Orlando Pirates", venue_name="Orlando Stadium"),
        ])

        stats = await sync_teams(client, repo, 288, 2023)

        client.get_teams.assert_awaited_once_with(288, 2023)
        assert stats == {"fetched": 2, "saved": 2, "failed": 0}
        assert repo.get_team(2699)["venue_name"] == "Orlando Stadium"

    @pytest.mark.asyncio
    async def test_bad_row_isolated(self, repo):
        bad = make_team_row(0, "")
        client = MagicMock()
        client.get_teams = AsyncMock(return_value=[bad, make_team_row()])

        stats = await sync_teams(client, repo, 288, 2023)

        assert stats["saved"] == 1
        assert stats["failed"] == 1

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(self, repo):
        client = MagicMock()
        client.get_teams = AsyncMock(side_effect=RemoteSourceError("403"))
        with pytest.raises(RemoteSourceError):
            await sync_teams(client, repo, 288, 2023)

    @pytest.mark.asyncio
    async def test_archive_receives_listing(self, repo, tmp_path):
        archive = PayloadArchive(tmp_path / "raw")
        rows = [make_team_row()]
        client = MagicMock()
        client.get_teams = AsyncMock(return_value=rows)

        await sync_teams(client, repo, 288, 2023, archive=archive)

        assert archive.load(kind="teams", key="288-2023") == rows


class TestSyncCompetitions:
    """Competition sync, one request per id."""

    @pytest.mark.asyncio
    async def test_per_id_isolation(self, repo):
        async def get_league(league_id):
            if league_id == 507:
                raise RemoteSourceError("HTTP 500")
            if league_id == 999:
                return None
            return make_league_row(league_id)

        client = MagicMock()
        client.get_league = AsyncMock(side_effect=get_league)

        stats = await sync_competitions(client, repo, [288, 507, 999, 39])

        assert stats["requested"] == 4
        assert stats["count"] == 2
        assert stats["failed"] == 2
        assert set(stats["errors"]) == {507, 999}
        assert repo.get_competition(39) is not None

    @pytest.mark.asyncio
    async def test_resync_replaces_season(self, repo):
        client = MagicMock()
        client.get_league = AsyncMock(return_value=make_league_row(seasons=[{"year": 2024, "current": True}]))
        await sync_competitions(client, repo, [288])
        client.get_league = AsyncMock(return_value=make_league_row(seasons=[{"year": 2025, "current": True}]))
        await sync_competitions(client, repo, [288])

        assert repo.get_competition(288)["season"] == 2025

    @pytest.mark.asyncio
    async def test_archive_receives_found_leagues(self, repo, tmp_path):
        archive = PayloadArchive(tmp_path / "raw")
        client = MagicMock()
        client.get_league = AsyncMock(side_effect=[make_league_row(288), None])

        await sync_competitions(client, repo, [288, 999], archive=archive)

        assert archive.load(kind="league", key=288)["league"]["id"] == 288
        assert not archive.exists(kind="league", key=999)


class TestListing:
    """Listing and search."""

    def test_list_and_search_teams(self, repo):
        repo.save_team(build_team_record(make_team_row(1, "Kaizer Chiefs"), 2023, NOW))
        repo.save_team(build_team_record(
            make_team_row(2, "Orlando Pirates", venue_name="Orlando Stadium"), 2023, NOW
        ))

        assert [t["name"] for t in list_teams(repo)] == ["Kaizer Chiefs", "Orlando Pirates"]
        assert [t["name"] for t in search_teams(repo, "pirates")] == ["Orlando Pirates"]
        assert [t["name"] for t in search_teams(repo, "fnb")] == ["Kaizer Chiefs"]
        assert search_teams(repo, "sundowns") == []

    def test_list_competitions(self, repo):
        repo.save_competition({"id": 2, "name": "UEFA Champions League"})
        repo.save_competition({"id": 1, "name": "African Nations Championship"})
        assert [c["id"] for c in list_competitions(repo)] == [1, 2]
