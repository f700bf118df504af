"""Team and competition sync from API-Football.

Teams come from ``/teams?league&season`` and are written one document per
team, venue attributes flattened. Competitions come from ``/leagues?id``;
only the season flagged ``current`` (or the latest one) is kept.
"""

import logging
from datetime import datetime, timezone

from diskiadmin.exceptions import AdminError, RemoteSourceError
from diskiadmin.models import CompetitionModel, TeamModel
from diskiadmin.repository import CatalogRepository
from diskiadmin.validation import validate_or_raise

logger = logging.getLogger(__name__)


def build_team_record(row: dict, season: int, now: datetime) -> dict:
    """Flatten a ``/teams`` response row into a team document."""
    team = row.get("team") or {}
    venue = row.get("venue") or {}
    data = {
        "id": team.get("id"),
        "name": team.get("name") or "",
        "code": team.get("code"),
        "country": team.get("country"),
        "founded": team.get("founded") or 0,
        "national": bool(team.get("national")),
        "logo": team.get("logo"),
        "venue_id": venue.get("id"),
        "venue_name": venue.get("name"),
        "venue_address": venue.get("address"),
        "venue_city": venue.get("city"),
        "venue_capacity": venue.get("capacity"),
        "venue_surface": venue.get("surface"),
        "venue_image": venue.get("image"),
        "season": season,
        "updatedAt": now,
    }
    model = validate_or_raise(data, TeamModel, {"team_id": team.get("id")})
    return model.model_dump(by_alias=True)


def pick_season(seasons: list[dict]) -> int | None:
    """Return the year of the ``current`` season, else the latest one."""
    if not seasons:
        return None
    for season in seasons:
        if season.get("current"):
            return season.get("year")
    years = [s.get("year") for s in seasons if s.get("year") is not None]
    return max(years) if years else None


def build_competition_record(row: dict, now: datetime) -> dict:
    """Turn a ``/leagues`` response row into a competition document."""
    league = row.get("league") or {}
    country = row.get("country") or {}
    data = {
        "id": league.get("id"),
        "name": league.get("name") or "",
        "country": country.get("name"),
        "countryCode": country.get("code"),
        "logo": league.get("logo"),
        "type": league.get("type"),
        "season": pick_season(row.get("seasons") or []),
        "updatedAt": now,
    }
    model = validate_or_raise(data, CompetitionModel, {"league_id": league.get("id")})
    return model.model_dump(by_alias=True)


async def sync_teams(
    client,
    repo: CatalogRepository,
    league_id: int,
    season: int,
    archive=None,
) -> dict:
    """Fetch a league's teams for a season and overwrite their documents.

    The listing request failing propagates; a bad team row is logged and
    counted and the rest are still written. The raw listing is saved to
    ``archive`` when one is given.

    Returns:
        Dict with stats: fetched, saved, failed.
    """
    rows = await client.get_teams(league_id, season)
    if archive is not None:
        archive.save(rows, kind="teams", key=f"{league_id}-{season}")
    stats = {"fetched": len(rows), "saved": 0, "failed": 0}
    logger.info("League %s season %s: %d teams", league_id, season, len(rows))

    now = datetime.now(timezone.utc)
    for row in rows:
        team_id = (row.get("team") or {}).get("id")
        try:
            repo.save_team(build_team_record(row, season, now))
            stats["saved"] += 1
            logger.debug("Saved team %s", team_id)
        except AdminError as exc:
            stats["failed"] += 1
            logger.error("Could not save team %s: %s", team_id, exc)

    logger.info(
        "Team sync complete: %d saved, %d failed",
        stats["saved"],
        stats["failed"],
    )
    return stats


async def sync_competitions(client, repo: CatalogRepository, ids, archive=None) -> dict:
    """Fetch and store each competition in ``ids``, one request per id.

    Raw ``/leagues`` rows are saved to ``archive`` when one is given.

    Returns:
        Dict with stats: requested, count (competitions written), failed,
        errors (``{league_id: message}``).
    """
    stats = {"requested": len(ids), "count": 0, "failed": 0, "errors": {}}

    for league_id in ids:
        try:
            row = await client.get_league(league_id)
            if row is None:
                raise RemoteSourceError(f"League {league_id} not found")
            if archive is not None:
                archive.save(row, kind="league", key=league_id)
            now = datetime.now(timezone.utc)
            record = build_competition_record(row, now)
            repo.save_competition(record)
            stats["count"] += 1
            logger.info(
                "Synced competition %s (%s, season %s)",
                league_id,
                record["name"],
                record["season"],
            )
        except AdminError as exc:
            stats["failed"] += 1
            stats["errors"][league_id] = str(exc)
            logger.error("Competition sync failed for %s: %s", league_id, exc)

    return stats


def _matches(term: str, *values) -> bool:
    needle = term.strip().lower()
    return any(needle in str(v).lower() for v in values if v)


def list_teams(repo: CatalogRepository) -> list[dict]:
    return repo.list_teams()


def search_teams(repo: CatalogRepository, term: str) -> list[dict]:
    """Teams whose name or venue name contains ``term`` (case-insensitive)."""
    return [
        t for t in repo.list_teams()
        if _matches(term, t.get("name"), t.get("venue_name"))
    ]


def list_competitions(repo: CatalogRepository) -> list[dict]:
    return repo.list_competitions()
