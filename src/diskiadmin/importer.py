"""Fixture import orchestrator.

Pulls fixtures from API-Football and materializes them as match documents.
For each fixture: fetch the full detail (lineups, events), fall back to the
summary row when the detail is unavailable, normalize the status, merge into
``matches/{fixture_id}``, then bring the live view in line with the status.

Imports are idempotent: the document key is the fixture id and every write
is a merge, so re-importing a fixture updates it in place.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from diskiadmin.exceptions import AdminError, FixtureNotFound, RemoteSourceError
from diskiadmin.models import MatchModel
from diskiadmin.repository import LIVE_ADDED, LIVE_REMOVED, MatchRepository
from diskiadmin.status import LIVE, normalize_status
from diskiadmin.validation import validate_or_raise

logger = logging.getLogger(__name__)

_LIVE_NOTES = {
    LIVE_ADDED: ", live view updated",
    LIVE_REMOVED: ", removed from live view",
}


@dataclass
class ImportResult:
    """Outcome of importing one fixture."""

    fixture_id: str
    status: str | None = None
    ok: bool = False
    error: str | None = None


async def list_upcoming_fixtures(client, league_id: int, count: int = 20) -> list[dict]:
    """Return the next ``count`` fixtures of a league as raw API rows."""
    fixtures = await client.get_upcoming_fixtures(league_id, count)
    logger.info("League %s: %d upcoming fixtures", league_id, len(fixtures))
    return fixtures


def _kickoff_utc(raw_date: str) -> datetime:
    kickoff = datetime.fromisoformat(raw_date)
    if kickoff.tzinfo is None:
        return kickoff.replace(tzinfo=timezone.utc)
    return kickoff.astimezone(timezone.utc)


def build_match_record(fixture: dict, now: datetime) -> dict:
    """Turn an API-Football fixture row into a match document.

    Pure: no I/O. Missing goals become 0 and a missing venue becomes "".
    ``date`` and ``time`` are the kickoff in UTC.

    Args:
        fixture: A ``/fixtures`` response row (summary or detail form).
        now: Aware datetime stored as ``updatedAt``.

    Returns:
        The validated document dict with camelCase keys.

    Raises:
        ValidationFailed: The row lacks required data (teams, date, id).
    """
    info = fixture.get("fixture") or {}
    teams = fixture.get("teams") or {}
    home = teams.get("home") or {}
    away = teams.get("away") or {}
    goals = fixture.get("goals") or {}
    league = fixture.get("league") or {}
    venue = info.get("venue") or {}
    status = info.get("status") or {}

    data = {
        "homeTeam": home.get("name") or "",
        "homeTeamId": home.get("id"),
        "homeLogo": home.get("logo") or "",
        "awayTeam": away.get("name") or "",
        "awayTeamId": away.get("id"),
        "awayLogo": away.get("logo") or "",
        "homeScore": goals.get("home") or 0,
        "awayScore": goals.get("away") or 0,
        "status": normalize_status(status.get("short")),
        "venue": venue.get("name") or "",
        "competitionId": league.get("id"),
        "competitionName": league.get("name") or "",
        "apiMatchId": info.get("id"),
        "lineups": fixture.get("lineups") or [],
        "events": fixture.get("events") or [],
        "updatedAt": now,
    }

    raw_date = info.get("date")
    if raw_date:
        try:
            kickoff = _kickoff_utc(raw_date)
        except ValueError:
            logger.warning("Fixture %s has unparseable date %r", info.get("id"), raw_date)
        else:
            data["date"] = kickoff.strftime("%Y-%m-%d")
            data["time"] = kickoff.strftime("%H:%M")
            data["matchDate"] = kickoff

    model = validate_or_raise(data, MatchModel, {"fixture_id": info.get("id")})
    return model.model_dump(by_alias=True)


async def import_fixture(
    client,
    repo: MatchRepository,
    fixture_id,
    summary: dict | None = None,
    archive=None,
) -> ImportResult:
    """Import one fixture into the store.

    Args:
        client: FootballApiClient (must be open).
        repo: MatchRepository to write to.
        fixture_id: API-Football fixture id.
        summary: The fixture's row from a listing, used when the detail
            request fails or comes back empty.
        archive: Optional PayloadArchive; raw payloads are saved to it.

    Returns:
        ImportResult. Failures are reported in it, never raised.
    """
    fixture_id = str(fixture_id)
    result = ImportResult(fixture_id=fixture_id)

    try:
        fixture = await _fetch_fixture(client, fixture_id, summary, archive)
        _store_fixture(repo, fixture_id, fixture, result)
    except AdminError as exc:
        result.error = str(exc)
        logger.error("Import failed for fixture %s: %s", fixture_id, exc)

    return result


def replay_fixture(repo: MatchRepository, archive, fixture_id) -> ImportResult:
    """Re-import a fixture from its archived payload without calling the API.

    Uses the archived detail when there is one, else the archived summary.

    Returns:
        ImportResult. Failures are reported in it, never raised.
    """
    fixture_id = str(fixture_id)
    result = ImportResult(fixture_id=fixture_id)

    try:
        fixture = _load_archived(archive, fixture_id)
        _store_fixture(repo, fixture_id, fixture, result)
    except AdminError as exc:
        result.error = str(exc)
        logger.error("Replay failed for fixture %s: %s", fixture_id, exc)

    return result


def replay_fixture_ids(repo: MatchRepository, archive, fixture_ids) -> dict:
    """Replay archived fixtures; returns the same stats dict as ``import_fixtures``."""
    stats = _new_stats(len(fixture_ids))
    for fixture_id in fixture_ids:
        _tally(stats, replay_fixture(repo, archive, fixture_id))

    _log_import_stats(stats)
    return stats


def _load_archived(archive, fixture_id: str) -> dict:
    if archive.exists(kind="fixture_detail", key=fixture_id):
        return archive.load(kind="fixture_detail", key=fixture_id)
    if archive.exists(kind="fixture_summary", key=fixture_id):
        summary = archive.load(kind="fixture_summary", key=fixture_id)
        return {**summary, "lineups": [], "events": []}
    raise FixtureNotFound(f"No archived payload for fixture {fixture_id}")


def _store_fixture(
    repo: MatchRepository,
    fixture_id: str,
    fixture: dict,
    result: ImportResult,
) -> None:
    record = build_match_record(fixture, datetime.now(timezone.utc))

    created = repo.upsert_match(fixture_id, record)
    change = repo.sync_live_view(fixture_id)

    result.status = record["status"]
    result.ok = True
    logger.info(
        "%s match %s (%s vs %s, %s)%s",
        "Imported" if created else "Updated",
        fixture_id,
        record["homeTeam"],
        record["awayTeam"],
        record["status"],
        _LIVE_NOTES.get(change, ""),
    )


async def _fetch_fixture(client, fixture_id: str, summary: dict | None, archive) -> dict:
    """Return the detail row, or the summary row if the detail is unavailable."""
    try:
        detail = await client.get_fixture(fixture_id)
    except RemoteSourceError as exc:
        if summary is None:
            raise
        logger.warning(
            "Detail unavailable for fixture %s (%s), using summary data",
            fixture_id,
            exc,
        )
        if archive is not None:
            archive.save(summary, kind="fixture_summary", key=fixture_id)
        # Summary rows never carry lineups or events.
        return {**summary, "lineups": [], "events": []}

    if archive is not None:
        archive.save(detail, kind="fixture_detail", key=fixture_id)
    return detail


def _fixture_id(row: dict):
    return (row.get("fixture") or {}).get("id")


async def import_fixtures(
    client,
    repo: MatchRepository,
    fixtures: list[dict],
    archive=None,
) -> dict:
    """Import a batch of fixture rows, one at a time.

    A failure on one fixture is logged and counted; the batch continues.

    Returns:
        Dict with stats: requested, imported, live, failed, errors
        (``{fixture_id: message}``).
    """
    stats = _new_stats(len(fixtures))

    for row in fixtures:
        fixture_id = _fixture_id(row)
        if fixture_id is None:
            logger.error("Skipping fixture row without an id: %r", row)
            stats["failed"] += 1
            stats["errors"]["?"] = "fixture row has no id"
            continue

        result = await import_fixture(client, repo, fixture_id, summary=row, archive=archive)
        _tally(stats, result)

    _log_import_stats(stats)
    return stats


async def import_fixture_ids(
    client,
    repo: MatchRepository,
    fixture_ids,
    archive=None,
) -> dict:
    """Import fixtures known only by id (no summary row to fall back on).

    Returns the same stats dict as ``import_fixtures``.
    """
    stats = _new_stats(len(fixture_ids))
    for fixture_id in fixture_ids:
        result = await import_fixture(client, repo, fixture_id, archive=archive)
        _tally(stats, result)

    _log_import_stats(stats)
    return stats


def _new_stats(requested: int) -> dict:
    return {
        "requested": requested,
        "imported": 0,
        "live": 0,
        "failed": 0,
        "errors": {},
    }


def _tally(stats: dict, result: ImportResult) -> None:
    if result.ok:
        stats["imported"] += 1
        if result.status == LIVE:
            stats["live"] += 1
    else:
        stats["failed"] += 1
        stats["errors"][result.fixture_id] = result.error


def _log_import_stats(stats: dict) -> None:
    logger.info(
        "Import complete: %d/%d imported (%d live), %d failed",
        stats["imported"],
        stats["requested"],
        stats["live"],
        stats["failed"],
    )


async def sync_league_fixtures(
    client,
    repo: MatchRepository,
    league_id: int,
    count: int = 20,
    archive=None,
) -> dict:
    """List a league's upcoming fixtures and import all of them.

    A failure of the listing itself propagates to the caller.
    """
    fixtures = await list_upcoming_fixtures(client, league_id, count)
    stats = await import_fixtures(client, repo, fixtures, archive=archive)
    stats["league_id"] = league_id
    return stats


def reconcile_live_matches(repo: MatchRepository) -> dict:
    """Make ``live_matches`` match the set of matches whose status is live.

    Removes live copies whose match is missing or no longer live and adds
    copies (and banter rooms) for live matches that have none.

    Returns:
        Dict with stats: checked, removed, added.
    """
    stats = {"checked": 0, "removed": 0, "added": 0}

    matches = {match["id"]: match for match in repo.all_matches()}
    live_ids = {doc["id"] for doc in repo.list_live_matches()}

    for match_id in sorted(live_ids | set(matches)):
        match = matches.get(match_id)
        is_live = match is not None and match.get("status") == LIVE
        if match_id not in live_ids and not is_live:
            continue

        stats["checked"] += 1
        if is_live and match_id in live_ids:
            continue
        change = repo.sync_live_view(match_id, match)
        if change == LIVE_REMOVED:
            stats["removed"] += 1
        elif change == LIVE_ADDED:
            stats["added"] += 1

    logger.info(
        "Live view reconciled: %d checked, %d removed, %d added",
        stats["checked"],
        stats["removed"],
        stats["added"],
    )
    return stats
