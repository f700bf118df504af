"""Match administration: manual matches, highlighting and match detail.

Manual matches are entered by staff through a form and get a
store-generated id. Every write that can change a status goes through
``MatchRepository.sync_live_view`` so manual matches follow the same live
view rule as imported ones.
"""

import logging

from diskiadmin.exceptions import RemoteSourceError
from diskiadmin.models import MatchFormModel
from diskiadmin.repository import MatchRepository
from diskiadmin.schema import MATCH_OF_THE_DAY_FIELD
from diskiadmin.validation import validate_or_raise

logger = logging.getLogger(__name__)


def list_matches(repo: MatchRepository) -> list[dict]:
    """All matches, most recently created first."""
    return repo.list_matches()


def create_match(repo: MatchRepository, form: dict) -> str:
    """Create a manual match from form input.

    Raises:
        ValidationFailed: A required field is missing or malformed.

    Returns:
        The new match id.
    """
    model = validate_or_raise(form, MatchFormModel, {"form": "create_match"})
    match_id = repo.add_match(model.model_dump(by_alias=True))
    repo.sync_live_view(match_id)
    logger.info(
        "Created match %s (%s vs %s, %s)",
        match_id,
        model.home_team,
        model.away_team,
        model.status,
    )
    return match_id


def update_match(repo: MatchRepository, match_id: str, form: dict) -> None:
    """Overwrite a match with edited form input.

    Only fields present in ``form`` are written, so an edit that leaves out
    ``isMatchOfTheDay`` keeps the current highlight.

    Raises:
        DocumentNotFound: No match with this id.
        ValidationFailed: A required field is missing or malformed.
    """
    repo.require_match(match_id)
    model = validate_or_raise(form, MatchFormModel, {"form": "update_match", "match_id": match_id})
    repo.update_match(match_id, model.model_dump(by_alias=True, exclude_unset=True))
    repo.sync_live_view(match_id)
    logger.info("Updated match %s", match_id)


def delete_match(repo: MatchRepository, match_id: str) -> None:
    """Delete a match and its live copy.

    Raises:
        DocumentNotFound: No match with this id.
    """
    repo.require_match(match_id)
    repo.delete_match(match_id)
    logger.info("Deleted match %s", match_id)


def toggle_match_of_the_day(repo: MatchRepository, match_id: str) -> bool:
    """Flip the match-of-the-day flag on one match and return the new value.

    Other matches keep their flag: several matches can be highlighted at
    once.
    """
    match = repo.require_match(match_id)
    flag = not match.get(MATCH_OF_THE_DAY_FIELD, False)
    repo.set_match_of_the_day(match_id, flag)
    logger.info("Match %s match-of-the-day -> %s", match_id, flag)
    return flag


def _summarize_fixture(fixture: dict) -> dict:
    info = fixture.get("fixture") or {}
    status = info.get("status") or {}
    return {
        "status": status.get("short"),
        "elapsed": status.get("elapsed"),
        "goals": fixture.get("goals") or {},
        "events": fixture.get("events") or [],
        "lineups": fixture.get("lineups") or [],
    }


async def get_match_detail(
    repo: MatchRepository,
    match_id: str,
    client=None,
    active_users_limit: int = 50,
) -> dict:
    """Return a match with its live API data and banter presence.

    ``live`` holds fresh status, elapsed minutes, events and lineups from
    the API when the match was imported and a client is given; it is None
    otherwise or when the API call fails.

    Raises:
        DocumentNotFound: No match with this id.
    """
    match = repo.require_match(match_id)

    live = None
    api_id = match.get("apiMatchId")
    if client is not None and api_id:
        try:
            live = _summarize_fixture(await client.get_fixture(api_id))
        except RemoteSourceError as exc:
            logger.warning("Could not refresh match %s from the API: %s", match_id, exc)

    return {
        "match": match,
        "live": live,
        "active_users": repo.list_active_users(match_id, limit=active_users_limit),
    }
