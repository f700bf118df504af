"""CLI entry point for the DiskiChat admin console.

Provides ``main()`` as the sync entry point for the ``diskiadmin`` console
script, and ``async_main(args)`` which sets up logging, opens the store,
runs one admin command and prints its result. The exit code is non-zero
when the command failed or any item in a batch failed.

Usage::

    diskiadmin fixtures list 39                   # next 20 Premier League fixtures
    diskiadmin fixtures sync 288 39 --count 10    # import upcoming fixtures
    diskiadmin fixtures import 1035037 1035038    # (re-)import specific fixtures
    diskiadmin live reconcile                     # repair the live view
    diskiadmin matches motd <match_id>            # toggle match of the day
    diskiadmin users ban <uid>
    diskiadmin notify "Kick-off" "Chiefs vs Pirates starts now"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from diskiadmin import analytics, catalog, importer, matches, users
from diskiadmin.api_client import FootballApiClient
from diskiadmin.config import AdminConfig
from diskiadmin.exceptions import AdminError, ConfigError
from diskiadmin.logging_config import setup_logging
from diskiadmin.notifications import PushNotifier
from diskiadmin.repository import CatalogRepository, MatchRepository, UserRepository
from diskiadmin.storage import PayloadArchive
from diskiadmin.store import open_store

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the diskiadmin CLI."""
    parser = argparse.ArgumentParser(
        prog="diskiadmin",
        description="Admin console for the DiskiChat football chat app",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Data directory for the local store, payload archive and logs (default: data)",
    )
    parser.add_argument(
        "--backend",
        choices=("sqlite", "firestore"),
        default=None,
        help="Document store backend (default: DISKIADMIN_STORE_BACKEND or sqlite)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show DEBUG output on the console",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # fixtures
    fixtures = commands.add_parser("fixtures", help="Browse and import API-Football fixtures")
    fixtures_cmd = fixtures.add_subparsers(dest="action", required=True)
    p = fixtures_cmd.add_parser("list", help="List a league's upcoming fixtures")
    p.add_argument("league_id", type=int)
    p.add_argument("--count", type=int, default=None, help="Number of fixtures (default: 20)")
    p = fixtures_cmd.add_parser("import", help="Import fixtures by id")
    p.add_argument("fixture_ids", nargs="+")
    p = fixtures_cmd.add_parser("sync", help="Import the upcoming fixtures of leagues")
    p.add_argument("league_ids", type=int, nargs="+")
    p.add_argument("--count", type=int, default=None, help="Fixtures per league (default: 20)")
    p = fixtures_cmd.add_parser("replay", help="Re-import fixtures from archived payloads")
    p.add_argument("fixture_ids", nargs="+")

    # live
    live = commands.add_parser("live", help="Maintain the live-match view")
    live_cmd = live.add_subparsers(dest="action", required=True)
    live_cmd.add_parser("reconcile", help="Align live_matches with match statuses")

    # matches
    match_parser = commands.add_parser("matches", help="Manage matches")
    matches_cmd = match_parser.add_subparsers(dest="action", required=True)
    matches_cmd.add_parser("list", help="List matches, newest first")
    p = matches_cmd.add_parser("show", help="Show a match with live data and banter presence")
    p.add_argument("match_id")
    p.add_argument("--no-api", action="store_true", help="Do not query API-Football")
    p = matches_cmd.add_parser("create", help="Create a manual match")
    _add_match_form_args(p, required=True)
    p = matches_cmd.add_parser("edit", help="Edit a match")
    p.add_argument("match_id")
    _add_match_form_args(p, required=False)
    p = matches_cmd.add_parser("delete", help="Delete a match")
    p.add_argument("match_id")
    p = matches_cmd.add_parser("motd", help="Toggle match of the day")
    p.add_argument("match_id")

    # teams
    teams = commands.add_parser("teams", help="Manage teams")
    teams_cmd = teams.add_subparsers(dest="action", required=True)
    p = teams_cmd.add_parser("list", help="List teams")
    p.add_argument("--search", default=None, help="Filter by team or venue name")
    p = teams_cmd.add_parser("sync", help="Sync a league's teams for a season")
    p.add_argument("league_id", type=int)
    p.add_argument("season", type=int)

    # competitions
    comps = commands.add_parser("competitions", help="Manage competitions")
    comps_cmd = comps.add_subparsers(dest="action", required=True)
    comps_cmd.add_parser("list", help="List competitions")
    p = comps_cmd.add_parser("sync", help="Sync competitions (default: the configured set)")
    p.add_argument("league_ids", type=int, nargs="*")

    # users
    user_parser = commands.add_parser("users", help="Moderate users")
    users_cmd = user_parser.add_subparsers(dest="action", required=True)
    p = users_cmd.add_parser("list", help="List users by points")
    p.add_argument("--limit", type=int, default=100)
    p.add_argument("--search", default=None, help="Filter by username, name or email")
    for action in ("show", "suspend", "ban", "activate"):
        p = users_cmd.add_parser(action, help=f"{action.capitalize()} a user")
        p.add_argument("uid")

    # notify
    p = commands.add_parser("notify", help="Broadcast a push notification")
    p.add_argument("title")
    p.add_argument("message")

    # analytics
    p = commands.add_parser("analytics", help="Show engagement figures")
    p.add_argument("--feedback-limit", type=int, default=20)

    return parser


def _add_match_form_args(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--home", required=required, help="Home team name")
    parser.add_argument("--away", required=required, help="Away team name")
    parser.add_argument("--date", required=required, help="YYYY-MM-DD")
    parser.add_argument("--time", required=required, help="HH:MM")
    parser.add_argument("--venue", default=None)
    parser.add_argument("--status", default=None, help="upcoming, live or finished")
    parser.add_argument("--home-score", type=int, default=None)
    parser.add_argument("--away-score", type=int, default=None)
    parser.add_argument(
        "--motd",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mark as match of the day",
    )


_FORM_FIELDS = {
    "home": "homeTeam",
    "away": "awayTeam",
    "date": "date",
    "time": "time",
    "venue": "venue",
    "status": "status",
    "home_score": "homeScore",
    "away_score": "awayScore",
    "motd": "isMatchOfTheDay",
}


def _form_from_args(args: argparse.Namespace, base: dict | None = None) -> dict:
    form = {field: base[field] for field in _FORM_FIELDS.values() if base and field in base}
    for attr, field in _FORM_FIELDS.items():
        value = getattr(args, attr, None)
        if value is not None:
            form[field] = value
    return form


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _format_fixture(row: dict) -> str:
    info = row.get("fixture") or {}
    teams = row.get("teams") or {}
    return "{:>8}  {}  {} vs {}  [{}]".format(
        info.get("id", "?"),
        info.get("date", "?"),
        (teams.get("home") or {}).get("name", "?"),
        (teams.get("away") or {}).get("name", "?"),
        (info.get("status") or {}).get("short", "?"),
    )


def _format_match(match: dict) -> str:
    star = "*" if match.get("isMatchOfTheDay") else " "
    return "{} {:<22} {} {} {} vs {} {}-{} [{}]".format(
        star,
        match.get("id", "?"),
        match.get("date", "?"),
        match.get("time", "?"),
        match.get("homeTeam", "?"),
        match.get("awayTeam", "?"),
        match.get("homeScore", 0),
        match.get("awayScore", 0),
        match.get("status", "?"),
    )


def _format_import_stats(stats: dict) -> str:
    lines = [
        "=" * 60,
        "Import complete",
        "-" * 60,
        f"Requested:   {stats.get('requested', 0)}",
        f"Imported:    {stats.get('imported', 0)} ({stats.get('live', 0)} live)",
        f"Failed:      {stats.get('failed', 0)}",
    ]
    for fixture_id, error in stats.get("errors", {}).items():
        lines.append(f"  {fixture_id}: {error}")
    lines.append("=" * 60)
    return "\n".join(lines)


def _merge_stats(total: dict, stats: dict) -> None:
    for key in ("requested", "imported", "live", "failed"):
        total[key] = total.get(key, 0) + stats.get(key, 0)
    total.setdefault("errors", {}).update(stats.get("errors", {}))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _archive(config: AdminConfig) -> PayloadArchive | None:
    if not config.archive_payloads:
        return None
    return PayloadArchive(Path(config.data_dir) / "raw")


async def _fixtures(args, config, store) -> int:
    count = getattr(args, "count", None) or config.upcoming_count
    repo = MatchRepository(store)

    if args.action == "replay":
        archive = PayloadArchive(Path(config.data_dir) / "raw")
        stats = importer.replay_fixture_ids(repo, archive, args.fixture_ids)
        print(_format_import_stats(stats))
        return 1 if stats["failed"] else 0

    async with FootballApiClient(config) as client:
        if args.action == "list":
            rows = await importer.list_upcoming_fixtures(client, args.league_id, count)
            for row in rows:
                print(_format_fixture(row))
            return 0

        if args.action == "import":
            stats = await importer.import_fixture_ids(
                client, repo, args.fixture_ids, archive=_archive(config)
            )
            print(_format_import_stats(stats))
            return 1 if stats["failed"] else 0

        # sync
        total = {}
        for league_id in args.league_ids:
            try:
                stats = await importer.sync_league_fixtures(
                    client, repo, league_id, count, archive=_archive(config)
                )
            except AdminError as exc:
                logger.error("Could not list fixtures for league %s: %s", league_id, exc)
                stats = {"failed": 1, "errors": {f"league {league_id}": str(exc)}}
            _merge_stats(total, stats)
        print(_format_import_stats(total))
        return 1 if total["failed"] else 0


async def _live(args, config, store) -> int:
    stats = importer.reconcile_live_matches(MatchRepository(store))
    print(
        f"Checked {stats['checked']}, removed {stats['removed']}, added {stats['added']}"
    )
    return 0


async def _matches(args, config, store) -> int:
    repo = MatchRepository(store)

    if args.action == "list":
        for match in matches.list_matches(repo):
            print(_format_match(match))
    elif args.action == "show":
        if args.no_api or not config.api_key:
            detail = await matches.get_match_detail(
                repo, args.match_id, active_users_limit=config.active_users_limit
            )
        else:
            async with FootballApiClient(config) as client:
                detail = await matches.get_match_detail(
                    repo, args.match_id, client, config.active_users_limit
                )
        _print_json(detail)
    elif args.action == "create":
        match_id = matches.create_match(repo, _form_from_args(args))
        print(f"Created match {match_id}")
    elif args.action == "edit":
        current = repo.require_match(args.match_id)
        matches.update_match(repo, args.match_id, _form_from_args(args, base=current))
        print(f"Updated match {args.match_id}")
    elif args.action == "delete":
        matches.delete_match(repo, args.match_id)
        print(f"Deleted match {args.match_id}")
    elif args.action == "motd":
        flag = matches.toggle_match_of_the_day(repo, args.match_id)
        print(f"Match {args.match_id} match of the day: {'on' if flag else 'off'}")
    return 0


async def _teams(args, config, store) -> int:
    repo = CatalogRepository(store)

    if args.action == "list":
        rows = (
            catalog.search_teams(repo, args.search)
            if args.search
            else catalog.list_teams(repo)
        )
        for team in rows:
            print(f"{team.get('id'):>6}  {team.get('name')}  ({team.get('venue_name') or '-'})")
        return 0

    async with FootballApiClient(config) as client:
        stats = await catalog.sync_teams(
            client, repo, args.league_id, args.season, archive=_archive(config)
        )
    print(f"Fetched {stats['fetched']}, saved {stats['saved']}, failed {stats['failed']}")
    return 1 if stats["failed"] else 0


async def _competitions(args, config, store) -> int:
    repo = CatalogRepository(store)

    if args.action == "list":
        for comp in catalog.list_competitions(repo):
            print(
                f"{comp.get('id'):>6}  {comp.get('name')}  "
                f"({comp.get('country') or '-'}, {comp.get('type') or '-'}, "
                f"season {comp.get('season') or '-'})"
            )
        return 0

    ids = args.league_ids or list(config.default_competition_ids)
    async with FootballApiClient(config) as client:
        stats = await catalog.sync_competitions(client, repo, ids, archive=_archive(config))
    print(f"Processed {stats['count']} competitions, {stats['failed']} failed")
    for league_id, error in stats["errors"].items():
        print(f"  {league_id}: {error}")
    return 1 if stats["failed"] else 0


async def _users(args, config, store) -> int:
    repo = UserRepository(store)

    if args.action == "list":
        rows = (
            users.search_users(repo, args.search)
            if args.search
            else users.list_users(repo, limit=args.limit)
        )
        for user in rows:
            print(f"{user.id:<30} {user.label:<25} {user.points:>6}  {user.status}")
    elif args.action == "show":
        _print_json(users.get_user(repo, args.uid).model_dump(by_alias=True))
    else:
        transition = {
            "suspend": users.suspend,
            "ban": users.ban,
            "activate": users.activate,
        }[args.action]
        user = transition(repo, args.uid)
        print(f"User {user.id} is now {user.status}")
    return 0


async def _notify(args, config, store) -> int:
    async with PushNotifier(config) as notifier:
        notification_id = await notifier.broadcast(args.title, args.message)
    print(f"Notification sent (id={notification_id})")
    return 0


async def _analytics(args, config, store) -> int:
    _print_json(analytics.get_dashboard(store, feedback_limit=args.feedback_limit))
    return 0


COMMANDS = {
    "fixtures": _fixtures,
    "live": _live,
    "matches": _matches,
    "teams": _teams,
    "competitions": _competitions,
    "users": _users,
    "notify": _notify,
    "analytics": _analytics,
}


def build_config(args: argparse.Namespace) -> AdminConfig:
    """Environment config with command-line overrides applied.

    Raises:
        ConfigError: A setting in the environment has an invalid value.
    """
    overrides = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.backend is not None:
        overrides["store_backend"] = args.backend
    try:
        return AdminConfig(**overrides)
    except ValidationError as exc:
        problems = "; ".join(
            "{}: {}".format(".".join(str(p) for p in err["loc"]), err["msg"])
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc


async def async_main(args: argparse.Namespace) -> int:
    """Async entry point: set up logging and the store, run one command."""
    try:
        config = build_config(args)
    except ConfigError as exc:
        # Logging is not configured yet; this goes to stderr.
        logger.error("%s", exc)
        return 1

    log_file = setup_logging(
        data_dir=config.data_dir,
        console_level=logging.DEBUG if args.verbose else logging.INFO,
    )
    logger.debug(
        "diskiadmin %s %s (backend=%s, log=%s)",
        args.command, getattr(args, "action", ""), config.store_backend, log_file,
    )

    store = None
    try:
        store = open_store(config)
        return await COMMANDS[args.command](args, config, store)
    except AdminError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if store is not None:
            store.close()
        logging.shutdown()


def main() -> None:
    """Sync entry point for the diskiadmin console script."""
    parser = build_parser()
    args = parser.parse_args()
    try:
        code = asyncio.run(async_main(args))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
