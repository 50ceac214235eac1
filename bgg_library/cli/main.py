"""
Main CLI entry point for the BGG Library package.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..config import DATABASE_PATH, DEFAULT_STATUS, GAME_STATUSES
from ..error_handling import BGGError, SyncFailed, handle_errors
from ..grouping import GAME_TYPES, SORT_OPTIONS, display_title, filter_groups, sort_groups
from ..logging_config import setup_logging
from ..models import GroupedGame
from ..service import LibraryService

logger = logging.getLogger(__name__)


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def print_groups(groups: List[GroupedGame]) -> None:
    """Print grouped library entries as an indented list."""
    if not groups:
        print("No games in library.")
        return
    for group in groups:
        base = group.base_game
        year = f" ({base.game.year_published})" if base.game.year_published else ""
        tag = " [expansion]" if base.game.is_expansion else ""
        print(f"- {display_title(base.game)}{year}{tag} | {base.status} | BGG {base.game.bgg_id}")
        for expansion in group.expansions:
            print(f"    └─ {display_title(expansion.game)} | {expansion.status} | BGG {expansion.game.bgg_id}")
    print(f"\nTotal groups: {len(groups)}  |  Total entries: {sum(g.total_count for g in groups)}")


@handle_errors(default_return={})
def _statistics(service: LibraryService, user_id: str) -> dict:
    return service.get_statistics(user_id)


def print_statistics(service: LibraryService, user_id: str) -> None:
    stats = _statistics(service, user_id)
    _banner(f"LIBRARY OF {user_id}")
    print(f"Total owned games: {stats.get('total_owned', 0)}")
    print(f"  - Base games: {stats.get('owned_base_games', 0)}  |  Expansions: {stats.get('owned_expansions', 0)}")
    for status, count in stats.get('by_status', {}).items():
        print(f"  {status}: {count}")
    print(f"Games in catalog: {stats.get('total_games_in_catalog', 0)}")
    print("=" * 60)


def cmd_search(service: LibraryService, args) -> int:
    results = service.search_games(args.term)
    if not results:
        print(f"No games found for '{args.term}'")
        return 0
    for result in results:
        year = f" ({result.year_published})" if result.year_published else ""
        print(f"{result.bgg_id:>8}  {result.name}{year}")
    return 0


def cmd_add(service: LibraryService, args) -> int:
    user_game = service.add_game(args.user, args.bgg_id, args.status)
    print(f"✓ {user_game.game.name} is in the library of {args.user} ({user_game.status})")
    return 0


def cmd_sync(service: LibraryService, args) -> int:
    passes = max(1, args.passes)
    outcome = None
    for run in range(1, passes + 1):
        if passes > 1:
            logger.info(f"Sync pass {run}/{passes}")
        outcome = service.sync_collection(args.username, args.user, refresh_existing=args.refresh,
                                          owned_only=not args.all_statuses)
        if outcome.added == 0 and outcome.failed == 0:
            logger.info("No new games in this pass; collection has converged")
            break

    _banner("SYNC RESULTS")
    print(outcome.message)
    for failure in outcome.failures:
        print(f"✗ FAILED | {failure.name} ({failure.bgg_id}) | {failure.error}")
    print_statistics(service, args.user)
    return 0


def cmd_library(service: LibraryService, args) -> int:
    groups = service.group_library(args.user)
    groups = filter_groups(groups, query=args.query, status=args.status, game_type=args.type)
    groups = sort_groups(groups, args.sort)
    _banner(f"LIBRARY OF {args.user}")
    print_groups(groups)
    return 0


def cmd_link(service: LibraryService, args) -> int:
    game = service.set_expansion_relationship(args.bgg_id, True, args.base_bgg_id)
    print(f"✓ {display_title(game)} is now an expansion of BGG {game.base_game_bgg_id}")
    return 0


def cmd_unlink(service: LibraryService, args) -> int:
    game = service.ungroup_game(args.bgg_id)
    print(f"✓ {display_title(game)} is now a base game")
    return 0


def cmd_stats(service: LibraryService, args) -> int:
    print_statistics(service, args.user)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync BoardGameGeek collections and browse grouped libraries")
    parser.add_argument("--db", type=Path, default=DATABASE_PATH, help="Database file path")
    parser.add_argument("--log-file", type=str, default=None, help="Custom log file name or absolute path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search BGG for games")
    search.add_argument("term", help="Game name to search for")
    search.set_defaults(func=cmd_search)

    add = subparsers.add_parser("add", help="Add one BGG game to a library")
    add.add_argument("user", help="Local user id")
    add.add_argument("bgg_id", type=int, help="BGG id of the game")
    add.add_argument("--status", choices=GAME_STATUSES, default=DEFAULT_STATUS)
    add.set_defaults(func=cmd_add)

    sync = subparsers.add_parser("sync", help="Import a BGG collection")
    sync.add_argument("username", help="BGG username")
    sync.add_argument("user", help="Local user id")
    sync.add_argument("--passes", type=int, default=1,
                      help="Repeat the sync up to N times; large collections may need 2-4 passes")
    sync.add_argument("--refresh", action="store_true", help="Refresh metadata of games already in the library")
    sync.add_argument("--all-statuses", action="store_true",
                      help="Import the whole collection, not only owned games")
    sync.set_defaults(func=cmd_sync)

    library = subparsers.add_parser("library", help="Show a library grouped by base game")
    library.add_argument("user", help="Local user id")
    library.add_argument("--query", default="", help="Filter by title")
    library.add_argument("--status", choices=GAME_STATUSES, default=None)
    library.add_argument("--type", choices=GAME_TYPES, default="all")
    library.add_argument("--sort", choices=sorted(SORT_OPTIONS), default="name")
    library.set_defaults(func=cmd_library)

    link = subparsers.add_parser("link", help="Mark a game as an expansion of another")
    link.add_argument("bgg_id", type=int, help="BGG id of the expansion")
    link.add_argument("base_bgg_id", type=int, help="BGG id of the base game")
    link.set_defaults(func=cmd_link)

    unlink = subparsers.add_parser("unlink", help="Mark a game as a base game")
    unlink.add_argument("bgg_id", type=int, help="BGG id of the game")
    unlink.set_defaults(func=cmd_unlink)

    stats = subparsers.add_parser("stats", help="Show library statistics")
    stats.add_argument("user", help="Local user id")
    stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Build a default per-run log filename when not provided
    if args.log_file:
        log_file = args.log_file
    else:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"run_{ts}_{args.command}.log"
    setup_logging(log_file, level=logging.DEBUG if args.verbose else logging.INFO)

    service = LibraryService(db_path=args.db)
    try:
        return args.func(service, args)
    except SyncFailed as e:
        print(f"\n✗ Sync failed: {e}")
        return 1
    except (BGGError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"\n✗ {e}")
        return 1
    except KeyboardInterrupt:
        print("\nProcess interrupted by user")
        return 130
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
