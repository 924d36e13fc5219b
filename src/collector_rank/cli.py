"""CLI commands for collector-rank."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from collector_rank.config import (
    get_db_path,
    get_default_user,
    get_log_level,
    load_config,
    load_tiers,
    set_default_user,
)
from collector_rank.db import DataAccessError, Database
from collector_rank.display import (
    configure_logging,
    console,
    print_distribution,
    print_leaderboard,
    print_no_data_message,
    print_rank_card,
    print_snapshot_result,
)
from collector_rank.leaderboard import build_leaderboard
from collector_rank.levels import DEFAULT_TIERS, CollectorTier, ConfigurationError, compute_collector_rank
from collector_rank.ranking import (
    backfill_rankings,
    get_current_user_tier_share,
    get_rank_overview,
    get_tier_distribution,
    upsert_user_ranking,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="collector-rank",
        description="Collector rank for your vinyl collection",
    )
    parser.add_argument("--config", default=None, help="Path to config.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    rank_p = subparsers.add_parser("rank", help="Show collector rank card")
    rank_p.add_argument("--user", "-u", default=None, help="User id (defaults to configured user)")
    rank_p.add_argument("--albums", type=float, default=None, help="Compute offline from an album count")
    rank_p.add_argument("--value", type=float, default=None, help="Compute offline from a collection value")
    rank_p.add_argument("--no-save", action="store_true", help="Do not persist the ranking snapshot")

    sync_p = subparsers.add_parser("sync", help="Recompute and save a user's ranking")
    sync_p.add_argument("--user", "-u", default=None)

    subparsers.add_parser("backfill", help="Recompute rankings for every user")

    share_p = subparsers.add_parser("share", help="Share of collectors at your tier")
    share_p.add_argument("--user", "-u", default=None)

    subparsers.add_parser("distribution", help="Collectors per tier")

    lb_p = subparsers.add_parser("leaderboard", help="Collector leaderboard")
    lb_p.add_argument("--user", "-u", default=None, help="Highlight this user")

    profile_p = subparsers.add_parser("profile", help="Manage profiles")
    profile_sub = profile_p.add_subparsers(dest="profile_command")
    profile_add_p = profile_sub.add_parser("add", help="Create or update a profile")
    profile_add_p.add_argument("user_id")
    profile_add_p.add_argument("--username", required=True)
    profile_add_p.add_argument("--full-name", default=None)
    profile_use_p = profile_sub.add_parser("use", help="Set the default user")
    profile_use_p.add_argument("user_id")

    coll_p = subparsers.add_parser("collection", help="Manage a collection")
    coll_sub = coll_p.add_subparsers(dest="collection_command")
    coll_add_p = coll_sub.add_parser("add", help="Add an album to a collection")
    coll_add_p.add_argument("--user", "-u", default=None)
    coll_add_p.add_argument("--title", "-t", required=True)
    coll_add_p.add_argument("--artist", "-a", default=None)
    coll_add_p.add_argument("--price", "-p", type=float, default=None, help="Average market price")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "rank"

    config_path = Path(args.config).expanduser() if args.config else None
    config = load_config(config_path)
    configure_logging("DEBUG" if args.verbose else get_log_level(config))

    try:
        tiers = load_tiers(config)
    except ConfigurationError as exc:
        console.print(f"[red]Invalid tier configuration: {exc}[/]")
        return 2

    user_id = getattr(args, "user", None) or get_default_user(config_path)

    albums = getattr(args, "albums", None)
    value = getattr(args, "value", None)
    if command == "rank" and (albums is not None or value is not None):
        if albums is None or value is None:
            parser.error("--albums and --value must be given together")
        do_rank_offline(albums, value, tiers)
        return 0

    if command == "profile":
        if args.profile_command is None:
            parser.error("profile needs a subcommand: add or use")
        if args.profile_command == "use":
            set_default_user(args.user_id, config_path)
            console.print(f"Default user set to [bold]{args.user_id}[/]")
            return 0

    if command == "collection" and args.collection_command is None:
        parser.error("collection needs a subcommand: add")

    if command in {"rank", "sync", "share", "collection"} and not user_id:
        console.print("[red]No user given. Use --user or run: collector-rank profile use <id>[/]")
        return 1

    try:
        db = Database(db_path=get_db_path(config))
    except DataAccessError as exc:
        console.print(f"[red]{exc}[/]")
        return 1

    try:
        if command == "rank":
            do_rank(db, user_id, tiers, persist=not getattr(args, "no_save", False))
        elif command == "sync":
            do_sync(db, user_id, tiers)
        elif command == "backfill":
            do_backfill(db, tiers)
        elif command == "share":
            do_share(db, user_id, tiers)
        elif command == "distribution":
            do_distribution(db, tiers)
        elif command == "leaderboard":
            do_leaderboard(db, tiers, highlight_user=user_id)
        elif command == "profile":
            db.add_profile(args.user_id, username=args.username, full_name=args.full_name)
            console.print(f"Profile [bold]{args.user_id}[/] saved")
        elif command == "collection":
            do_collection_add(db, user_id, args.title, args.artist, args.price)
    except DataAccessError as exc:
        console.print(f"[red]Store error: {exc}[/]")
        return 1
    finally:
        db.close()
    return 0


def do_rank_offline(
    total_albums: float, collection_value: float, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> dict:
    """Show a rank computed from known totals without touching the store."""
    rank = compute_collector_rank(total_albums, collection_value, tiers)
    print_rank_card(
        {"rank": rank, "total_albums": int(total_albums), "collection_value": collection_value,
         "local_only": True},
        tiers,
    )
    return {"ok": True, "rank": rank.to_dict()}


def do_rank(
    db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS, persist: bool = True
) -> dict:
    """Show the rank card for a user, with tier share when available."""
    overview = get_rank_overview(db, user_id, tiers, persist=persist)
    print_rank_card(
        {
            "rank": overview.rank,
            "total_albums": overview.summary.total_albums,
            "collection_value": overview.summary.collection_value,
            "share": overview.share,
            "local_only": persist and not overview.persisted,
        },
        tiers,
    )
    return {
        "ok": True,
        "rank": overview.rank.to_dict(),
        "total_albums": overview.summary.total_albums,
        "collection_value": overview.summary.collection_value,
        "share": overview.share.share if overview.share else None,
        "persisted": overview.persisted,
    }


def do_sync(db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> dict:
    """Recompute and persist one user's ranking snapshot."""
    snapshot = upsert_user_ranking(db, user_id, tiers)
    print_snapshot_result(snapshot)
    return {"ok": True, "tier": snapshot.tier, "total_albums": snapshot.total_albums,
            "collection_value": snapshot.collection_value}


def do_backfill(db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> dict:
    """Recompute every user's ranking snapshot."""
    processed, total = backfill_rankings(db, tiers)
    console.print(f"Backfill complete. Rankings updated: [bold]{processed}/{total}[/]")
    return {"ok": processed == total, "processed": processed, "total": total}


def do_share(db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> dict:
    """Show what share of ranked collectors sit at the user's tier."""
    share = get_current_user_tier_share(db, user_id, tiers)
    if share is None:
        print_no_data_message(user_id)
        return {"ok": False, "reason": "no_data"}
    console.print(
        f"[bold]{share.share * 100:.1f}%[/] of collectors are {share.tier} "
        f"({share.users_at_tier}/{share.total_users})"
    )
    return {"ok": True, "tier": share.tier, "share": share.share}


def do_distribution(db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> dict:
    """Show how many ranked collectors sit at each tier."""
    distribution = get_tier_distribution(db, tiers)
    print_distribution(distribution, tiers)
    total = distribution[0].total_users if distribution else 0
    return {"ok": True, "total_users": total,
            "tiers": {c.tier: c.users_at_tier for c in distribution}}


def do_leaderboard(
    db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS, highlight_user: str | None = None
) -> dict:
    """Show the collector leaderboard."""
    entries = build_leaderboard(db, tiers)
    print_leaderboard(entries, highlight_user=highlight_user, tiers=tiers)
    your_position = next(
        (e["position"] for e in entries if highlight_user and e["user_id"] == highlight_user), None
    )
    return {"ok": True, "entries": entries, "count": len(entries), "your_position": your_position}


def do_collection_add(
    db: Database, user_id: str, title: str, artist: str | None = None, price: float | None = None
) -> dict:
    """Add a new album to a user's collection."""
    album_id = db.add_album(title, artist=artist, avg_price=price)
    db.add_to_collection(user_id, album_id)
    logger.info("Added album %d (%s) to %s", album_id, title, user_id)
    console.print(f"Added [bold]{title}[/] to {user_id}'s collection")
    return {"ok": True, "album_id": album_id}


if __name__ == "__main__":
    sys.exit(main())
