"""MCP server for collector-rank.

Exposes collector rank, tier share, distribution and leaderboard as MCP tools.
Run via: python3 -m collector_rank.mcp_server
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from collector_rank.config import get_db_path, get_default_user, load_config, load_tiers
from collector_rank.db import DataAccessError, Database
from collector_rank.levels import ConfigurationError, compute_collector_rank

mcp = FastMCP(name="collector-rank")


def _get_db():
    return Database(db_path=get_db_path(load_config()))


def _get_tiers():
    return load_tiers(load_config())


def _resolve_user(user_id: str) -> str | None:
    return user_id or get_default_user()


@mcp.tool()
def compute_rank(total_albums: float, collection_value: float) -> dict[str, Any]:
    """Compute a collector rank from an album count and collection value, without the store."""
    try:
        rank = compute_collector_rank(total_albums, collection_value, _get_tiers())
    except ConfigurationError as exc:
        return {"error": f"Invalid tier configuration: {exc}"}
    return rank.to_dict()


@mcp.tool()
def get_rank(user_id: str = "") -> dict[str, Any]:
    """Get a user's collector rank, collection totals and tier share.

    user_id: defaults to the configured user.
    """
    from collector_rank.ranking import get_rank_overview

    user = _resolve_user(user_id)
    if not user:
        return {"error": "No user given and no default user configured."}
    try:
        tiers = _get_tiers()
        db = _get_db()
    except (ConfigurationError, DataAccessError) as exc:
        return {"error": str(exc)}
    try:
        overview = get_rank_overview(db, user, tiers)
        return {
            "user_id": user,
            "total_albums": overview.summary.total_albums,
            "collection_value": overview.summary.collection_value,
            "rank": overview.rank.to_dict(),
            "tier_share": overview.share.share if overview.share else None,
            "persisted": overview.persisted,
        }
    except DataAccessError as exc:
        return {"error": f"Could not read collection: {exc}"}
    finally:
        db.close()


@mcp.tool()
def get_tier_share(user_id: str = "") -> dict[str, Any]:
    """Get the fraction of ranked collectors at the same tier as the user."""
    from collector_rank.ranking import get_current_user_tier_share

    user = _resolve_user(user_id)
    if not user:
        return {"error": "No user given and no default user configured."}
    try:
        tiers = _get_tiers()
        db = _get_db()
    except (ConfigurationError, DataAccessError) as exc:
        return {"error": str(exc)}
    try:
        share = get_current_user_tier_share(db, user, tiers)
    except DataAccessError as exc:
        return {"error": str(exc)}
    finally:
        db.close()
    if share is None:
        return {"user_id": user, "tier_share": None}
    return {
        "user_id": user,
        "tier": share.tier,
        "users_at_tier": share.users_at_tier,
        "total_users": share.total_users,
        "tier_share": share.share,
    }


@mcp.tool()
def get_tier_distribution() -> dict[str, Any]:
    """Get the number of ranked collectors at each tier."""
    from collector_rank.ranking import get_tier_distribution as tier_distribution

    try:
        tiers = _get_tiers()
        db = _get_db()
    except (ConfigurationError, DataAccessError) as exc:
        return {"error": str(exc)}
    try:
        distribution = tier_distribution(db, tiers)
    except DataAccessError as exc:
        return {"error": str(exc)}
    finally:
        db.close()
    total = distribution[0].total_users if distribution else 0
    return {
        "total_users": total,
        "tiers": [{"tier": c.tier, "users_at_tier": c.users_at_tier} for c in distribution],
    }


@mcp.tool()
def get_leaderboard(limit: int = 50) -> dict[str, Any]:
    """Get the collector leaderboard ordered by collection value, then album count."""
    from collector_rank.leaderboard import build_leaderboard

    try:
        tiers = _get_tiers()
        db = _get_db()
    except (ConfigurationError, DataAccessError) as exc:
        return {"error": str(exc)}
    try:
        entries = build_leaderboard(db, tiers)
    except DataAccessError as exc:
        return {"error": str(exc)}
    finally:
        db.close()
    return {"entries": entries[:limit], "count": len(entries)}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
