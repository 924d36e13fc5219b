"""Collector leaderboard built from every user's live collection."""
from __future__ import annotations

import logging

from collector_rank.db import DataAccessError, Database
from collector_rank.levels import DEFAULT_TIERS, CollectorTier, compute_collector_rank
from collector_rank.summary import CollectionSummary, get_user_collection_summary

logger = logging.getLogger(__name__)


def build_entry(profile: dict, summary: CollectionSummary, tier: str) -> dict:
    """Construct a leaderboard entry dict from a profile row and its summary."""
    username = profile.get("username") or "Usuario"
    return {
        "user_id": profile["id"],
        "username": username,
        "full_name": profile.get("full_name") or username,
        "total_albums": summary.total_albums,
        "collection_value": summary.collection_value,
        "tier": tier,
    }


def rank_entries(entries: list[dict]) -> list[dict]:
    """Sort entries by collection_value descending. Adds 'position' key (1-based).

    Tie-break: total_albums desc, then username asc.
    """
    sorted_entries = sorted(
        entries,
        key=lambda e: (
            -e.get("collection_value", 0),
            -e.get("total_albums", 0),
            e.get("username", ""),
        ),
    )
    for i, entry in enumerate(sorted_entries):
        entry["position"] = i + 1
    return sorted_entries


def build_leaderboard(
    db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> list[dict]:
    """Summarize every named profile's collection and rank them.

    A user whose collection cannot be read is listed with an empty summary.
    """
    entries = []
    for profile in db.list_profiles():
        try:
            summary = get_user_collection_summary(db, profile["id"])
        except DataAccessError as exc:
            logger.warning("Could not read collection for %s: %s", profile.get("username"), exc)
            summary = CollectionSummary()
        rank = compute_collector_rank(summary.total_albums, summary.collection_value, tiers)
        entries.append(build_entry(profile, summary, rank.tier))
    ranked = rank_entries(entries)
    logger.debug("Leaderboard built with %d collectors", len(ranked))
    return ranked
