"""Ranking snapshots and population queries for collector-rank.

Snapshots are one row per user in the store, recomputed from live collection
data on every upsert. Population queries read those snapshots.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from collector_rank.db import DataAccessError, Database
from collector_rank.levels import (
    DEFAULT_TIERS,
    CollectorRank,
    CollectorTier,
    compute_collector_rank,
)
from collector_rank.summary import CollectionSummary, get_user_collection_summary

logger = logging.getLogger(__name__)

BACKFILL_PROGRESS_EVERY = 25


@dataclass(frozen=True)
class RankingSnapshot:
    user_id: str
    tier: str
    level_index: int
    album_level_index: int
    value_level_index: int
    total_albums: int
    collection_value: float
    updated_at: str


@dataclass(frozen=True)
class TierCount:
    tier: str
    users_at_tier: int
    total_users: int


@dataclass(frozen=True)
class TierShare:
    tier: str
    users_at_tier: int
    total_users: int
    share: float


@dataclass
class RankOverview:
    user_id: str
    summary: CollectionSummary
    rank: CollectorRank
    share: TierShare | None = None
    persisted: bool = False


def get_rank_for_user(
    db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> tuple[CollectionSummary, CollectorRank]:
    """Summarize a user's live collection and compose their rank."""
    summary = get_user_collection_summary(db, user_id)
    rank = compute_collector_rank(summary.total_albums, summary.collection_value, tiers)
    return summary, rank


def build_snapshot(
    user_id: str,
    summary: CollectionSummary,
    rank: CollectorRank,
    now: datetime | None = None,
) -> RankingSnapshot:
    now = now or datetime.now(tz=timezone.utc)
    return RankingSnapshot(
        user_id=user_id,
        tier=rank.tier,
        level_index=rank.level_index,
        album_level_index=rank.album_level_index,
        value_level_index=rank.value_level_index,
        total_albums=summary.total_albums,
        collection_value=summary.collection_value,
        updated_at=now.isoformat(),
    )


def upsert_user_ranking(
    db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> RankingSnapshot:
    """Recompute a user's rank from live data and overwrite their snapshot."""
    summary, rank = get_rank_for_user(db, user_id, tiers)
    snapshot = build_snapshot(user_id, summary, rank)
    db.upsert_ranking(asdict(snapshot))
    logger.info(
        "Ranked %s as %s (%d albums, %.2f value)",
        user_id, snapshot.tier, snapshot.total_albums, snapshot.collection_value,
    )
    return snapshot


def get_ranking_snapshot(db: Database, user_id: str) -> RankingSnapshot | None:
    """Return the persisted snapshot for a user, or None."""
    row = db.get_ranking(user_id)
    if row is None:
        return None
    return RankingSnapshot(**row)


def get_tier_distribution(
    db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> list[TierCount]:
    """Return one TierCount per tier in tier order, zero-filled.

    Snapshot rows naming a tier outside the table still count toward the total.
    """
    rows = db.get_tier_distribution()
    counts = {row["tier"]: int(row["users_at_tier"]) for row in rows}
    total = int(rows[0]["total_users"]) if rows else 0
    unknown = set(counts) - {t.name for t in tiers}
    if unknown:
        logger.warning("Ignoring snapshots with unknown tiers: %s", sorted(unknown))
    return [
        TierCount(tier=t.name, users_at_tier=counts.get(t.name, 0), total_users=total)
        for t in tiers
    ]


def get_current_user_tier_share(
    db: Database, user_id: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> TierShare | None:
    """Fraction of ranked users sharing this user's persisted tier.

    Returns None when the user has no snapshot or nobody is ranked.
    """
    snapshot = db.get_ranking(user_id)
    if snapshot is None:
        return None
    distribution = get_tier_distribution(db, tiers)
    total = distribution[0].total_users if distribution else 0
    if total == 0:
        return None
    tier = snapshot["tier"]
    users_at_tier = next((c.users_at_tier for c in distribution if c.tier == tier), 0)
    return TierShare(
        tier=tier,
        users_at_tier=users_at_tier,
        total_users=total,
        share=users_at_tier / total,
    )


def get_rank_overview(
    db: Database,
    user_id: str,
    tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS,
    persist: bool = True,
) -> RankOverview:
    """Compute a user's rank, then try to persist it and look up their tier share.

    Failures on the persistence or share path are logged and leave the locally
    computed rank in place. Failures reading the collection itself propagate.
    """
    summary, rank = get_rank_for_user(db, user_id, tiers)
    overview = RankOverview(user_id=user_id, summary=summary, rank=rank)
    try:
        if persist:
            db.upsert_ranking(asdict(build_snapshot(user_id, summary, rank)))
            overview.persisted = True
        overview.share = get_current_user_tier_share(db, user_id, tiers)
    except DataAccessError as exc:
        logger.warning("Ranking store unavailable for %s, showing local rank: %s", user_id, exc)
        overview.share = None
    return overview


def backfill_rankings(
    db: Database, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS
) -> tuple[int, int]:
    """Upsert a snapshot for every known user. Returns (processed, total).

    A failure for one user is logged and does not stop the others.
    """
    user_ids = db.list_user_ids()
    logger.info("Found %d users, processing", len(user_ids))
    processed = 0
    for user_id in user_ids:
        try:
            upsert_user_ranking(db, user_id, tiers)
        except DataAccessError as exc:
            logger.warning("Failed to rank user %s: %s", user_id, exc)
            continue
        processed += 1
        if processed % BACKFILL_PROGRESS_EVERY == 0:
            logger.info("Updated %d/%d", processed, len(user_ids))
    logger.info("Backfill complete: %d/%d users updated", processed, len(user_ids))
    return processed, len(user_ids)
