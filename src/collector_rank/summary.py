"""Reduce a user's collection rows to album count and estimated value."""
from __future__ import annotations

from dataclasses import dataclass

from collector_rank.db import Database


@dataclass(frozen=True)
class CollectionSummary:
    total_albums: int = 0
    collection_value: float = 0.0


def _price(value: object) -> float:
    # bool is an int subclass but never a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def summarize_collection(rows: list[dict]) -> CollectionSummary:
    """Count rows and sum their avg_price. Missing or non-numeric prices count as 0."""
    total_value = sum(_price(row.get("avg_price")) for row in rows)
    return CollectionSummary(total_albums=len(rows), collection_value=total_value)


def get_user_collection_summary(db: Database, user_id: str) -> CollectionSummary:
    """Read a user's collection from the store and summarize it.

    Raises DataAccessError if the read fails.
    """
    return summarize_collection(db.get_user_collection(user_id))
