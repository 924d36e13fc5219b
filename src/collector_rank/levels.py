"""Collector tier and rank calculation. Pure functions, no side effects."""
from __future__ import annotations

import math
from dataclasses import dataclass


class ConfigurationError(ValueError):
    """Raised when a tier table breaks its ordering invariants."""


@dataclass(frozen=True)
class CollectorTier:
    name: str
    album_threshold: int
    value_threshold: float
    emoji: str = ""
    color: str = "white"


DEFAULT_TIERS: tuple[CollectorTier, ...] = (
    CollectorTier("Novato", 0, 0, "\U0001f331", "green"),
    CollectorTier("Aficionado", 20, 800, "\U0001f3a7", "teal"),
    CollectorTier("Coleccionista", 60, 2500, "\U0001f4bf", "blue"),
    CollectorTier("Experto", 120, 7000, "\U0001f4da", "purple"),
    CollectorTier("Virtuoso", 240, 15000, "\U0001f3c6", "gold"),
    CollectorTier("Legendario", 480, 30000, "\U0001f451", "legendary"),
)

TIER_COUNT = 6
MAX_LEVEL_INDEX = TIER_COUNT - 1


def validate_tiers(tiers: tuple[CollectorTier, ...] | list[CollectorTier]) -> tuple[CollectorTier, ...]:
    """Check a tier table and return it as a tuple.

    Requires exactly six tiers with unique names, zero floors on the first tier
    and finite, strictly increasing thresholds in both dimensions.
    """
    tiers = tuple(tiers)
    if len(tiers) != TIER_COUNT:
        raise ConfigurationError(f"Expected {TIER_COUNT} tiers, got {len(tiers)}")
    names = [t.name for t in tiers]
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Tier names must be unique: {names}")
    if tiers[0].album_threshold != 0 or tiers[0].value_threshold != 0:
        raise ConfigurationError("The lowest tier must start at 0 albums and 0 value")
    for tier in tiers:
        if not (math.isfinite(tier.album_threshold) and math.isfinite(tier.value_threshold)):
            raise ConfigurationError(f"Thresholds must be finite numbers: {tier.name}")
    for prev, curr in zip(tiers, tiers[1:]):
        if curr.album_threshold <= prev.album_threshold:
            raise ConfigurationError(
                f"Album thresholds must increase: {prev.name}={prev.album_threshold}, "
                f"{curr.name}={curr.album_threshold}"
            )
        if curr.value_threshold <= prev.value_threshold:
            raise ConfigurationError(
                f"Value thresholds must increase: {prev.name}={prev.value_threshold}, "
                f"{curr.name}={curr.value_threshold}"
            )
    return tiers


validate_tiers(DEFAULT_TIERS)


def album_milestones(tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> list[int]:
    return [t.album_threshold for t in tiers]


def value_milestones(tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> list[float]:
    return [t.value_threshold for t in tiers]


def tier_names(tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> list[str]:
    return [t.name for t in tiers]


def tier_by_name(name: str, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> CollectorTier | None:
    """Return the tier record with the given name, or None."""
    for tier in tiers:
        if tier.name == name:
            return tier
    return None


@dataclass(frozen=True)
class LevelResult:
    level_index: int
    progress_to_next: float
    next_target: float | None = None


@dataclass(frozen=True)
class NextTargets:
    next_albums: int | None = None
    next_value: float | None = None


@dataclass(frozen=True)
class CollectorRank:
    tier: str
    level_index: int
    progress_to_next: float
    album_level_index: int
    album_progress_to_next: float
    value_level_index: int
    value_progress_to_next: float
    limiting_dimension: str
    next_targets: NextTargets | None = None
    next_tier: str | None = None

    def to_dict(self) -> dict:
        """JSON-ready representation. Absent next targets are omitted."""
        data = {
            "tier": self.tier,
            "level_index": self.level_index,
            "progress_to_next": self.progress_to_next,
            "album_level_index": self.album_level_index,
            "album_progress_to_next": self.album_progress_to_next,
            "value_level_index": self.value_level_index,
            "value_progress_to_next": self.value_progress_to_next,
            "limiting_dimension": self.limiting_dimension,
            "next_tier": self.next_tier,
            "next_targets": None,
        }
        if self.next_targets is not None:
            targets = {}
            if self.next_targets.next_albums is not None:
                targets["next_albums"] = self.next_targets.next_albums
            if self.next_targets.next_value is not None:
                targets["next_value"] = self.next_targets.next_value
            data["next_targets"] = targets
        return data


def _clamp01(x: float) -> float:
    if math.isnan(x):
        return 0.0
    return max(0.0, min(1.0, x))


def compute_level_and_progress(current: float, milestones: list[float]) -> LevelResult:
    """Return the highest milestone index reached and progress toward the next.

    Reaching a milestone exactly counts as achieving it. Values below the first
    milestone stay at level 0 with progress clamped to 0.0.
    """
    level = 0
    for i, threshold in enumerate(milestones):
        if current >= threshold:
            level = i

    if level >= len(milestones) - 1:
        return LevelResult(level_index=level, progress_to_next=1.0, next_target=None)

    base = milestones[level]
    next_base = milestones[level + 1]
    progress = _clamp01((current - base) / (next_base - base))
    return LevelResult(level_index=level, progress_to_next=progress, next_target=next_base)


def compute_collector_rank(
    total_albums: float,
    collection_value: float,
    tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS,
) -> CollectorRank:
    """Compose album and value levels into a single collector rank.

    The composite level is gated by the weaker dimension. When both
    dimensions sit at the same level, the one with less progress is the
    limiting one (album on an exact tie).
    """
    album = compute_level_and_progress(total_albums, album_milestones(tiers))
    value = compute_level_and_progress(collection_value, value_milestones(tiers))

    level = min(album.level_index, value.level_index)

    if album.level_index < value.level_index:
        limiting = "album"
    elif value.level_index < album.level_index:
        limiting = "value"
    else:
        limiting = "album" if album.progress_to_next <= value.progress_to_next else "value"

    progress = album.progress_to_next if limiting == "album" else value.progress_to_next

    next_albums: int | None = None
    next_value: float | None = None
    if album.level_index == value.level_index:
        if album.next_target is not None:
            next_albums = int(album.next_target)
        if value.next_target is not None:
            next_value = value.next_target
    elif limiting == "album":
        if album.next_target is not None:
            next_albums = int(album.next_target)
    elif value.next_target is not None:
        next_value = value.next_target

    next_targets = None
    if next_albums is not None or next_value is not None:
        next_targets = NextTargets(next_albums=next_albums, next_value=next_value)

    names = tier_names(tiers)
    return CollectorRank(
        tier=names[level],
        level_index=level,
        progress_to_next=progress,
        album_level_index=album.level_index,
        album_progress_to_next=album.progress_to_next,
        value_level_index=value.level_index,
        value_progress_to_next=value.progress_to_next,
        limiting_dimension=limiting,
        next_targets=next_targets,
        next_tier=names[level + 1] if level < len(names) - 1 else None,
    )


def remaining_to_next(
    rank: CollectorRank, total_albums: float, collection_value: float
) -> tuple[int | None, float | None]:
    """Return (albums_missing, value_missing) toward the rank's next targets.

    Each entry is None when the rank carries no target for that dimension.
    """
    targets = rank.next_targets
    if targets is None:
        return (None, None)
    albums_missing = None
    value_missing = None
    if targets.next_albums is not None:
        albums_missing = max(0, int(targets.next_albums - total_albums))
    if targets.next_value is not None:
        value_missing = max(0.0, targets.next_value - collection_value)
    return (albums_missing, value_missing)
