"""Rich terminal display for collector-rank."""

from __future__ import annotations

import logging
import math

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from collector_rank.levels import DEFAULT_TIERS, CollectorTier, remaining_to_next, tier_by_name

console = Console()

# Map tier colors from levels.py to valid Rich color names
_COLOR_MAP: dict[str, str] = {
    "green": "green3",
    "teal": "deep_sky_blue1",
    "blue": "dodger_blue1",
    "purple": "purple",
    "gold": "gold1",
    "legendary": "orange_red1",
}


def configure_logging(level: str = "WARNING") -> None:
    """Route collector_rank log records through a RichHandler on stderr."""
    logger = logging.getLogger("collector_rank")
    logger.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    logger.propagate = False


def _safe_color(color: str) -> str:
    """Map a tier color to a valid Rich color name."""
    return _COLOR_MAP.get(color, color)


def _tier_color(tier_name: str, tiers: tuple[CollectorTier, ...]) -> str:
    tier = tier_by_name(tier_name, tiers)
    return _safe_color(tier.color if tier else "grey50")


def format_currency(value: float) -> str:
    """Round up to whole euros with thousands separators: 1234.2 -> '1,235 €'."""
    whole = math.ceil(value) if value > 0 else 0
    return f"{whole:,} €"


def format_percent(share: float) -> str:
    return f"{share * 100:.1f}%"


def _progress_bar(ratio: float, width: int = 20) -> str:
    """Render a progress bar as text: [████████░░░░░░░░░░░░]."""
    ratio = max(0.0, min(ratio, 1.0))
    filled = int(ratio * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def print_rank_card(data: dict, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> None:
    """Print the collector rank card.

    data keys: rank (CollectorRank), total_albums, collection_value, and
    optionally share (TierShare or None) and local_only (bool).
    """
    rank = data["rank"]
    total_albums = data.get("total_albums", 0)
    collection_value = data.get("collection_value", 0.0)
    share = data.get("share")
    tier = tier_by_name(rank.tier, tiers)
    emoji = tier.emoji if tier else ""
    color = _tier_color(rank.tier, tiers)

    albums_missing, value_missing = remaining_to_next(rank, total_albums, collection_value)

    lines: list[str] = []
    lines.append("")
    lines.append(f"  {emoji} [bold {color}]{rank.tier}[/]")
    lines.append("")
    lines.append(
        f"  Albums {_progress_bar(rank.album_progress_to_next)} "
        f"{total_albums} (-{albums_missing or 0})"
    )
    lines.append(
        f"  Value  {_progress_bar(rank.value_progress_to_next)} "
        f"{format_currency(collection_value)} (-{format_currency(value_missing or 0)})"
    )

    lines.append("")
    if albums_missing is not None and value_missing is not None:
        lines.append(
            f"  Need both: {albums_missing} album(s) and {format_currency(value_missing)}"
        )
    elif albums_missing is not None:
        lines.append(f"  Missing: {albums_missing} album(s)")
    elif value_missing is not None:
        lines.append(f"  Missing: {format_currency(value_missing)}")
    else:
        lines.append("  MAX RANK")

    if rank.next_tier:
        lines.append(f"  Next tier: {rank.next_tier}")

    if share is not None:
        lines.append(
            f"  {format_percent(share.share)} of collectors are {share.tier} "
            f"({share.users_at_tier}/{share.total_users})"
        )
    elif data.get("local_only"):
        lines.append("  [grey50]Offline: rank computed locally[/]")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]COLLECTOR RANK[/]",
        box=box.ROUNDED,
        border_style=color,
        width=56,
    )
    console.print(panel)


def print_distribution(distribution: list, tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS) -> None:
    """Print tier distribution as a table of TierCount rows."""
    total = distribution[0].total_users if distribution else 0
    table = Table(
        title=f"Tier Distribution ({total} collectors)",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Tier", style="bold")
    table.add_column("Collectors", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("", justify="left")

    for count in distribution:
        ratio = count.users_at_tier / total if total else 0.0
        color = _tier_color(count.tier, tiers)
        table.add_row(
            f"[{color}]{count.tier}[/]",
            str(count.users_at_tier),
            format_percent(ratio) if total else "-",
            _progress_bar(ratio, width=15),
        )
    console.print(table)


def print_leaderboard(
    entries: list[dict],
    highlight_user: str | None = None,
    tiers: tuple[CollectorTier, ...] = DEFAULT_TIERS,
) -> None:
    """Print ranked leaderboard entries, highlighting one user id."""
    if not entries:
        console.print("[grey50]No collectors yet.[/]")
        return
    table = Table(
        title="Collector Leaderboard",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("#", justify="right")
    table.add_column("Collector", style="bold")
    table.add_column("Tier")
    table.add_column("Albums", justify="right")
    table.add_column("Value", justify="right")

    for entry in entries:
        style = "reverse" if highlight_user and entry["user_id"] == highlight_user else None
        color = _tier_color(entry["tier"], tiers)
        table.add_row(
            str(entry["position"]),
            escape(entry["username"]),
            f"[{color}]{entry['tier']}[/]",
            f"{entry['total_albums']:,}",
            format_currency(entry["collection_value"]),
            style=style,
        )
    console.print(table)


def print_snapshot_result(snapshot) -> None:
    """Print the result of a ranking upsert."""
    lines = [
        "",
        f"  User:   {snapshot.user_id}",
        f"  Tier:   [bold]{snapshot.tier}[/]",
        f"  Albums: {snapshot.total_albums:,}",
        f"  Value:  {format_currency(snapshot.collection_value)}",
        "",
    ]
    panel = Panel(
        "\n".join(lines),
        title="[bold green]Ranking Saved[/]",
        box=box.ROUNDED,
        border_style="green",
        width=50,
    )
    console.print(panel)


def print_no_data_message(user_id: str | None = None) -> None:
    """Print message when no ranking data is available."""
    who = f" for [bold]{user_id}[/]" if user_id else ""
    panel = Panel(
        f"\n  No ranking data{who}. Run [bold]collector-rank sync[/] first.\n",
        title="[bold]COLLECTOR RANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=50,
    )
    console.print(panel)
