"""Tests for CLI commands and display helpers."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from collector_rank import display
from collector_rank.cli import (
    build_parser,
    do_backfill,
    do_collection_add,
    do_distribution,
    do_leaderboard,
    do_rank,
    do_rank_offline,
    do_share,
    do_sync,
    main,
)
from collector_rank.db import DataAccessError, Database
from collector_rank.display import format_currency, format_percent


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    database = Database(db_path=tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"db_path": str(tmp_path / "cli.db")}), encoding="utf-8")
    return path


def _fill(db, user_id, albums, price_each):
    for i in range(albums):
        do_collection_add(db, user_id, f"{user_id}-{i}", price=price_each)


# ── Argument Parsing ──────────────────────────────────────────────────────────


class TestArgumentParsing:
    def test_no_args_defaults_to_none_command(self):
        args = build_parser().parse_args([])
        assert args.command is None

    def test_rank_command(self):
        args = build_parser().parse_args(["rank", "--user", "u1", "--no-save"])
        assert args.command == "rank"
        assert args.user == "u1"
        assert args.no_save is True

    def test_rank_offline_args(self):
        args = build_parser().parse_args(["rank", "--albums", "30", "--value", "900.5"])
        assert args.albums == 30.0
        assert args.value == 900.5

    def test_collection_add(self):
        args = build_parser().parse_args(
            ["collection", "add", "-u", "u1", "-t", "Blue Train", "-p", "35"]
        )
        assert args.collection_command == "add"
        assert args.title == "Blue Train"
        assert args.price == 35.0

    def test_invalid_command_raises(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["nonexistent"])


# ── Formatting ────────────────────────────────────────────────────────────────


class TestFormatting:
    def test_currency_rounds_up(self):
        assert format_currency(1234.2) == "1,235 €"

    def test_currency_zero(self):
        assert format_currency(0) == "0 €"

    def test_currency_negative_floors_at_zero(self):
        assert format_currency(-5) == "0 €"

    def test_percent(self):
        assert format_percent(0.25) == "25.0%"

    def test_leaderboard_username_is_not_markup(self, monkeypatch):
        recorder = Console(record=True, width=120)
        monkeypatch.setattr(display, "console", recorder)
        display.print_leaderboard([{
            "position": 1, "user_id": "u1", "username": "[red]dj[/red]",
            "tier": "Novato", "total_albums": 3, "collection_value": 10.0,
        }])
        assert "[red]dj[/red]" in recorder.export_text()


# ── Commands ──────────────────────────────────────────────────────────────────


class TestDoRank:
    def test_offline(self):
        result = do_rank_offline(30, 900)
        assert result["rank"]["tier"] == "Aficionado"
        assert result["rank"]["limiting_dimension"] == "value"

    def test_new_user(self, db):
        result = do_rank(db, "u1")
        assert result["rank"]["tier"] == "Novato"
        assert result["total_albums"] == 0
        assert result["persisted"] is True
        assert result["share"] == 1.0

    def test_no_save(self, db):
        result = do_rank(db, "u1", persist=False)
        assert result["persisted"] is False
        assert result["share"] is None
        assert db.get_ranking("u1") is None

    def test_store_failure_still_shows_rank(self):
        fake = MagicMock()
        fake.get_user_collection.return_value = [{"avg_price": 100.0}] * 10
        fake.upsert_ranking.side_effect = DataAccessError("read-only")
        result = do_rank(fake, "u1")
        assert result["ok"] is True
        assert result["persisted"] is False
        assert result["rank"]["tier"] == "Novato"


class TestDoSync:
    def test_sync_stores_snapshot(self, db):
        _fill(db, "u1", 60, 50.0)
        result = do_sync(db, "u1")
        assert result["tier"] == "Coleccionista"
        assert db.get_ranking("u1")["total_albums"] == 60

    def test_backfill(self, db):
        db.add_profile("u1", username="alice")
        _fill(db, "u2", 1, 1.0)
        result = do_backfill(db)
        assert result == {"ok": True, "processed": 2, "total": 2}


class TestDoShare:
    def test_no_data(self, db):
        assert do_share(db, "u1") == {"ok": False, "reason": "no_data"}

    def test_share(self, db):
        do_sync(db, "u1")
        do_sync(db, "u2")
        result = do_share(db, "u1")
        assert result["tier"] == "Novato"
        assert result["share"] == 1.0


class TestDoDistribution:
    def test_distribution(self, db):
        _fill(db, "u1", 20, 40.0)
        do_sync(db, "u1")
        do_sync(db, "u2")
        result = do_distribution(db)
        assert result["total_users"] == 2
        assert result["tiers"]["Novato"] == 1
        assert result["tiers"]["Aficionado"] == 1
        assert result["tiers"]["Legendario"] == 0


class TestDoLeaderboard:
    def test_highlights_position(self, db):
        db.add_profile("u1", username="alice")
        db.add_profile("u2", username="bob")
        _fill(db, "u2", 2, 10.0)
        result = do_leaderboard(db, highlight_user="u1")
        assert result["count"] == 2
        assert result["your_position"] == 2

    def test_empty(self, db):
        result = do_leaderboard(db)
        assert result["count"] == 0
        assert result["your_position"] is None


# ── main ──────────────────────────────────────────────────────────────────────


class TestMain:
    def test_end_to_end(self, config_path, tmp_path):
        assert main(["--config", str(config_path), "profile", "add", "u1", "--username", "alice"]) == 0
        assert main(["--config", str(config_path), "profile", "use", "u1"]) == 0
        assert main([
            "--config", str(config_path), "collection", "add", "-t", "Kind of Blue", "-p", "900",
        ]) == 0
        assert main(["--config", str(config_path), "sync"]) == 0

        database = Database(db_path=tmp_path / "cli.db")
        try:
            snapshot = database.get_ranking("u1")
        finally:
            database.close()
        assert snapshot["total_albums"] == 1
        assert snapshot["collection_value"] == 900.0

    def test_offline_rank_needs_both_totals(self, config_path):
        with pytest.raises(SystemExit):
            main(["--config", str(config_path), "rank", "--albums", "3"])

    def test_offline_rank(self, config_path):
        assert main(["--config", str(config_path), "rank", "--albums", "3", "--value", "10"]) == 0

    def test_no_user(self, config_path):
        assert main(["--config", str(config_path), "share"]) == 1

    def test_invalid_tier_config(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"tiers": [{"name": "Solo", "albums": 0, "value": 0}]}))
        assert main(["--config", str(path), "distribution"]) == 2

    def test_distribution(self, config_path):
        assert main(["--config", str(config_path), "distribution"]) == 0

    def test_unreadable_store_returns_1(self, tmp_path):
        junk = tmp_path / "junk.db"
        junk.write_bytes(b"not a sqlite database " * 200)
        path = tmp_path / "junk.json"
        path.write_text(json.dumps({"db_path": str(junk)}), encoding="utf-8")
        assert main(["--config", str(path), "distribution"]) == 1


class TestConfigureLogging:
    def test_installs_single_rich_handler(self):
        import logging

        from rich.logging import RichHandler

        from collector_rank.display import configure_logging

        configure_logging("info")
        configure_logging("debug")
        logger = logging.getLogger("collector_rank")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.level == logging.DEBUG
