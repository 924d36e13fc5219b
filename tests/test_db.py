"""Tests for the SQLite data-access layer."""

import pytest

from collector_rank.db import DataAccessError, Database


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "test.db"
    database = Database(db_path=db_path)
    yield database
    database.close()


def _snapshot(user_id="u1", tier="Novato", **overrides):
    base = {
        "user_id": user_id,
        "tier": tier,
        "level_index": 0,
        "album_level_index": 0,
        "value_level_index": 0,
        "total_albums": 0,
        "collection_value": 0.0,
        "updated_at": "2026-01-15T10:30:00+00:00",
    }
    base.update(overrides)
    return base


class TestDatabaseCreation:
    def test_creates_db_file(self, tmp_path):
        db_path = tmp_path / "sub" / "test.db"
        database = Database(db_path=db_path)
        assert db_path.exists()
        database.close()

    def test_tables_exist(self, db):
        cursor = db.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        tables = {row["name"] for row in cursor.fetchall()}
        assert {"profiles", "albums", "album_stats", "user_collection", "user_rankings"} <= tables

    def test_wal_mode_enabled(self, db):
        result = db.conn.execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"

    def test_non_sqlite_file_raises_data_access_error(self, tmp_path):
        db_path = tmp_path / "junk.db"
        db_path.write_bytes(b"not a sqlite database " * 200)
        with pytest.raises(DataAccessError, match="Cannot open database"):
            Database(db_path=db_path)


class TestProfiles:
    def test_get_nonexistent(self, db):
        assert db.get_profile("nobody") is None

    def test_add_and_get(self, db):
        db.add_profile("u1", username="alice", full_name="Alice A")
        profile = db.get_profile("u1")
        assert profile["username"] == "alice"
        assert profile["full_name"] == "Alice A"

    def test_add_overwrites(self, db):
        db.add_profile("u1", username="alice")
        db.add_profile("u1", username="alicia")
        assert db.get_profile("u1")["username"] == "alicia"

    def test_list_profiles_skips_missing_username(self, db):
        db.add_profile("u1", username="alice")
        db.add_profile("u2")
        assert [p["id"] for p in db.list_profiles()] == ["u1"]

    def test_list_user_ids_includes_collection_owners(self, db):
        db.add_profile("u1", username="alice")
        album_id = db.add_album("Kind of Blue")
        db.add_to_collection("u2", album_id)
        db.add_to_collection("u2", album_id)
        assert db.list_user_ids() == ["u1", "u2"]


class TestCollection:
    def test_empty_collection(self, db):
        assert db.get_user_collection("u1") == []

    def test_add_album_with_price(self, db):
        album_id = db.add_album("Blue Train", artist="John Coltrane", avg_price=35.5)
        db.add_to_collection("u1", album_id)
        rows = db.get_user_collection("u1")
        assert len(rows) == 1
        assert rows[0]["title"] == "Blue Train"
        assert rows[0]["avg_price"] == 35.5

    def test_album_without_price(self, db):
        album_id = db.add_album("Unknown Pressing")
        db.add_to_collection("u1", album_id)
        assert db.get_user_collection("u1")[0]["avg_price"] is None

    def test_set_album_price_upserts(self, db):
        album_id = db.add_album("Blue Train", avg_price=10)
        db.set_album_price(album_id, 20)
        db.add_to_collection("u1", album_id)
        assert db.get_user_collection("u1")[0]["avg_price"] == 20

    def test_collection_is_per_user(self, db):
        a = db.add_album("A")
        b = db.add_album("B")
        db.add_to_collection("u1", a)
        db.add_to_collection("u2", b)
        assert [r["title"] for r in db.get_user_collection("u1")] == ["A"]

    def test_unknown_album_raises_data_access_error(self, db):
        with pytest.raises(DataAccessError):
            db.add_to_collection("u1", 9999)


class TestRankings:
    def test_get_nonexistent(self, db):
        assert db.get_ranking("u1") is None

    def test_upsert_insert(self, db):
        db.upsert_ranking(_snapshot(total_albums=25, collection_value=900.0))
        row = db.get_ranking("u1")
        assert row["tier"] == "Novato"
        assert row["total_albums"] == 25
        assert row["collection_value"] == 900.0

    def test_upsert_last_write_wins(self, db):
        db.upsert_ranking(_snapshot(tier="Novato"))
        db.upsert_ranking(_snapshot(tier="Aficionado", level_index=1))
        row = db.get_ranking("u1")
        assert row["tier"] == "Aficionado"
        assert row["level_index"] == 1
        count = db.conn.execute("SELECT COUNT(*) FROM user_rankings").fetchone()[0]
        assert count == 1

    def test_tier_distribution_empty(self, db):
        assert db.get_tier_distribution() == []

    def test_tier_distribution_counts(self, db):
        db.upsert_ranking(_snapshot("u1", "Novato"))
        db.upsert_ranking(_snapshot("u2", "Novato"))
        db.upsert_ranking(_snapshot("u3", "Experto"))
        rows = {r["tier"]: r for r in db.get_tier_distribution()}
        assert rows["Novato"]["users_at_tier"] == 2
        assert rows["Experto"]["users_at_tier"] == 1
        assert all(r["total_users"] == 3 for r in rows.values())

    def test_closed_connection_raises_data_access_error(self, tmp_path):
        database = Database(db_path=tmp_path / "closed.db")
        database.close()
        with pytest.raises(DataAccessError):
            database.get_ranking("u1")
