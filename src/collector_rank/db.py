"""SQLite data-access layer for collector-rank."""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".collector-rank" / "data.db"


class DataAccessError(RuntimeError):
    """Raised when the store cannot be read or written."""


class Database:
    """SQLite store holding collections, profiles and ranking snapshots."""

    def __init__(self, db_path: Path | None = None, timeout: float = 5.0) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(str(self.db_path), timeout=timeout)
        except sqlite3.Error as exc:
            raise DataAccessError(f"Cannot open database {self.db_path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row
        try:
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.init_db()
        except sqlite3.Error as exc:
            self.conn.close()
            raise DataAccessError(f"Cannot open database {self.db_path}: {exc}") from exc

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                username TEXT,
                full_name TEXT
            );

            CREATE TABLE IF NOT EXISTS albums (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                artist TEXT
            );

            CREATE TABLE IF NOT EXISTS album_stats (
                album_id INTEGER PRIMARY KEY REFERENCES albums(id) ON DELETE CASCADE,
                avg_price REAL
            );

            CREATE TABLE IF NOT EXISTS user_collection (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                album_id INTEGER NOT NULL REFERENCES albums(id) ON DELETE CASCADE,
                added_at TEXT DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_user_collection_user
                ON user_collection(user_id);

            CREATE TABLE IF NOT EXISTS user_rankings (
                user_id TEXT PRIMARY KEY,
                tier TEXT NOT NULL,
                level_index INTEGER NOT NULL,
                album_level_index INTEGER NOT NULL,
                value_level_index INTEGER NOT NULL,
                total_albums INTEGER NOT NULL DEFAULT 0,
                collection_value REAL NOT NULL DEFAULT 0.0,
                updated_at TEXT NOT NULL
            );
        """)
        self.conn.commit()

    def _fetchall(self, sql: str, params: tuple | dict = ()) -> list[dict]:
        try:
            rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise DataAccessError(str(exc)) from exc
        return [dict(row) for row in rows]

    def _execute(self, sql: str, params: tuple | dict = ()) -> sqlite3.Cursor:
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
        except sqlite3.Error as exc:
            self.conn.rollback()
            raise DataAccessError(str(exc)) from exc
        return cursor

    # ── Profiles ──────────────────────────────────────────────────────────

    def add_profile(self, user_id: str, username: str | None = None, full_name: str | None = None) -> None:
        """Insert or update a user profile."""
        self._execute(
            "INSERT INTO profiles (id, username, full_name) VALUES (?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET username = excluded.username, "
            "full_name = excluded.full_name",
            (user_id, username, full_name),
        )

    def get_profile(self, user_id: str) -> dict | None:
        rows = self._fetchall("SELECT * FROM profiles WHERE id = ?", (user_id,))
        return rows[0] if rows else None

    def list_profiles(self) -> list[dict]:
        """Return all profiles that have a username."""
        return self._fetchall(
            "SELECT * FROM profiles WHERE username IS NOT NULL ORDER BY id"
        )

    def list_user_ids(self) -> list[str]:
        """Return every known user id: profiles first, then collection owners."""
        rows = self._fetchall(
            "SELECT id AS user_id FROM profiles "
            "UNION SELECT DISTINCT user_id FROM user_collection "
            "ORDER BY user_id"
        )
        return [row["user_id"] for row in rows]

    # ── Albums and collections ────────────────────────────────────────────

    def add_album(self, title: str, artist: str | None = None, avg_price: float | None = None) -> int:
        """Insert an album and its market price. Returns the new album id."""
        cursor = self._execute(
            "INSERT INTO albums (title, artist) VALUES (?, ?)", (title, artist)
        )
        album_id = cursor.lastrowid
        if avg_price is not None:
            self.set_album_price(album_id, avg_price)
        return album_id

    def set_album_price(self, album_id: int, avg_price: float | None) -> None:
        """Set the average market price for an album (upsert)."""
        self._execute(
            "INSERT INTO album_stats (album_id, avg_price) VALUES (?, ?) "
            "ON CONFLICT(album_id) DO UPDATE SET avg_price = excluded.avg_price",
            (album_id, avg_price),
        )

    def add_to_collection(self, user_id: str, album_id: int) -> None:
        self._execute(
            "INSERT INTO user_collection (user_id, album_id) VALUES (?, ?)",
            (user_id, album_id),
        )

    def get_user_collection(self, user_id: str) -> list[dict]:
        """Return one row per collection entry with the album's avg_price (may be None)."""
        return self._fetchall(
            "SELECT uc.album_id, a.title, a.artist, s.avg_price "
            "FROM user_collection uc "
            "JOIN albums a ON a.id = uc.album_id "
            "LEFT JOIN album_stats s ON s.album_id = uc.album_id "
            "WHERE uc.user_id = ? ORDER BY uc.id",
            (user_id,),
        )

    # ── Rankings ──────────────────────────────────────────────────────────

    def upsert_ranking(self, snapshot: dict) -> None:
        """Write a ranking snapshot keyed by user_id. Last write wins."""
        self._execute(
            "INSERT INTO user_rankings (user_id, tier, level_index, album_level_index, "
            "value_level_index, total_albums, collection_value, updated_at) "
            "VALUES (:user_id, :tier, :level_index, :album_level_index, "
            ":value_level_index, :total_albums, :collection_value, :updated_at) "
            "ON CONFLICT(user_id) DO UPDATE SET "
            "tier = excluded.tier, level_index = excluded.level_index, "
            "album_level_index = excluded.album_level_index, "
            "value_level_index = excluded.value_level_index, "
            "total_albums = excluded.total_albums, "
            "collection_value = excluded.collection_value, "
            "updated_at = excluded.updated_at",
            snapshot,
        )
        logger.debug("Upserted ranking for %s: %s", snapshot["user_id"], snapshot["tier"])

    def get_ranking(self, user_id: str) -> dict | None:
        rows = self._fetchall(
            "SELECT * FROM user_rankings WHERE user_id = ?", (user_id,)
        )
        return rows[0] if rows else None

    def get_tier_distribution(self) -> list[dict]:
        """Count ranked users per tier. Each row carries the overall total."""
        return self._fetchall(
            "SELECT tier, COUNT(*) AS users_at_tier, "
            "(SELECT COUNT(*) FROM user_rankings) AS total_users "
            "FROM user_rankings GROUP BY tier ORDER BY tier"
        )

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
