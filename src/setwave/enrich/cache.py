"""
SQLite feature cache for SetWave.

Stores analyzed audio features per track id so enrichment runs once per track.

- Schema: features (tempo, energy, key fields, Camelot, vibe score)
- Schema version table for future migrations
- One connection shared by enrichment worker threads, guarded by a lock
"""

import sqlite3
import logging
import threading
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from ..models import Track

logger = logging.getLogger(__name__)

FEATURE_FIELDS = ("bpm", "energy", "valence", "danceability", "key", "mode", "camelot", "vibe_score")


class FeatureCache:
    """SQLite cache of analyzed track features."""

    SCHEMA_VERSION = 1

    # SQL schema definition
    SCHEMA = """
    -- Features table: analysis results keyed by track id
    CREATE TABLE IF NOT EXISTS features (
        track_id TEXT PRIMARY KEY,
        bpm REAL NOT NULL,
        energy REAL NOT NULL,
        valence REAL NOT NULL,
        danceability REAL NOT NULL,
        key INTEGER NOT NULL,
        mode INTEGER NOT NULL,
        camelot TEXT NOT NULL,
        vibe_score REAL,
        analyzed_at TEXT NOT NULL
    );

    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_features_camelot ON features(camelot);
    """

    def __init__(self, db_path: str = "data/cache/features.sqlite"):
        """
        Initialize cache location.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        logger.info(f"Connected to feature cache: {self.db_path}")
        self._initialize_schema()

    def disconnect(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Feature cache disconnected")

    def __enter__(self) -> "FeatureCache":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _initialize_schema(self) -> None:
        """Initialize or check schema."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if not cursor.fetchone():
            logger.info("Initializing feature cache schema...")
            cursor.executescript(self.SCHEMA)
            cursor.execute(
                "INSERT INTO schema_version (version, updated_at) VALUES (?, ?)",
                (self.SCHEMA_VERSION, datetime.now(timezone.utc).isoformat()),
            )
            self.conn.commit()
            logger.info(f"✅ Feature cache schema initialized (v{self.SCHEMA_VERSION})")
        else:
            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            current_version = cursor.fetchone()[0]
            if current_version < self.SCHEMA_VERSION:
                logger.warning(
                    f"Schema version mismatch: {current_version} < {self.SCHEMA_VERSION}. "
                    f"Consider clearing the cache."
                )

    def get(self, track_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve cached features by track ID.

        Args:
            track_id: Unique track identifier.

        Returns:
            Dict of feature fields, or None if not cached.
        """
        assert self.conn is not None
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM features WHERE track_id = ?", (track_id,))
            row = cursor.fetchone()

        if not row:
            return None

        return {field: row[field] for field in FEATURE_FIELDS}

    def put(self, track: Track) -> None:
        """
        Add or update the cached features of a track.

        Args:
            track: Enriched track.
        """
        assert self.conn is not None
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO features (
                    track_id, bpm, energy, valence, danceability,
                    key, mode, camelot, vibe_score, analyzed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    track.id,
                    track.bpm,
                    track.energy,
                    track.valence,
                    track.danceability,
                    track.key,
                    track.mode,
                    track.camelot,
                    track.vibe_score,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            self.conn.commit()
        logger.debug(f"Cached features for track: {track.id}")

    def clear(self) -> int:
        """
        Drop all cached features.

        Returns:
            Number of rows removed.
        """
        assert self.conn is not None
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM features")
            self.conn.commit()
            removed = cursor.rowcount
        logger.info(f"Cleared {removed} cached feature rows")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with counts and BPM stats.
        """
        assert self.conn is not None
        with self._lock:
            cursor = self.conn.cursor()

            cursor.execute("SELECT COUNT(*) FROM features")
            total = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM features WHERE camelot != 'Unknown'")
            with_key = cursor.fetchone()[0]

            cursor.execute(
                "SELECT MIN(bpm) as min_bpm, MAX(bpm) as max_bpm, AVG(bpm) as avg_bpm "
                "FROM features WHERE bpm > 0"
            )
            bpm_stats = dict(cursor.fetchone())

        return {
            "cached_tracks": total,
            "tracks_with_key": with_key,
            "bpm_stats": bpm_stats,
        }
