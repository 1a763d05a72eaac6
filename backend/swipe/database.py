"""
SQLite Store for Challenge Swiper
Provides persistent storage for challenges, pending submissions and
per-device vote flags.

Counters are only ever changed with single-statement increments
(`SET n = n + 1`) so concurrent voters never lose updates, and retirement
only moves false -> true.
"""

import sqlite3
import os
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any
from contextlib import contextmanager

from swipe.errors import ChallengeNotFound, RemoteWriteFailure
from swipe.models import (
    Challenge,
    CounterField,
    PendingSubmission,
    generate_challenge_id,
    generate_submission_id
)

logger = logging.getLogger(__name__)

# Database file path - use environment variable or fallback to local storage
DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "storage", "swiper.db")
DB_PATH = os.environ.get("SWIPER_DB_PATH", DEFAULT_DB_PATH)


def get_db_path(db_path: Optional[str] = None) -> str:
    """Get database path, ensuring directory exists.

    Only the default location falls back to the package directory; an
    explicit path whose directory cannot be created raises OSError.
    """
    explicit = bool(db_path)
    db_path = db_path or DB_PATH
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        try:
            os.makedirs(db_dir, exist_ok=True)
        except OSError:
            if explicit:
                raise
            # Fallback to current directory if storage can't be created
            db_path = os.path.join(os.path.dirname(__file__), "swiper.db")
    return db_path


class ChallengeStore:
    """SQLite-backed store for challenges and device vote flags."""

    def __init__(self, db_path: str = None):
        self.db_path = get_db_path(db_path)
        self.init_database()
        logger.info(f"ChallengeStore initialized at {self.db_path}")

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise e
        finally:
            conn.close()

    def init_database(self):
        """Initialize the database schema."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # Challenges table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS challenges (
                    challenge_id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    yes_count INTEGER DEFAULT 0 CHECK (yes_count >= 0),
                    no_count INTEGER DEFAULT 0 CHECK (no_count >= 0),
                    skip_count INTEGER DEFAULT 0 CHECK (skip_count >= 0),
                    retired INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
            """)

            # Pending submissions (reviewed out-of-band, never ranked)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS pending_challenges (
                    submission_id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            # Device-local flags ("voted_<challenge_id>" -> "true")
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS device_flags (
                    device_id TEXT NOT NULL,
                    flag_key TEXT NOT NULL,
                    flag_value TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (device_id, flag_key)
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_challenges_retired ON challenges(retired)")

        repaired = self.backfill_missing_fields()
        if repaired:
            logger.info(f"Back-filled {repaired} missing challenge fields")

    def backfill_missing_fields(self) -> int:
        """Set NULL counters and flags to their defaults. Returns fields patched."""
        patched = 0
        with self.get_connection() as conn:
            for column in ("yes_count", "no_count", "skip_count", "retired"):
                cursor = conn.execute(f"UPDATE challenges SET {column} = 0 WHERE {column} IS NULL")
                patched += cursor.rowcount
        return patched

    # ==================== CHALLENGE OPERATIONS ====================

    def add_challenge(self, text: str, challenge_id: str = None, yes_count: int = 0,
                      no_count: int = 0, skip_count: int = 0, retired: bool = False) -> Challenge:
        """Create a live challenge."""
        challenge = Challenge(
            challenge_id=challenge_id or generate_challenge_id(),
            text=text,
            yes_count=yes_count,
            no_count=no_count,
            skip_count=skip_count,
            retired=retired
        )
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO challenges (
                    challenge_id, text, yes_count, no_count, skip_count, retired, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                challenge.challenge_id,
                challenge.text,
                challenge.yes_count,
                challenge.no_count,
                challenge.skip_count,
                int(challenge.retired),
                challenge.created_at
            ))
        logger.info(f"Challenge {challenge.challenge_id} added")
        return challenge

    def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        """Get a challenge by ID."""
        with self.get_connection() as conn:
            cursor = conn.execute("SELECT * FROM challenges WHERE challenge_id = ?", (challenge_id,))
            row = cursor.fetchone()
            if row:
                return Challenge.from_row(dict(row))
            return None

    def list_active_challenges(self) -> List[Challenge]:
        """All challenges that may be dealt into a new deck."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                SELECT * FROM challenges
                WHERE retired = 0 AND TRIM(text) != ''
                ORDER BY created_at, challenge_id
            """)
            return [Challenge.from_row(dict(row)) for row in cursor.fetchall()]

    def list_challenges(self, include_retired: bool = True) -> List[Challenge]:
        """Every challenge, optionally without the retired ones."""
        query = "SELECT * FROM challenges"
        if not include_retired:
            query += " WHERE retired = 0"
        query += " ORDER BY created_at, challenge_id"
        with self.get_connection() as conn:
            cursor = conn.execute(query)
            return [Challenge.from_row(dict(row)) for row in cursor.fetchall()]

    def increment_counter(self, challenge_id: str, counter: CounterField):
        """Atomically add one to a counter."""
        counter = CounterField(counter)
        operation = f"increment:{counter.value}"
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    f"UPDATE challenges SET {counter.value} = {counter.value} + 1, updated_at = ? "
                    f"WHERE challenge_id = ?",
                    (datetime.utcnow().isoformat(), challenge_id)
                )
                updated = cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Counter write failed for {challenge_id}: {e}")
            raise RemoteWriteFailure(challenge_id, operation, str(e)) from e

        if updated == 0:
            raise ChallengeNotFound(challenge_id, operation)

    def set_retired(self, challenge_id: str):
        """Mark a challenge retired. Retirement is one-way."""
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    "UPDATE challenges SET retired = 1, updated_at = ? WHERE challenge_id = ?",
                    (datetime.utcnow().isoformat(), challenge_id)
                )
                updated = cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"Retirement write failed for {challenge_id}: {e}")
            raise RemoteWriteFailure(challenge_id, "retire", str(e)) from e

        if updated == 0:
            raise ChallengeNotFound(challenge_id, "retire")
        logger.info(f"Challenge {challenge_id} retired")

    # ==================== PENDING SUBMISSIONS ====================

    def enqueue_pending(self, text: str) -> PendingSubmission:
        """Queue a proposed challenge for review."""
        submission = PendingSubmission(submission_id=generate_submission_id(), text=text)
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO pending_challenges (submission_id, text, created_at)
                VALUES (?, ?, ?)
            """, (submission.submission_id, submission.text, submission.created_at))
        return submission

    def list_pending(self, limit: int = 100) -> List[PendingSubmission]:
        """Oldest pending submissions first."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM pending_challenges ORDER BY created_at LIMIT ?", (limit,)
            )
            return [PendingSubmission(**dict(row)) for row in cursor.fetchall()]

    # ==================== DEVICE FLAGS ====================

    def get_device_flag(self, device_id: str, key: str) -> Optional[str]:
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    "SELECT flag_value FROM device_flags WHERE device_id = ? AND flag_key = ?",
                    (device_id, key)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Flag read failed for {device_id}/{key}: {e}")
            raise RemoteWriteFailure(key, "read_flag", str(e)) from e
        return row["flag_value"] if row else None

    def set_device_flag(self, device_id: str, key: str, value: str):
        try:
            with self.get_connection() as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO device_flags (device_id, flag_key, flag_value, created_at)
                    VALUES (?, ?, ?, ?)
                """, (device_id, key, value, datetime.utcnow().isoformat()))
        except sqlite3.Error as e:
            logger.error(f"Flag write failed for {device_id}/{key}: {e}")
            raise RemoteWriteFailure(key, "set_flag", str(e)) from e

    def get_stats(self) -> Dict[str, Any]:
        """Counts for health checks."""
        with self.get_connection() as conn:
            row = conn.execute("""
                SELECT COUNT(*) AS challenges,
                       COALESCE(SUM(CASE WHEN retired = 1 THEN 1 ELSE 0 END), 0) AS retired,
                       COALESCE(SUM(yes_count + no_count + skip_count), 0) AS reactions
                FROM challenges
            """).fetchone()
            pending = conn.execute("SELECT COUNT(*) FROM pending_challenges").fetchone()[0]
        return {
            "challenges": row["challenges"],
            "retired": row["retired"],
            "active": row["challenges"] - row["retired"],
            "reactions": row["reactions"],
            "pending_submissions": pending
        }
