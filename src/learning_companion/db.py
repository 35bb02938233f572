"""Durable storage of the persisted session projection."""
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from learning_companion.config import Config
from learning_companion.errors import LearningCompanionError
from learning_companion.session import Session

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Config.DB_PATH

# Bump to discard every stored session; old blobs are never migrated.
STATE_VERSION = 1
SLOT = "current"

SCHEMA = """
CREATE TABLE IF NOT EXISTS session_state (
    slot TEXT PRIMARY KEY,
    version INTEGER NOT NULL,
    payload TEXT NOT NULL,
    saved_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def save_session(db_path: str, session: Session) -> None:
    payload = json.dumps(session.to_persisted())
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO session_state (slot, version, payload, saved_at) VALUES (?, ?, ?, ?)
        ON CONFLICT(slot) DO UPDATE SET version=excluded.version, payload=excluded.payload,
        saved_at=excluded.saved_at""",
        (SLOT, STATE_VERSION, payload, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()


def load_session(db_path: str) -> Session:
    """Restore the stored session, or an empty one if none matches STATE_VERSION."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM session_state WHERE slot = ?", (SLOT,)).fetchone()
    if row is None:
        conn.close()
        return Session()
    if row["version"] != STATE_VERSION:
        logger.info("Discarding stored session version %s (current %s)", row["version"], STATE_VERSION)
        return _discard(conn)
    try:
        session = Session.from_persisted(json.loads(row["payload"]))
    except (ValueError, KeyError, TypeError, AttributeError, LearningCompanionError) as e:
        logger.warning("Discarding unreadable stored session: %s", e)
        return _discard(conn)
    conn.close()
    return session


def _discard(conn: sqlite3.Connection) -> Session:
    conn.execute("DELETE FROM session_state WHERE slot = ?", (SLOT,))
    conn.commit()
    conn.close()
    return Session()


def clear_session(db_path: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM session_state WHERE slot = ?", (SLOT,))
    conn.commit()
    conn.close()
