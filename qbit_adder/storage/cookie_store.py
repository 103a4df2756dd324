"""
Manages the SQLite database holding the isolated WebUI session cookies.

The store is dedicated to this application's connection to the WebUI and is
scoped by origin, so it never mixes with any other cookie storage.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

from qbit_adder.utils.path import origin_of

log = logging.getLogger(__name__)


class CookieStore:
    """
    A thread-safe SQLite store of session cookies, keyed by origin.

    All methods are synchronous and cheap; ``SessionManager`` serializes access
    and runs them through ``asyncio.to_thread``.
    """

    def __init__(self, config_dir_path: Path):
        self.db_path = config_dir_path / "cookies.sqlite"
        config_dir_path.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with the PRAGMA settings we rely on."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            return conn
        except sqlite3.Error as e:
            log.error(f"Failed to connect to cookie database: {e}")
            raise

    def _initialize_db(self) -> None:
        """Creates the cookie table if it does not exist."""
        try:
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cookies (
                        origin TEXT NOT NULL,
                        name TEXT NOT NULL,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        PRIMARY KEY (origin, name)
                    );
                    """
                )
                conn.commit()
        except sqlite3.Error as e:
            log.error(f"Failed to initialize cookie database at '{self.db_path}': {e}")

    def get(self, url: str) -> dict[str, str]:
        """Returns the cookies stored for the origin of ``url``."""
        try:
            with closing(self._get_connection()) as conn, conn:
                cursor = conn.execute(
                    "SELECT name, value FROM cookies WHERE origin = ? ORDER BY name",
                    (origin_of(url),),
                )
                return dict(cursor.fetchall())
        except sqlite3.Error as e:
            log.error(f"Failed to read cookies: {e}")
            return {}

    def set(self, url: str, name: str, value: str) -> None:
        """Stores or overwrites one cookie for the origin of ``url``."""
        with closing(self._get_connection()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO cookies (origin, name, value) VALUES (?, ?, ?)",
                (origin_of(url), name, value),
            )
            conn.commit()

    def replace(self, url: str, cookies: dict[str, str]) -> None:
        """Replaces the whole cookie set of an origin in a single transaction."""
        origin = origin_of(url)
        with closing(self._get_connection()) as conn, conn:
            conn.execute("DELETE FROM cookies WHERE origin = ?", (origin,))
            conn.executemany(
                "INSERT INTO cookies (origin, name, value) VALUES (?, ?, ?)",
                [(origin, name, value) for name, value in cookies.items()],
            )
            conn.commit()
        log.debug(f"Stored {len(cookies)} session cookie(s) for {origin}.")

    def clear(self, url: str | None = None) -> None:
        """Removes the cookies of one origin, or every cookie when ``url`` is None."""
        with closing(self._get_connection()) as conn, conn:
            if url is None:
                conn.execute("DELETE FROM cookies")
            else:
                conn.execute("DELETE FROM cookies WHERE origin = ?", (origin_of(url),))
            conn.commit()

    def count(self) -> int:
        """Total number of stored cookies across all origins."""
        try:
            with closing(self._get_connection()) as conn, conn:
                return conn.execute("SELECT COUNT(*) FROM cookies").fetchone()[0]
        except sqlite3.Error as e:
            log.error(f"Failed to count cookies: {e}")
            return 0
