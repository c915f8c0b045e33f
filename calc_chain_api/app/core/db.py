"""
SQLite database integration and simple migration system.

The ``Database`` class owns the location of the SQLite file and hands
out connections (``get_connection``), a cursor context manager
(``get_cursor``) and the migration runner (``init_db``).  One instance
is built by ``create_app`` at startup and passed to every service, so
there is no global connection handle.  To switch to another DBMS you
would replace the connection logic and adapt the SQL accordingly.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from fastapi import Request


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        -- A row with parent_id NULL is a starting number; operation is
        -- NULL exactly for those rows.
        CREATE TABLE IF NOT EXISTS calculations (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            parent_id TEXT,
            operation TEXT,
            operand REAL NOT NULL,
            result REAL NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(parent_id) REFERENCES calculations(id),
            CHECK ((parent_id IS NULL) = (operation IS NULL))
        );

        CREATE INDEX IF NOT EXISTS idx_calculations_parent ON calculations(parent_id);
        CREATE INDEX IF NOT EXISTS idx_calculations_user ON calculations(user_id);
        """,
    ),
]


class Database:
    """Handle to the SQLite file used as the persistence store."""

    def __init__(self, database_url: str) -> None:
        self.path = self.resolve_path(database_url)

    @staticmethod
    def resolve_path(database_url: str) -> str:
        """Compute the path to the SQLite database file.

        Absolute paths are used as is; relative paths are resolved
        against the project root (the directory holding the
        ``calc_chain_api`` package).
        """
        if os.path.isabs(database_url):
            return database_url
        base_dir = Path(__file__).resolve().parent.parent.parent.parent
        return str((base_dir / database_url).resolve())

    def get_connection(self) -> sqlite3.Connection:
        """Create and return a new SQLite connection.

        Rows are returned as ``sqlite3.Row`` so columns can be read by
        name.  Foreign key enforcement is switched on for the lifetime
        of the connection; SQLite leaves it off by default.
        """
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def get_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor, commit on success and close the connection on exit."""
        conn = self.get_connection()
        try:
            yield conn.cursor()
            conn.commit()
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the database file if needed and apply pending migrations.

        Creates the ``migrations`` table if it does not exist, checks the
        current schema version and applies any newer entries of
        ``MIGRATIONS`` in order.  New migrations must be appended with an
        incremented version number.
        """
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with self.get_cursor() as cursor:
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
            )
            cursor.execute("SELECT MAX(version) as version FROM migrations")
            row = cursor.fetchone()
            current_version = row["version"] if row and row["version"] is not None else 0

            for version, sql in MIGRATIONS:
                if version > current_version:
                    cursor.executescript(sql)
                    cursor.execute(
                        "INSERT INTO migrations (version) VALUES (?)", (version,)
                    )
                    current_version = version


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the application's ``Database``."""
    return request.app.state.db
