#!/usr/bin/env python3
"""Read composer records from Cursor's SQLite state database."""

import logging
import os
import sqlite3
import sys
import urllib.parse
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator, Optional, Union

logger = logging.getLogger(__name__)

DB_FILENAME = "state.vscdb"
COMPOSER_KEY_PREFIX = "composerData:"

# Queried in order; the second table is only used if the first is missing or empty
COMPOSER_TABLES = ("ItemTable", "cursorDiskKV")


class StorageUnavailableError(FileNotFoundError):
    """The state database is missing or cannot be opened or read."""


@dataclass
class ComposerRow:
    key: str
    value: Union[bytes, str, None]


@dataclass
class ComposerRows:
    """Composer rows and the table they were read from ('' when none was found)."""

    table: str = ""
    rows: list[ComposerRow] = field(
        default_factory=lambda: []  # type: list[ComposerRow]
    )


# ========== Path Discovery ==========


def _global_storage_candidates() -> list[Path]:
    """Global storage DB locations for this platform, stable build first."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise StorageUnavailableError("APPDATA environment variable not found.")
        base = Path(appdata)
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".config"
    return [
        base / app / "User" / "globalStorage" / DB_FILENAME
        for app in ("Cursor", "cursor-dev")
    ]


def get_default_db_path() -> Path:
    """Get the default Cursor state database path.

    Falls back to the cursor-dev build's database when only that one exists.
    """
    standard, dev = _global_storage_candidates()
    if not standard.exists() and dev.exists():
        return dev
    return standard


def resolve_db_path(db_path: Optional[Path] = None) -> Path:
    """Resolve the database to read.

    Priority: explicit db_path > CURSOR_CHAT_LOG_DB_PATH env var > platform default.

    Raises:
        StorageUnavailableError: If the resolved path does not exist.
    """
    env_path = os.getenv("CURSOR_CHAT_LOG_DB_PATH")
    explicit = db_path or (Path(env_path) if env_path else None)
    target = explicit or get_default_db_path()
    if not target.exists():
        kind = "Specified" if explicit else "Default"
        raise StorageUnavailableError(f"{kind} DB path not found: {target}")
    return target.resolve()


# ========== Row Access ==========


@contextmanager
def _get_connection(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """Open the database read-only."""
    uri = f"file:{urllib.parse.quote(str(db_path))}?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.OperationalError as e:
        raise StorageUnavailableError(f"Cannot open DB {db_path}: {e}") from e
    try:
        yield conn
    finally:
        conn.close()


def _query_composer_rows(
    conn: sqlite3.Connection, table: str, db_path: Path
) -> Optional[list[ComposerRow]]:
    """Rows of one table, or None if the table does not exist.

    Raises:
        StorageUnavailableError: If the file is not a readable SQLite database.
    """
    try:
        rows = conn.execute(
            f"SELECT key, value FROM {table} WHERE key LIKE ?",
            (f"{COMPOSER_KEY_PREFIX}%",),
        ).fetchall()
    except sqlite3.DatabaseError as e:
        if f"no such table: {table}" in str(e):
            return None
        raise StorageUnavailableError(f"Cannot read DB {db_path}: {e}") from e
    return [ComposerRow(key, value) for key, value in rows]


def read_composer_rows(db_path: Path) -> ComposerRows:
    """Read all composerData rows from the first table that has any.

    A database without either table yields no rows rather than an error.
    """
    with _get_connection(db_path) as conn:
        found_any_table = False
        for table in COMPOSER_TABLES:
            rows = _query_composer_rows(conn, table, db_path)
            if rows is None:
                logger.warning("Table '%s' not found in %s", table, db_path)
                continue
            found_any_table = True
            if rows:
                return ComposerRows(table, rows)
        if not found_any_table:
            logger.error(
                "Tables %s not found. Cannot extract logs.",
                " and ".join(f"'{t}'" for t in COMPOSER_TABLES),
            )
        return ComposerRows()
