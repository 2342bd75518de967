"""Pytest configuration and shared fixtures."""

import json
import sqlite3
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

from cursor_chat_log.models import DetailsDir

StoredValue = Union[dict[str, Any], str, bytes, None]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's environment from leaking into tests."""
    monkeypatch.delenv("CURSOR_CHAT_LOG_DB_PATH", raising=False)
    monkeypatch.delenv("CURSOR_CHAT_LOG_DEBUG_TIMING", raising=False)


@pytest.fixture
def details_dir(tmp_path: Path) -> DetailsDir:
    return DetailsDir(tmp_path / "chat_details", "chat_details")


@pytest.fixture
def make_state_db(tmp_path: Path) -> Callable[..., Path]:
    """Build a state.vscdb with the given composer rows.

    Dict values are stored as JSON text, everything else as-is.
    """

    def _make(
        rows: dict[str, StoredValue],
        table: str = "cursorDiskKV",
        extra_tables: tuple[str, ...] = (),
        name: str = "state.vscdb",
    ) -> Path:
        db_path = tmp_path / name
        conn = sqlite3.connect(db_path)
        try:
            for table_name in (table, *extra_tables):
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {table_name} (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)"
                )
            for key, value in rows.items():
                stored = json.dumps(value) if isinstance(value, dict) else value
                conn.execute(
                    f"INSERT INTO {table} (key, value) VALUES (?, ?)", (key, stored)
                )
            conn.commit()
        finally:
            conn.close()
        return db_path

    return _make


@pytest.fixture
def composer_record() -> Callable[..., dict[str, Any]]:
    """Build a stored composer record around a list of bubbles."""

    def _make(
        conversation: list[dict[str, Any]],
        composer_id: str = "abcdef123456",
        name: Optional[str] = "My Chat",
        last_updated_at: Optional[int] = 1700000000000,
        **extra: Any,
    ) -> dict[str, Any]:
        record: dict[str, Any] = {
            "composerId": composer_id,
            "name": name,
            "createdAt": 1699990000000,
            "lastUpdatedAt": last_updated_at,
            "conversation": conversation,
        }
        record.update(extra)
        return record

    return _make


@pytest.fixture
def greeting_conversation() -> list[dict[str, Any]]:
    return [
        {"type": 1, "bubbleId": "b1", "text": "hi"},
        {"type": 2, "bubbleId": "b2", "text": "hello"},
    ]
