#!/usr/bin/env python3
"""Utility functions for filenames, truncation and timestamps."""

import re
from datetime import datetime
from itertools import groupby
from pathlib import Path
from typing import Any, Optional, Union

from .parser import parse_epoch_millis

# Extensions written as-is; every other side-file extension gets "txt" appended
ALLOWED_EXTENSIONS = (".log", ".txt", ".md", ".csv")

FILENAME_MAX_LENGTH = 100
DISPLAY_NAME_MAX_LENGTH = 50
NO_DATE = "nodate"


def _replace_unsafe_runs(text: str, allowed: str) -> str:
    """Replace each run of characters that are not letters or in `allowed` with '_'."""

    def is_safe(char: str) -> bool:
        return char.isalpha() or char in allowed

    return "".join(
        "".join(chars) if safe else "_" for safe, chars in groupby(text, key=is_safe)
    )


def sanitize_filename(name: str) -> str:
    """Reduce a path to a safe file name.

    Directory components are dropped, runs of characters other than letters,
    digits, '_', '-', '.' and space become a single '_'.
    """
    base_name = Path(name).name
    return _replace_unsafe_runs(base_name, "0123456789_-. ")[:FILENAME_MAX_LENGTH]


def sanitize_display_name(name: Optional[str]) -> str:
    """Turn a conversation name into a filename fragment ('chat' when unnamed)."""
    safe = _replace_unsafe_runs(name or "chat", "0123456789_- ")
    return re.sub(r" +", "_", safe)[:DISPLAY_NAME_MAX_LENGTH]


def sanitize_identifier(value: str) -> str:
    """Make a stored id usable inside a file name ('/' and '.' runs become '_')."""
    return _replace_unsafe_runs(value, "0123456789_-")


def remap_script_extension(ext: str) -> str:
    """Append 'txt' to extensions outside the allow-list (".py" -> ".pytxt")."""
    if not ext or ext.lower() in ALLOWED_EXTENSIONS:
        return ext
    return ext + "txt"


def remap_filename(filename: str) -> str:
    """Apply remap_script_extension to the extension of a file name."""
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem:
        return filename
    return f"{stem}{remap_script_extension('.' + ext)}"


def truncate(text: Any, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with '...'.

    Raises:
        TypeError: If text is not a string.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected str, got {type(text).__name__}")
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _stored_datetime(value: Union[int, float, str, None]) -> Optional[datetime]:
    # Zero and empty values mean "never set"
    if not value:
        return None
    return parse_epoch_millis(value)


def format_filename_date(value: Union[int, float, str, None]) -> str:
    """Format stored epoch millis as 'dd-mm-yyyy_HH-MM-SS' (UTC) for file names."""
    dt = _stored_datetime(value)
    if dt is None:
        return NO_DATE
    return dt.strftime("%d-%m-%Y_%H-%M-%S")


def format_iso_timestamp(value: Union[int, float, str, None]) -> str:
    """Format stored epoch millis as an ISO 8601 UTC timestamp with milliseconds."""
    dt = _stored_datetime(value)
    if dt is None:
        return "N/A"
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
