#!/usr/bin/env python3
"""Parse stored composer values into typed records.

This module provides the record-level entry points:
- decode_value: Turn a raw stored value into text
- parse_composer_data: Decode JSON and build a ComposerData
- parse_epoch_millis: Parse stored epoch-millisecond timestamps

For model creation from decoded JSON, see factories/.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .factories import create_composer_data
from .models import ComposerData

PARSE_ERROR_PREVIEW_LENGTH = 200


class RecordParseError(ValueError):
    """A stored value is not a JSON object."""

    def __init__(self, message: str, preview: str):
        super().__init__(message)
        self.preview = preview


def decode_value(value: Union[bytes, str, None]) -> str:
    """Decode a stored value to text; invalid UTF-8 bytes are replaced."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def parse_composer_data(raw: str) -> Optional[ComposerData]:
    """Parse a stored composer value.

    Returns:
        The record, or None if the value is empty or has no message sequence.

    Raises:
        RecordParseError: If the value is not valid JSON or not a JSON object.
    """
    if not raw:
        return None
    preview = raw[:PARSE_ERROR_PREVIEW_LENGTH]
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RecordParseError(f"JSON decode error: {e}", preview) from e
    if not isinstance(data, dict):
        raise RecordParseError(
            f"Expected a JSON object, got {type(data).__name__}", preview
        )
    return create_composer_data(data)


def parse_epoch_millis(value: Union[int, float, str, None]) -> Optional[datetime]:
    """Parse epoch milliseconds (number or numeric string) to an aware UTC datetime."""
    if value is None or isinstance(value, bool):
        return None
    try:
        millis = float(value) if isinstance(value, str) else value
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None
