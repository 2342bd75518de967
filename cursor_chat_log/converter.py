#!/usr/bin/env python3
"""Export Cursor composer conversations to plain-text transcripts."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import dateparser

from .models import ComposerData, DetailsDir, RenderedTranscript, SideFile
from .parser import (
    RecordParseError,
    decode_value,
    parse_composer_data,
    parse_epoch_millis,
)
from .renderer import render_conversation
from .storage import COMPOSER_KEY_PREFIX, ComposerRow, read_composer_rows, resolve_db_path
from .timings import log_timing
from .utils import (
    format_filename_date,
    format_iso_timestamp,
    remap_filename,
    sanitize_display_name,
    sanitize_identifier,
)

logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 8
TRANSCRIPT_EXTENSION = ".log"


# =============================================================================
# Date Filtering
# =============================================================================


def parse_date_range(
    from_date: Optional[str], to_date: Optional[str]
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Parse date bounds like "yesterday" or "2025-06-08" as naive UTC datetimes.

    Raises:
        ValueError: If a bound cannot be parsed.
    """
    dateparser_settings: Any = {"TIMEZONE": "UTC", "RETURN_AS_TIMEZONE_AWARE": False}
    from_dt = None
    to_dt = None

    if from_date:
        from_dt = dateparser.parse(from_date, settings=dateparser_settings)
        if not from_dt:
            raise ValueError(f"Could not parse from-date: {from_date}")
        # Relative days start at midnight
        if from_date in ["today", "yesterday"] or "days ago" in from_date:
            from_dt = from_dt.replace(hour=0, minute=0, second=0, microsecond=0)

    if to_date:
        to_dt = dateparser.parse(to_date, settings=dateparser_settings)
        if not to_dt:
            raise ValueError(f"Could not parse to-date: {to_date}")
        if to_date in ["today", "yesterday"] or "days ago" in to_date:
            to_dt = to_dt.replace(hour=23, minute=59, second=59, microsecond=999999)

    return from_dt, to_dt


def is_in_date_range(
    record: ComposerData, from_dt: Optional[datetime], to_dt: Optional[datetime]
) -> bool:
    """Check the record's last update against the bounds.

    Records without a usable timestamp only pass when no bound is set.
    """
    if from_dt is None and to_dt is None:
        return True
    updated = parse_epoch_millis(record.lastUpdatedAt) if record.lastUpdatedAt else None
    if updated is None:
        return False
    updated = updated.replace(tzinfo=None)
    if from_dt and updated < from_dt:
        return False
    if to_dt and updated > to_dt:
        return False
    return True


# =============================================================================
# Output Layout
# =============================================================================


@dataclass
class ConversationExport:
    """One accepted conversation, rendered and ready to write."""

    key: str
    record: ComposerData
    log_path: Path
    details_dir: DetailsDir
    transcript: RenderedTranscript


def get_output_stem(record: ComposerData, key: str) -> str:
    """'<date>_<name>_<id8>', shared by the transcript and its details directory."""
    safe_name = sanitize_display_name(record.name)
    date_str = format_filename_date(record.lastUpdatedAt)
    composer_id = sanitize_identifier(
        record.composerId or key.removeprefix(COMPOSER_KEY_PREFIX)
    )
    return f"{date_str}_{safe_name}_{composer_id[:SHORT_ID_LENGTH]}"


def format_transcript(
    export: ConversationExport, table: str, project_identifier: str
) -> str:
    record = export.record
    header = [
        "--- Chat Log ---",
        f"File: {export.log_path.name}",
    ]
    if export.transcript.side_files:
        header.append(f"Details Directory: ./{export.details_dir.name}/")
    header += [
        f"Table: {table}",
        f"Key: {export.key}",
        f"Name: {record.name or 'N/A'}",
        f"Last Updated: {format_iso_timestamp(record.lastUpdatedAt)}",
        f"Created At: {format_iso_timestamp(record.createdAt)}",
        f"Composer ID: {record.composerId or 'N/A'}",
        f"Project Identifier Found: {project_identifier}",
        "--- Start of Conversation ---",
        "",
    ]
    return "\n".join(
        header + export.transcript.lines + ["--- End of Conversation ---"]
    )


# =============================================================================
# Writing
# =============================================================================


def _write_side_file(side_file: SideFile) -> bool:
    try:
        side_file.path.write_text(side_file.content, encoding="utf-8")
    except OSError as e:
        logger.error("Error writing file %s: %s", side_file.path, e)
        return False
    return True


async def write_side_files(details_dir: DetailsDir, side_files: list[SideFile]) -> int:
    """Write side files concurrently and wait for all of them.

    Failures are logged and do not stop the other writes.

    Returns:
        Number of files written.
    """
    if not side_files:
        return 0
    try:
        details_dir.path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Could not create details directory %s: %s", details_dir.path, e)
        return 0
    results = await asyncio.gather(
        *(asyncio.to_thread(_write_side_file, side_file) for side_file in side_files)
    )
    return sum(results)


# =============================================================================
# Export Pipeline
# =============================================================================


def prepare_conversation(
    row: ComposerRow,
    project_identifier: str,
    output_dir: Path,
    from_dt: Optional[datetime] = None,
    to_dt: Optional[datetime] = None,
) -> Optional[ConversationExport]:
    """Filter, parse and render one stored row.

    Returns:
        The rendered conversation, or None if the row is skipped.
    """
    if not row.value:
        logger.warning("Skipping row with key %s due to empty value", row.key)
        return None
    raw_value = decode_value(row.value)
    if project_identifier not in raw_value:
        return None

    try:
        record = parse_composer_data(raw_value)
    except RecordParseError as e:
        logger.error(
            "Error parsing JSON for key %s (first 200 chars): %s... Error: %s",
            row.key,
            e.preview,
            e,
        )
        return None
    if record is None:
        return None
    if not is_in_date_range(record, from_dt, to_dt):
        return None

    stem = get_output_stem(record, row.key)
    details_dir = DetailsDir(output_dir / f"{stem}_details", f"{stem}_details")
    with log_timing(f"Render {row.key}"):
        transcript = render_conversation(record, details_dir)
    if transcript.message_count == 0:
        return None

    return ConversationExport(
        key=row.key,
        record=record,
        log_path=output_dir / remap_filename(f"{stem}{TRANSCRIPT_EXTENSION}"),
        details_dir=details_dir,
        transcript=transcript,
    )


async def export_chat_logs_async(
    project_identifier: str,
    output_dir: Path,
    db_path: Optional[Path] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> list[Path]:
    """Export every conversation whose stored text contains project_identifier.

    Conversations are processed one after another; the side files of each
    conversation are written concurrently once its transcript is assembled.
    Database reads, rendering and file writes run in worker threads so the
    event loop stays free. A transcript that cannot be written is logged and
    left out of the result.

    Args:
        project_identifier: Plain substring matched against raw stored values.
        output_dir: Directory for transcripts and their details directories.
        db_path: Explicit state database path (default: auto-detect).
        from_date: Only export conversations last updated at or after this date.
        to_date: Only export conversations last updated at or before this date.

    Returns:
        Written transcript paths, in processing order.

    Raises:
        StorageUnavailableError: If the database is missing or unreadable.
        ValueError: If a date bound cannot be parsed.
    """
    resolved_db_path = resolve_db_path(db_path)
    from_dt, to_dt = parse_date_range(from_date, to_date)
    output_dir.mkdir(parents=True, exist_ok=True)

    with log_timing("Read composer rows"):
        composer_rows = await asyncio.to_thread(read_composer_rows, resolved_db_path)

    saved_paths: list[Path] = []
    for row in composer_rows.rows:
        export = await asyncio.to_thread(
            prepare_conversation, row, project_identifier, output_dir, from_dt, to_dt
        )
        if export is None:
            continue
        transcript_text = format_transcript(
            export, composer_rows.table, project_identifier
        )
        try:
            await asyncio.to_thread(
                export.log_path.write_text, transcript_text, encoding="utf-8"
            )
        except OSError as e:
            logger.error("Error writing transcript %s: %s", export.log_path, e)
            continue
        saved_paths.append(export.log_path)
        await write_side_files(export.details_dir, export.transcript.side_files)

    logger.debug(
        "Exported %d of %d composer rows from %s",
        len(saved_paths),
        len(composer_rows.rows),
        composer_rows.table or "no table",
    )
    return saved_paths


def export_chat_logs(
    project_identifier: str,
    output_dir: Path,
    db_path: Optional[Path] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> list[Path]:
    """Synchronous wrapper around export_chat_logs_async."""
    return asyncio.run(
        export_chat_logs_async(
            project_identifier, output_dir, db_path, from_date, to_date
        )
    )
