#!/usr/bin/env python3
"""CLI interface for cursor-chat-log."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from .converter import export_chat_logs

OUTPUT_SUBDIR = "cursor-composers"
NEWEST_SHOWN = 5


def get_default_project_identifier(current_cwd: Optional[str] = None) -> str:
    """Name of the enclosing git repository root, else of the current directory."""
    cwd_path = Path(current_cwd or os.getcwd()).resolve()
    try:
        repo = Repo(cwd_path, search_parent_directories=True)
        return Path(repo.git_dir).parent.resolve().name
    except (InvalidGitRepositoryError, NoSuchPathError):
        return cwd_path.name


def get_output_dir(save_to_project: Optional[Path]) -> Path:
    return (save_to_project or Path.cwd()) / OUTPUT_SUBDIR


def _newest_first(paths: list[Path]) -> list[Path]:
    return sorted(paths, key=lambda p: p.stat().st_mtime, reverse=True)


def _report_saved(paths: list[Path], output_dir: Path, project_identifier: str) -> None:
    if not paths:
        click.echo(f"No chats found for project {project_identifier}.")
        return
    newest = _newest_first(paths)
    click.echo("Newest chats saved:")
    for path in newest[:NEWEST_SHOWN]:
        click.echo(str(path))
    remaining = len(newest) - NEWEST_SHOWN
    if remaining > 0:
        click.echo(f"...and {remaining} more chats.")
    click.echo(f"All chats are in {output_dir}")
    click.echo("To view older chat history, open files from this folder.")


@click.command()
@click.argument("project_identifier", required=False)
@click.option(
    "-d",
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to state.vscdb (default: auto-detect for Linux/macOS/Windows, or CURSOR_CHAT_LOG_DB_PATH)",
)
@click.option(
    "--save-to-project",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Save chats to cursor-composers/ inside this project root instead of the current directory",
)
@click.option(
    "--from-date",
    type=str,
    help='Only export chats last updated from this date/time (e.g., "2 days ago", "yesterday", "2025-06-08")',
)
@click.option(
    "--to-date",
    type=str,
    help='Only export chats last updated up to this date/time (e.g., "today", "2025-06-08 15:00")',
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Show debug logging and full traceback on errors.",
)
def main(
    project_identifier: Optional[str],
    db_path: Optional[Path],
    save_to_project: Optional[Path],
    from_date: Optional[str],
    to_date: Optional[str],
    debug: bool,
) -> None:
    """Extract Cursor chat history for a project.

    PROJECT_IDENTIFIER: Directory name, part of a path, or any unique string found in the chats. Defaults to the name of the current git repository (or directory).
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        if not project_identifier:
            project_identifier = get_default_project_identifier()
            click.echo(f"Using project identifier: {project_identifier}")

        output_dir = get_output_dir(save_to_project)
        paths = export_chat_logs(
            project_identifier,
            output_dir,
            db_path,
            from_date=from_date,
            to_date=to_date,
        )
        _report_saved(paths, output_dir, project_identifier)

    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        if debug:
            import traceback

            traceback.print_exc()
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error extracting chats: {e}", err=True)
        if debug:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
