"""Resolve and render the code blocks a bubble references.

Code block references carry a location, a version and sometimes an index;
their content lives in the record's codeBlockData table, keyed by location.
Matching tries an ordered list of strategies and stops at the first hit.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .models import (
    Bubble,
    CodeBlockDetail,
    CodeBlockRef,
    DetailsDir,
    LineKind,
    RenderedLine,
    SideFile,
)
from .utils import remap_filename, sanitize_filename

logger = logging.getLogger(__name__)

CODE_PREFIX = "    [CODE BLOCK]"
CODE_INDENT = "      "

# Embedded content at or above this size goes to a side file
INLINE_CONTENT_THRESHOLD = 300
INLINE_MAX_LINES = 10

STATUS_FOUND = "found_in_data"
STATUS_INLINE_FALLBACK = "inline_fallback"

UNKNOWN_LANGUAGE = "unknown"

MISSING_TABLE_HEADER = "    [CODE BLOCKS DETECTED] (Content details not extracted - codeBlockData missing in JSON log)"


# =============================================================================
# Matching Strategies
# =============================================================================

CodeBlockMatcher = Callable[
    [CodeBlockRef, int, list[CodeBlockDetail]], Optional[CodeBlockDetail]
]


def match_exact_version(
    ref: CodeBlockRef, version: int, candidates: list[CodeBlockDetail]
) -> Optional[CodeBlockDetail]:
    """First candidate with the reference's version."""
    return next((c for c in candidates if c.version == version), None)


def match_version_and_index(
    ref: CodeBlockRef, version: int, candidates: list[CodeBlockDetail]
) -> Optional[CodeBlockDetail]:
    """First candidate with both the version and the declared index."""
    if ref.codeBlockIdx is None:
        return None
    return next(
        (
            c
            for c in candidates
            if c.codeBlockIdx == ref.codeBlockIdx and c.version == version
        ),
        None,
    )


def match_single_version_candidate(
    ref: CodeBlockRef, version: int, candidates: list[CodeBlockDetail]
) -> Optional[CodeBlockDetail]:
    """The only candidate with the version, if exactly one has it."""
    same_version = [c for c in candidates if c.version == version]
    if len(same_version) == 1:
        return same_version[0]
    return None


CODE_BLOCK_MATCHERS: tuple[CodeBlockMatcher, ...] = (
    match_exact_version,
    match_version_and_index,
    match_single_version_candidate,
)


def lookup_key(ref: CodeBlockRef) -> Optional[str]:
    """Key into codeBlockData: the external URI form, else the filesystem path."""
    if ref.uri is None:
        return None
    return ref.uri.external or ref.uri.fsPath


def find_code_block(
    ref: CodeBlockRef,
    version: int,
    code_block_data: dict[str, list[CodeBlockDetail]],
) -> Optional[CodeBlockDetail]:
    key = lookup_key(ref)
    if not key or key not in code_block_data:
        return None
    candidates = code_block_data[key]
    for matcher in CODE_BLOCK_MATCHERS:
        match = matcher(ref, version, candidates)
        if match is not None:
            return match
    return None


# =============================================================================
# Rendering
# =============================================================================


@dataclass
class ResolvedCodeBlock:
    """Content found for a reference, and whether it needs a side file."""

    content: str
    status: str
    filename: Optional[str] = None  # Set when file-backed


def _language_extension(language: str) -> str:
    return f".{'log' if language == UNKNOWN_LANGUAGE else language}"


def _resolved_filename(
    ref: CodeBlockRef,
    detail: CodeBlockDetail,
    index: int,
    version: int,
    language: str,
) -> str:
    ref_path = ref.uri.fsPath if ref.uri else None
    target_path = (detail.uri.fsPath if detail.uri else None) or ref_path
    ext = Path(target_path or "file").suffix or _language_extension(language)
    base_name = sanitize_filename(target_path or f"unknown_{index}")
    return remap_filename(f"code_block_{base_name}_idx{index}_v{version}{ext}")


def _needs_side_file(content: str) -> bool:
    return (
        len(content) >= INLINE_CONTENT_THRESHOLD
        or len(content.split("\n")) > INLINE_MAX_LINES
    )


def resolve_code_block(
    ref: CodeBlockRef,
    index: int,
    code_block_data: dict[str, list[CodeBlockDetail]],
) -> tuple[Optional[ResolvedCodeBlock], Optional[CodeBlockDetail]]:
    """Find content for one reference.

    Returns:
        The resolved content (None when nothing was found) and the matched
        table candidate, if any.
    """
    language = ref.languageId or UNKNOWN_LANGUAGE
    version = ref.version if ref.version is not None else 0

    detail = find_code_block(ref, version, code_block_data)
    if detail is not None:
        return (
            ResolvedCodeBlock(
                content=detail.content or "",
                status=detail.status or STATUS_FOUND,
                filename=_resolved_filename(ref, detail, index, version, language),
            ),
            detail,
        )

    if ref.content:
        resolved = ResolvedCodeBlock(ref.content, STATUS_INLINE_FALLBACK)
        if _needs_side_file(ref.content):
            resolved.filename = remap_filename(
                f"code_block_inline_{index}_v{version}{_language_extension(language)}"
            )
        return resolved, None

    return None, None


def _display_path(ref: CodeBlockRef, detail: Optional[CodeBlockDetail]) -> str:
    return (
        (ref.uri.fsPath if ref.uri else None)
        or (ref.uri.path if ref.uri else None)
        or (detail.uri.fsPath if detail and detail.uri else None)
        or "inline/unknown"
    )


def render_code_block(
    ref: CodeBlockRef,
    index: int,
    code_block_data: dict[str, list[CodeBlockDetail]],
    details_dir: DetailsDir,
) -> list[RenderedLine]:
    language = ref.languageId or UNKNOWN_LANGUAGE
    resolved, detail = resolve_code_block(ref, index, code_block_data)
    display_path = _display_path(ref, detail)
    label = f"{CODE_PREFIX} #{index + 1}"

    if resolved is None:
        logger.debug("No content for code block %s (key %s)", index, lookup_key(ref))
        return [
            RenderedLine(
                LineKind.CODE_NOT_FOUND,
                f"{label} [not found] Lang: {language}, Path: {display_path}. (Content not found)",
            )
        ]

    if resolved.filename is not None:
        return [
            RenderedLine(
                LineKind.CODE_REF,
                f"{label} [{resolved.status}] Lang: {language}, Path: {display_path}. "
                f"(Full code: {details_dir.pointer(resolved.filename)})",
                SideFile(details_dir.file_path(resolved.filename), resolved.content),
            )
        ]

    return [
        RenderedLine(
            LineKind.CODE_INLINE,
            f"{label} [{resolved.status}] Lang: {language}, Path: {display_path} [INLINE CODE]",
        ),
        RenderedLine(
            LineKind.CODE_INLINE,
            f"{CODE_INDENT}```{language}\n{resolved.content}\n{CODE_INDENT}```",
        ),
    ]


def render_code_block_listing(bubble: Bubble) -> list[RenderedLine]:
    """List a bubble's code blocks when the record has no content table."""
    lines = [RenderedLine(LineKind.TEXT, MISSING_TABLE_HEADER)]
    for ref in bubble.codeBlocks:
        language = ref.languageId or UNKNOWN_LANGUAGE
        path = ((ref.uri.fsPath or ref.uri.path) if ref.uri else None) or "no path"
        lines.append(RenderedLine(LineKind.TEXT, f"     - Lang: {language}, Path: {path}"))
    return lines


def render_code_blocks(
    bubble: Bubble,
    code_block_data: Optional[dict[str, list[CodeBlockDetail]]],
    details_dir: DetailsDir,
) -> list[RenderedLine]:
    """Render a bubble's code blocks in declared order.

    The running index is the reference's own codeBlockIdx when present,
    else its position in the list.
    """
    if not bubble.codeBlocks:
        return []
    if code_block_data is None:
        return render_code_block_listing(bubble)

    lines: list[RenderedLine] = []
    for position, ref in enumerate(bubble.codeBlocks):
        index = ref.codeBlockIdx if ref.codeBlockIdx is not None else position
        lines.extend(render_code_block(ref, index, code_block_data, details_dir))
    return lines
