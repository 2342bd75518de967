#!/usr/bin/env python3
"""Render composer conversations to plain-text transcript lines."""

from .classifier import classify
from .code_blocks import render_code_blocks
from .models import (
    Bubble,
    ComposerData,
    DetailsDir,
    LineKind,
    MessageRole,
    RenderedLine,
    RenderedTranscript,
)
from .tool_calls import render_tool_calls

RICH_TEXT_PLACEHOLDER = "(Formatted Text - see details if needed)"
EMPTY_MESSAGE_PLACEHOLDER = "<empty message>"

SUMMARY_HEADER = "    [Summary]:"
SUMMARY_INDENT = "      "
LINTER_HEADER = "    [Linter Errors Found]:"


def render_user_message(bubble: Bubble, index: int) -> list[RenderedLine]:
    text = bubble.text or (
        RICH_TEXT_PLACEHOLDER if bubble.richText else EMPTY_MESSAGE_PLACEHOLDER
    )
    return [RenderedLine(LineKind.TEXT, f"[{index}] User: {text.strip()}")]


def render_summary(bubble: Bubble) -> list[RenderedLine]:
    summary = bubble.cachedConversationSummary
    if summary is None or not summary.summary:
        return []
    lines = [RenderedLine(LineKind.SUMMARY, SUMMARY_HEADER)]
    for line in summary.summary.split("\n"):
        if line.strip():
            lines.append(RenderedLine(LineKind.SUMMARY, f"{SUMMARY_INDENT}{line.strip()}"))
    return lines


def render_linter_errors(bubble: Bubble) -> list[RenderedLine]:
    """One line per linter error, grouped under a single header."""
    if not bubble.multiFileLinterErrors:
        return []
    lines = [RenderedLine(LineKind.LINTER_ERROR, LINTER_HEADER)]
    for group in bubble.multiFileLinterErrors:
        file_path = group.relativeWorkspacePath or "unknown file"
        for error in group.errors:
            lines.append(
                RenderedLine(
                    LineKind.LINTER_ERROR,
                    f"     - File: {file_path}: {error.message or 'no message'}",
                )
            )
    return lines


def render_assistant_message(
    bubble: Bubble,
    index: int,
    record: ComposerData,
    details_dir: DetailsDir,
) -> list[RenderedLine]:
    """Render an assistant bubble.

    Sections follow a fixed order: text, cached summary, tool calls, code
    blocks, linter errors. A bubble without text gets a bare "[n] AI:"
    header before its other sections; a bubble with no output at all
    renders nothing.
    """
    prefix = f"[{index}] AI:"
    lines: list[RenderedLine] = []
    text = (bubble.text or "").strip()
    if text:
        lines.append(RenderedLine(LineKind.TEXT, f"{prefix} {text}"))

    sections = (
        render_summary(bubble)
        + render_tool_calls(bubble, record.bubbleDataMap, details_dir)
        + render_code_blocks(bubble, record.codeBlockData, details_dir)
        + render_linter_errors(bubble)
    )
    if sections and not lines:
        lines.append(RenderedLine(LineKind.TEXT, prefix))
    return lines + sections


def render_message(
    bubble: Bubble,
    index: int,
    record: ComposerData,
    details_dir: DetailsDir,
) -> list[RenderedLine]:
    role = classify(bubble)
    if role == MessageRole.USER:
        return render_user_message(bubble, index)
    if role == MessageRole.ASSISTANT:
        return render_assistant_message(bubble, index, record, details_dir)
    return []


def render_conversation(
    record: ComposerData, details_dir: DetailsDir
) -> RenderedTranscript:
    """Render all visible messages of a record in stored order.

    Visible messages are numbered from 1 without gaps; each is followed by
    a blank line.
    """
    transcript = RenderedTranscript()
    for bubble in record.conversation:
        rendered = render_message(
            bubble, transcript.message_count + 1, record, details_dir
        )
        if not rendered:
            continue
        transcript.message_count += 1
        for line in rendered:
            transcript.lines.append(line.text)
            if line.side_file is not None:
                transcript.side_files.append(line.side_file)
        transcript.lines.append("")
    return transcript
