"""Render the tool calls ("capabilities") a bubble ran.

Each invocation reference is resolved against the record's bubbleDataMap.
Small details are rendered inline as a short preview; large ones are
dumped to a JSON side file and referenced from the transcript.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, cast

from .models import (
    Bubble,
    CapabilityRef,
    DetailsDir,
    LineKind,
    RenderedLine,
    SideFile,
    ToolCallData,
)
from .utils import sanitize_filename, truncate

logger = logging.getLogger(__name__)

# Serialized details shorter than this are rendered inline
DETAIL_THRESHOLD = 300

TOOL_PREFIX = "    [TOOL CALL]"
DETAIL_INDENT = "      "

RAW_ARGS_PREVIEW_LENGTH = 100
NOTE_PREVIEW_LENGTH = 100
RESULT_PREVIEW_LENGTH = 150
RAW_DETAILS_PREVIEW_LENGTH = 150


@dataclass(frozen=True)
class ArgPreview:
    """How one recognized argument field appears in the inline preview."""

    field: str
    label: str
    max_length: Optional[int] = None  # None: shown in full


# Checked in order; every present field contributes one "Label: value;" part
TOOL_ARG_PREVIEWS: tuple[ArgPreview, ...] = (
    ArgPreview("command", "Cmd", 50),
    ArgPreview("target_file", "File"),
    ArgPreview("relativeWorkspacePath", "File"),
    ArgPreview("directoryPath", "Dir"),
    ArgPreview("query", "Query", 30),
    ArgPreview("search_term", "Search"),
)


def serialize_tool_call(tool_call: ToolCallData) -> str:
    """Canonical serialization used for both the size check and the side file."""
    return json.dumps(tool_call.raw, indent=2, ensure_ascii=False)


def _format_arg_value(value: Any, max_length: Optional[int]) -> str:
    if max_length is None:
        return str(value)
    return truncate(value, max_length)


def format_args_summary(args: dict[str, Any]) -> str:
    """Build the 'Cmd: ...; File: ...;' summary from recognized argument fields."""
    summary = ""
    for preview in TOOL_ARG_PREVIEWS:
        value = args.get(preview.field)
        if value:
            summary += (
                f"{preview.label}: {_format_arg_value(value, preview.max_length)}; "
            )
    return summary.strip()


def _parse_args(tool_call: ToolCallData) -> tuple[dict[str, Any], Optional[str]]:
    """Return the parsed arguments and their raw textual form.

    Arguments come from ``params`` or ``rawArgs`` and are either a JSON
    string or an already structured value.
    """
    source = tool_call.params or tool_call.rawArgs
    if not source:
        return {}, None
    if isinstance(source, str):
        try:
            parsed: Any = json.loads(source)
        except json.JSONDecodeError:
            logger.debug(
                "Unparsable arguments for tool call %s: %s",
                tool_call.toolCallId,
                source[:RAW_ARGS_PREVIEW_LENGTH],
            )
            return {"raw": source}, source
        if isinstance(parsed, dict):
            return cast(dict[str, Any], parsed), source
        return {"raw": source}, source
    if isinstance(source, dict):
        return cast(dict[str, Any], source), json.dumps(source, ensure_ascii=False)
    raw_source = json.dumps(source, ensure_ascii=False)
    return {"raw": raw_source}, raw_source


def _inline_preview_lines(tool_call: ToolCallData) -> list[str]:
    """Human-readable detail lines for a small tool call.

    Raises:
        TypeError: If a previewed field does not hold text.
    """
    lines: list[str] = []
    args, args_source = _parse_args(tool_call)
    additional = tool_call.additionalData
    instructions = (additional.instructions if additional else None) or args.get(
        "instructions"
    )
    explanation = (additional.explanation if additional else None) or args.get(
        "explanation"
    )
    result = tool_call.result or tool_call.output

    if args and args_source != "{}":
        summary = format_args_summary(args)
        if summary:
            lines.append(f"{DETAIL_INDENT}Args: {summary}")
        elif args_source:
            lines.append(
                f"{DETAIL_INDENT}Args: {truncate(args_source, RAW_ARGS_PREVIEW_LENGTH)}"
            )
    if instructions:
        lines.append(
            f"{DETAIL_INDENT}Instructions: {truncate(instructions, NOTE_PREVIEW_LENGTH)}"
        )
    if explanation:
        lines.append(
            f"{DETAIL_INDENT}Explanation: {truncate(explanation, NOTE_PREVIEW_LENGTH)}"
        )
    if result:
        lines.append(f"{DETAIL_INDENT}Result: {truncate(result, RESULT_PREVIEW_LENGTH)}")
    if tool_call.error:
        lines.append(f"{DETAIL_INDENT}ERROR: {tool_call.error}")
    if tool_call.status:
        lines.append(f"{DETAIL_INDENT}Status: {tool_call.status}")
    return lines


def render_inline_tool_call(
    tool_call_id: str, tool_call: ToolCallData, serialized: str
) -> list[RenderedLine]:
    lines = [
        RenderedLine(
            LineKind.TOOL_INLINE,
            f"{TOOL_PREFIX} Name: {tool_call.display_name} (ID: {tool_call_id}) [INLINE DETAILS]",
        )
    ]
    try:
        preview = _inline_preview_lines(tool_call)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(
            "Error processing inline tool details for %s: %s", tool_call_id, e
        )
        preview = [
            f"{DETAIL_INDENT}Details (raw): {truncate(serialized, RAW_DETAILS_PREVIEW_LENGTH)}"
        ]
    lines.extend(RenderedLine(LineKind.TOOL_INLINE, text) for text in preview)
    return lines


def render_tool_call_reference(
    tool_call_id: str,
    tool_call: ToolCallData,
    serialized: str,
    details_dir: DetailsDir,
) -> RenderedLine:
    filename = f"tool_call_{sanitize_filename(tool_call_id)}.json"
    text = f"{TOOL_PREFIX} Name: {tool_call.display_name} (ID: {tool_call_id})."
    if tool_call.status:
        text += f" Status: {tool_call.status}."
    text += f" (Details: {details_dir.pointer(filename)})"
    return RenderedLine(
        LineKind.TOOL_REF,
        text,
        SideFile(details_dir.file_path(filename), serialized),
    )


def render_dangling_reference(ref: Any, tool_call_id: Optional[str]) -> RenderedLine:
    raw = json.dumps(ref, separators=(",", ":"), ensure_ascii=False)
    return RenderedLine(
        LineKind.CAPABILITY_INFO,
        f"    [Capability Info (details not found for {tool_call_id or 'N/A'})]: {raw}",
    )


def _ref_tool_call_id(ref: Any) -> Optional[str]:
    """The ref's toolCallId as a bubbleDataMap key; numeric ids are stringified."""
    if isinstance(ref, dict):
        tool_call_id = cast(CapabilityRef, ref).get("toolCallId")
        if isinstance(tool_call_id, int) and not isinstance(tool_call_id, bool):
            return str(tool_call_id)
        if isinstance(tool_call_id, str) and tool_call_id:
            return tool_call_id
    return None


def render_tool_calls(
    bubble: Bubble,
    bubble_data_map: Optional[dict[str, ToolCallData]],
    details_dir: DetailsDir,
) -> list[RenderedLine]:
    """Render every capability invocation of a bubble, in stored order.

    Args:
        bubble: The assistant bubble.
        bubble_data_map: Tool call details of the record, if it has any.
        details_dir: Where side files for large details go.

    Returns:
        Rendered lines; file-backed lines carry their side file.
    """
    tool_calls = bubble_data_map or {}
    lines: list[RenderedLine] = []
    for refs in bubble.capabilitiesRan.values():
        for ref in refs:
            tool_call_id = _ref_tool_call_id(ref)
            tool_call = tool_calls.get(tool_call_id) if tool_call_id else None
            if tool_call_id and tool_call is not None:
                serialized = serialize_tool_call(tool_call)
                if len(serialized) < DETAIL_THRESHOLD:
                    lines.extend(
                        render_inline_tool_call(tool_call_id, tool_call, serialized)
                    )
                else:
                    lines.append(
                        render_tool_call_reference(
                            tool_call_id, tool_call, serialized, details_dir
                        )
                    )
            elif ref:
                lines.append(render_dangling_reference(ref, tool_call_id))
    return lines
