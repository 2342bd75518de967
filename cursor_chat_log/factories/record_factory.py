"""Factory for creating typed composer records from decoded JSON.

Stored records are produced by many Cursor versions. Instead of rejecting a
record when one field has drifted, each nested entity is validated on its
own and fields with unexpected types are dropped (treated as absent):
- BubbleUri, CodeBlockRef, CodeBlockDetail: code block location and content
- MultiFileLinterError: linter error groups
- ToolCallData: tool call details, keeping the stored mapping for dumps
- Bubble, ComposerData: messages and the conversation itself
"""

import logging
from typing import Any, Optional, TypeVar, cast

from pydantic import BaseModel, ValidationError

from ..models import (
    Bubble,
    BubbleUri,
    CodeBlockDetail,
    CodeBlockRef,
    ComposerData,
    ConversationSummary,
    LinterError,
    MultiFileLinterError,
    ToolCallAdditionalData,
    ToolCallData,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# =============================================================================
# Lenient Validation
# =============================================================================


def validate_lenient(model_class: type[M], data: dict[str, Any]) -> M:
    """Validate data, dropping top-level fields that fail validation.

    All record models have optional fields only, so the second pass always
    succeeds once the offending fields are removed.
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        invalid_fields = {err["loc"][0] for err in e.errors() if err["loc"]}
        logger.debug(
            "Dropping invalid %s fields: %s",
            model_class.__name__,
            ", ".join(sorted(str(f) for f in invalid_fields)),
        )
        cleaned = {k: v for k, v in data.items() if k not in invalid_fields}
        return model_class.model_validate(cleaned)


def _dict_items(value: Any) -> list[dict[str, Any]]:
    """Return the mapping entries of a list, skipping everything else."""
    if not isinstance(value, list):
        return []
    return [
        cast(dict[str, Any], item)
        for item in cast(list[Any], value)
        if isinstance(item, dict)
    ]


# =============================================================================
# Code Block Creation
# =============================================================================


def create_uri(data: Any) -> Optional[BubbleUri]:
    if not isinstance(data, dict):
        return None
    return validate_lenient(BubbleUri, cast(dict[str, Any], data))


def create_code_block_ref(data: dict[str, Any]) -> CodeBlockRef:
    data_copy = data.copy()
    data_copy["uri"] = create_uri(data.get("uri"))
    return validate_lenient(CodeBlockRef, data_copy)


def create_code_block_detail(data: dict[str, Any]) -> CodeBlockDetail:
    data_copy = data.copy()
    data_copy["uri"] = create_uri(data.get("uri"))
    return validate_lenient(CodeBlockDetail, data_copy)


def create_code_block_data(data: Any) -> Optional[dict[str, list[CodeBlockDetail]]]:
    """Create the codeBlockData table, keeping only list-valued keys."""
    if not isinstance(data, dict):
        return None
    table: dict[str, list[CodeBlockDetail]] = {}
    for key, candidates in cast(dict[str, Any], data).items():
        if isinstance(candidates, list):
            table[key] = [create_code_block_detail(c) for c in _dict_items(candidates)]
    return table


# =============================================================================
# Tool Call Creation
# =============================================================================


def create_tool_call_data(data: dict[str, Any]) -> ToolCallData:
    """Create ToolCallData, remembering the stored mapping for detail dumps."""
    data_copy = data.copy()
    additional = data.get("additionalData")
    if isinstance(additional, dict):
        data_copy["additionalData"] = validate_lenient(
            ToolCallAdditionalData, cast(dict[str, Any], additional)
        )
    else:
        data_copy.pop("additionalData", None)
    tool_call = validate_lenient(ToolCallData, data_copy)
    tool_call._raw = data
    return tool_call


def create_bubble_data_map(data: Any) -> Optional[dict[str, ToolCallData]]:
    if not isinstance(data, dict):
        return None
    return {
        key: create_tool_call_data(cast(dict[str, Any], value))
        for key, value in cast(dict[str, Any], data).items()
        if isinstance(value, dict)
    }


# =============================================================================
# Bubble and Conversation Creation
# =============================================================================


def _create_capabilities(data: Any) -> dict[str, list[Any]]:
    if not isinstance(data, dict):
        return {}
    return {
        name: cast(list[Any], refs)
        for name, refs in cast(dict[str, Any], data).items()
        if isinstance(refs, list)
    }


def create_linter_group(data: dict[str, Any]) -> MultiFileLinterError:
    data_copy = data.copy()
    data_copy["errors"] = [
        validate_lenient(LinterError, err) for err in _dict_items(data.get("errors"))
    ]
    return validate_lenient(MultiFileLinterError, data_copy)


def create_bubble(data: dict[str, Any]) -> Bubble:
    """Create a Bubble from one stored conversation entry."""
    data_copy = data.copy()
    data_copy["capabilitiesRan"] = _create_capabilities(data.get("capabilitiesRan"))
    data_copy["codeBlocks"] = [
        create_code_block_ref(ref) for ref in _dict_items(data.get("codeBlocks"))
    ]
    data_copy["multiFileLinterErrors"] = [
        create_linter_group(group)
        for group in _dict_items(data.get("multiFileLinterErrors"))
    ]
    summary = data.get("cachedConversationSummary")
    data_copy["cachedConversationSummary"] = (
        validate_lenient(ConversationSummary, cast(dict[str, Any], summary))
        if isinstance(summary, dict)
        else None
    )
    return validate_lenient(Bubble, data_copy)


def create_composer_data(data: dict[str, Any]) -> Optional[ComposerData]:
    """Create a ComposerData from a decoded record.

    Returns:
        The typed record, or None when the record has no message sequence
        (it is not a conversation).
    """
    conversation = data.get("conversation")
    if not isinstance(conversation, list):
        return None

    scalars = {
        key: data[key]
        for key in ("composerId", "name", "status", "createdAt", "lastUpdatedAt")
        if key in data
    }
    record = validate_lenient(ComposerData, scalars)
    record.conversation = [create_bubble(b) for b in _dict_items(conversation)]
    record.bubbleDataMap = create_bubble_data_map(data.get("bubbleDataMap"))
    record.codeBlockData = create_code_block_data(data.get("codeBlockData"))
    return record
