"""Factory modules for creating typed objects from raw data."""

from .record_factory import (
    # Lenient validation
    validate_lenient,
    # Code block creation
    create_uri,
    create_code_block_ref,
    create_code_block_detail,
    create_code_block_data,
    # Tool call creation
    create_tool_call_data,
    create_bubble_data_map,
    # Conversation creation
    create_linter_group,
    create_bubble,
    create_composer_data,
)

__all__ = [
    # Lenient validation
    "validate_lenient",
    # Code block creation
    "create_uri",
    "create_code_block_ref",
    "create_code_block_detail",
    "create_code_block_data",
    # Tool call creation
    "create_tool_call_data",
    "create_bubble_data_map",
    # Conversation creation
    "create_linter_group",
    "create_bubble",
    "create_composer_data",
]
