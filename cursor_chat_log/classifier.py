"""Classify bubbles before rendering."""

from typing import Optional

from .models import ASSISTANT_BUBBLE_TYPE, USER_BUBBLE_TYPE, Bubble, MessageRole

BUBBLE_ROLES: dict[int, MessageRole] = {
    USER_BUBBLE_TYPE: MessageRole.USER,
    ASSISTANT_BUBBLE_TYPE: MessageRole.ASSISTANT,
}


def is_transient(bubble: Bubble) -> bool:
    """Internal thoughts and capability iterations never appear in transcripts."""
    return bool(bubble.isThought or bubble.isCapabilityIteration)


def classify(bubble: Bubble) -> Optional[MessageRole]:
    """Return the bubble's role, or None if it is transient or of an unknown type."""
    if is_transient(bubble) or bubble.type is None:
        return None
    return BUBBLE_ROLES.get(bubble.type)
