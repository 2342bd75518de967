"""Pydantic models for Cursor composer chat records.

Stored records drift between Cursor versions, so every field is optional
and resolvers must treat absence explicitly. Field names match the stored
camelCase keys.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, PrivateAttr


class MessageRole(str, Enum):
    """Bubble author, derived from the stored numeric ``type``."""

    USER = "user"
    ASSISTANT = "assistant"


# Stored ``type`` values
USER_BUBBLE_TYPE = 1
ASSISTANT_BUBBLE_TYPE = 2


# =============================================================================
# Stored Record Models
# =============================================================================


class BubbleUri(BaseModel):
    """Location descriptor of a code block."""

    fsPath: Optional[str] = None
    external: Optional[str] = None  # Usually the key into codeBlockData
    path: Optional[str] = None
    scheme: Optional[str] = None


class CodeBlockRef(BaseModel):
    """Code block reference declared inside a bubble."""

    uri: Optional[BubbleUri] = None
    version: Optional[int] = None
    languageId: Optional[str] = None
    content: Optional[str] = None  # Rare; last-resort content source
    codeBlockIdx: Optional[int] = None


class CodeBlockDetail(BaseModel):
    """Candidate code content stored in the record's codeBlockData table."""

    uri: Optional[BubbleUri] = None
    version: Optional[int] = None
    content: Optional[str] = None
    languageId: Optional[str] = None
    status: Optional[str] = None  # e.g. "accepted"
    codeBlockDisplayPreference: Optional[str] = None
    codeBlockIdx: Optional[int] = None  # Missing in older records


class LinterError(BaseModel):
    message: Optional[str] = None
    severity: Optional[int] = None
    source: Optional[str] = None
    range: Optional[Any] = None


class MultiFileLinterError(BaseModel):
    relativeWorkspacePath: Optional[str] = None
    errors: list[LinterError] = []
    fileContents: Optional[str] = None


class ConversationSummary(BaseModel):
    summary: Optional[str] = None
    includesToolResults: Optional[bool] = None


class ToolCallAdditionalData(BaseModel):
    """Extra context attached to a tool call."""

    model_config = ConfigDict(extra="allow")

    version: Optional[int] = None
    instructions: Optional[str] = None
    explanation: Optional[str] = None
    sessionId: Optional[str] = None
    startingLints: Optional[list[Any]] = None


class ToolCallData(BaseModel):
    """Full tool call detail from the record's bubbleDataMap.

    Argument and result payloads are kept untyped: they are JSON strings in
    most records but structured values in some.
    """

    tool: Optional[int] = None  # Numeric tool id when no name is recorded
    toolCallId: Optional[str] = None
    status: Optional[str] = None  # e.g. "completed", "error"
    rawArgs: Optional[Any] = None
    params: Optional[Any] = None
    name: Optional[str] = None
    result: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[Any] = None
    additionalData: Optional[ToolCallAdditionalData] = None
    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def raw(self) -> dict[str, Any]:
        """The stored mapping this detail was built from."""
        return self._raw or self.model_dump(exclude_unset=True)

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.tool is not None:
            return f"ToolID_{self.tool}"
        return "unknown tool"


# Capability invocation references are kept as the raw stored mappings; the
# only field read from them is ``toolCallId``.
CapabilityRef = dict[str, Any]


class Bubble(BaseModel):
    """One message ("bubble") of a composer conversation."""

    type: Optional[int] = None  # 1 = user, 2 = assistant
    bubbleId: Optional[str] = None
    text: Optional[str] = None
    richText: Optional[str] = None
    capabilitiesRan: dict[str, list[Any]] = {}
    cachedConversationSummary: Optional[ConversationSummary] = None
    codeBlocks: list[CodeBlockRef] = []
    multiFileLinterErrors: list[MultiFileLinterError] = []
    isThought: Optional[bool] = None
    isCapabilityIteration: Optional[bool] = None


class ComposerData(BaseModel):
    """One stored composer conversation (``composerData:<id>``)."""

    composerId: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    createdAt: Optional[Union[int, float, str]] = None
    lastUpdatedAt: Optional[Union[int, float, str]] = None
    conversation: list[Bubble] = []
    bubbleDataMap: Optional[dict[str, ToolCallData]] = None
    codeBlockData: Optional[dict[str, list[CodeBlockDetail]]] = None


# =============================================================================
# Rendering Models
# =============================================================================


class LineKind(str, Enum):
    """Kind of a rendered transcript line."""

    TEXT = "text"
    TOOL_REF = "tool_ref"
    CODE_REF = "code_ref"
    LINTER_ERROR = "linter_error"
    CAPABILITY_INFO = "capability_info"
    TOOL_INLINE = "tool_inline"
    CODE_INLINE = "code_inline"
    CODE_NOT_FOUND = "code_not_found"
    SUMMARY = "summary"


@dataclass(frozen=True)
class SideFile:
    """Detail file to persist next to the transcript."""

    path: Path
    content: str


@dataclass
class RenderedLine:
    kind: LineKind
    text: str
    side_file: Optional[SideFile] = None


@dataclass(frozen=True)
class DetailsDir:
    """Side-file directory of one conversation.

    Attributes:
        path: Absolute location the side files are written to.
        name: Directory name, used for the relative pointers in the transcript.
    """

    path: Path
    name: str

    def file_path(self, filename: str) -> Path:
        return self.path / filename

    def pointer(self, filename: str) -> str:
        return f"./{self.name}/{filename}"


@dataclass
class RenderedTranscript:
    """Result of rendering one conversation."""

    lines: list[str] = field(default_factory=lambda: [])  # type: list[str]
    side_files: list[SideFile] = field(
        default_factory=lambda: []  # type: list[SideFile]
    )
    message_count: int = 0  # Visible messages only
