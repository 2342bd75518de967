"""Export Cursor composer chat history to plain-text transcripts."""

from .converter import export_chat_logs, export_chat_logs_async

__all__ = ["export_chat_logs", "export_chat_logs_async"]
