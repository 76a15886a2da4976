from __future__ import annotations
import logging
import json
from typing import Any, Mapping, Optional

__all__ = ["ToolCallLogger", "truncate"]


def truncate(s: Any, limit: int = 200) -> str:
    """Safely truncate long values for logs (keeps unicode; appends ellipsis)."""
    if not isinstance(s, str):
        try:
            s = json.dumps(s, ensure_ascii=False, default=str)
        except Exception:
            s = str(s)
    return s if len(s) <= limit else (s[:limit] + " …[truncated]")


class ToolCallLogger:
    """One-line records for tool calls and voice interactions."""

    def __init__(self, logger: logging.Logger, session_id: Optional[str] = None):
        self._log = logger
        self._sid = session_id or "-"

    def start(self, tool: str, args: Mapping[str, Any]):
        self._log.info("TOOL START | session=%s tool=%s args=%s", self._sid, tool, truncate(dict(args)))

    def result(self, tool: str, success: bool, elapsed_ms: float):
        self._log.info(
            "TOOL RESULT | session=%s tool=%s success=%s elapsed_ms=%.1f",
            self._sid,
            tool,
            success,
            elapsed_ms,
        )

    def failure(self, tool: str, err: BaseException):
        self._log.error("TOOL ERROR | session=%s tool=%s error=%s", self._sid, tool, truncate(repr(err)))

    def interaction(self, *, user_id: str, command: Optional[str], success: bool, response_time_ms: float):
        self._log.info(
            "VOICE INTERACTION | session=%s user=%s command=%s success=%s response_ms=%.1f",
            self._sid,
            user_id,
            command,
            success,
            response_time_ms,
        )
