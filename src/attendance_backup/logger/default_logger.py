"""
Minimal stream logger.

Writes one formatted line per message to a text stream (stderr by default).
Used by the CLI when structured output is not wanted, and handy in tests
where an ``io.StringIO`` sink is easier to inspect than logging handlers.
"""

import sys
import uuid
from datetime import datetime, timezone
from typing import Any, TextIO

from .interface import Logger


class DefaultLogger(Logger):
    """Plain-text logger with a per-instance session id.

    Example:
        logger = DefaultLogger(name="backup-admin")
        logger.warning("Pre-restore snapshot failed", error="SOURCE_MISSING")
    """

    def __init__(
        self,
        name: str = "attendance-backup",
        output: TextIO = sys.stderr,
        include_timestamp: bool = True,
    ):
        self._name = name
        self._session_id = str(uuid.uuid4())
        self._output = output
        self._include_timestamp = include_timestamp

    def get_session_id(self) -> str:
        return self._session_id

    def _format_message(self, level: str, message: str, **kwargs: Any) -> str:
        parts = []
        if self._include_timestamp:
            parts.append(datetime.now(timezone.utc).isoformat())
        parts.extend([f"[{level}]", f"[{self._name}]", f"[session:{self._session_id[:8]}]", message])
        if kwargs:
            parts.append("(" + " ".join(f"{k}={v}" for k, v in kwargs.items()) + ")")
        return " ".join(parts)

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        print(self._format_message(level, message, **kwargs), file=self._output, flush=True)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("DEBUG", message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log("CRITICAL", message, **kwargs)
