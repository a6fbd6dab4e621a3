"""
Structured logger for the anyone-dns service.

Provides leveled logging with dual-format output (JSON and human-readable
text), a minimum level filter, and masking of sensitive values such as
RPC URLs that embed provider API keys.
"""

import json
import sys
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from .enums import LogLevel


LEVEL_ORDER = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}

OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class LogEntry:
    """One emitted log event."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        record = asdict(self)
        record["level"] = self.level.value
        return record


class ServiceLogger:
    """
    Leveled structured logger.

    Entries below the configured level are dropped before formatting. Kept
    entries are masked, written to the output stream and remembered in a
    bounded buffer that tests and the CLI can inspect.
    """

    # Substrings of data keys whose values are never written out
    SENSITIVE_KEYS = frozenset({
        'rpc_url', 'api_key', 'secret', 'password', 'authorization',
        'credential', 'private_key', 'access_token',
    })

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        max_entries: int = 1000,
    ) -> None:
        """
        Args:
            output_format: 'json', 'text', or 'both' (JSON line first)
            output_stream: Where lines are written; sys.stderr when omitted
            level: Minimum level that is emitted
            max_entries: How many recent entries to keep in memory
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
            )

        self._output_format = output_format
        self._stream = output_stream or sys.stderr
        self._level = level
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)

    @classmethod
    def from_config(cls, logging_config, output_stream: Optional[TextIO] = None) -> "ServiceLogger":
        """Build a logger from a LoggingConfig."""
        return cls(
            output_format=logging_config.output_format,
            output_stream=output_stream,
            level=LogLevel(logging_config.level),
        )

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def entries(self) -> list[LogEntry]:
        """Recent entries, oldest first."""
        return list(self._entries)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return LEVEL_ORDER[level] >= LEVEL_ORDER[self._level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record and emit one event.

        Returns:
            The stored entry, or None when ``level`` is below the threshold
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        self._entries.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """Log at ERROR, attaching the exception's message, type and code when given."""
        payload = dict(data or {})
        if error is not None:
            payload["error_message"] = str(error)
            payload["error_type"] = type(error).__name__
            code = getattr(error, "code", None)
            if code is not None:
                payload["error_code"] = code
        return self.log(LogLevel.ERROR, component, message, payload)

    def is_sensitive_key(self, key: object) -> bool:
        key_lower = str(key).lower()
        return any(marker in key_lower for marker in self.SENSITIVE_KEYS)

    def mask_sensitive_data(self, data: dict) -> dict:
        """Return a copy of ``data`` with sensitive values replaced, at any nesting depth."""
        if not isinstance(data, dict):
            return data
        return {
            key: self.MASK_VALUE if self.is_sensitive_key(key) else self._mask_value(value)
            for key, value in data.items()
        }

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.mask_sensitive_data(value)
        if isinstance(value, (list, tuple)):
            return [self._mask_value(item) for item in value]
        return value

    def format_json(self, entry: LogEntry) -> str:
        return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        # [timestamp] LEVEL [component] message {data}
        line = f"[{entry.timestamp}] {entry.level.value.upper()} [{entry.component}] {entry.message}"
        if entry.data:
            line += " " + json.dumps(entry.data, ensure_ascii=False, default=str)
        return line

    def _write(self, entry: LogEntry) -> None:
        lines = []
        if self._output_format != "text":
            lines.append(self.format_json(entry))
        if self._output_format != "json":
            lines.append(self.format_text(entry))
        self._stream.write("".join(line + "\n" for line in lines))
        self._stream.flush()

    def clear_entries(self) -> None:
        self._entries.clear()
