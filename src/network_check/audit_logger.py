"""
Audit Logger module for the network check system.

Structured log records for cycles, rotations and alerts. Each record can be
rendered as a JSON object, as a human-readable line, or both; records below
the configured level are discarded before rendering.
"""

import json
import sys
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO

from network_check.enums import LogLevel
from network_check.exceptions import NetworkCheckError

OUTPUT_FORMATS = ("json", "text", "both")

DEFAULT_MAX_ENTRIES = 1000

_SEVERITY_RANK = {level: rank for rank, level in enumerate(LogLevel)}


@dataclass
class LogEntry:
    """One structured log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {
                "timestamp": self.timestamp,
                "level": self.level.value,
                "component": self.component,
                "message": self.message,
                "data": self.data,
            },
            ensure_ascii=False,
            default=str,
        )

    def to_text(self) -> str:
        # [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}
        line = f"[{self.timestamp}] {self.level.value.upper()} [{self.component}] {self.message}"
        if self.data:
            line += " " + json.dumps(self.data, ensure_ascii=False, default=str)
        return line


class AuditLogger:
    """
    Structured logger shared by every component.

    Records go to a stream (stderr unless given) and, when configured, are
    appended to a log file as well. A log file that cannot be written is
    reported once on the stream and skipped from then on. The most recent
    records are kept in memory so callers can inspect them.
    """

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.INFO,
        log_file: Optional[Path] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        """
        Initialize the audit logger.

        Args:
            output_format: 'json', 'text', or 'both'
            output_stream: Stream receiving rendered records
            min_level: Records below this level are discarded
            log_file: Optional file every rendered line is appended to
            max_entries: Number of recent records kept in memory
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Invalid output_format: {output_format}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")

        self._output_format = output_format
        self._stream = output_stream or sys.stderr
        self._min_level = min_level
        self._log_file = log_file
        self._log_file_failed = False
        self._emitted: deque = deque(maxlen=max_entries)

    @classmethod
    def from_level_name(
        cls,
        level: str,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        log_file: Optional[Path] = None,
    ) -> "AuditLogger":
        """Create a logger from a configured level name such as 'info'."""
        try:
            min_level = LogLevel(level.lower())
        except ValueError:
            raise ValueError(f"Invalid log level: {level}")
        return cls(output_format, output_stream, min_level, log_file)

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Most recent emitted records, oldest first."""
        return list(self._emitted)

    def clear_entries(self) -> None:
        self._emitted.clear()

    def is_enabled_for(self, level: LogLevel) -> bool:
        return _SEVERITY_RANK[level] >= _SEVERITY_RANK[self._min_level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit a record.

        Returns:
            The emitted LogEntry, or None when its level is filtered out
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=dict(data) if data else {},
        )
        self._emitted.append(entry)
        self._write(self.render(entry))
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[Exception] = None,
        context: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit an ERROR record describing a failure.

        Network check errors contribute their code and details; any other
        exception contributes its type and message only.

        Args:
            component: Component reporting the failure
            message: What was being attempted
            error: The exception that was caught, if any
            context: Extra key/value pairs (series key, host, ...)
        """
        data = dict(context) if context else {}
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = str(error)
            if isinstance(error, NetworkCheckError):
                data["error_code"] = error.code
                if error.details:
                    data["error_details"] = error.details
        return self.log(LogLevel.ERROR, component, message, data)

    def render(self, entry: LogEntry) -> list[str]:
        """Lines written for a record under the configured output format."""
        if self._output_format == "json":
            return [entry.to_json()]
        if self._output_format == "text":
            return [entry.to_text()]
        return [entry.to_json(), entry.to_text()]

    def _write(self, lines: list[str]) -> None:
        payload = "".join(line + "\n" for line in lines)
        self._stream.write(payload)
        self._stream.flush()

        if self._log_file is None or self._log_file_failed:
            return
        try:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._log_file, "a", encoding="utf-8") as f:
                f.write(payload)
        except OSError as e:
            self._log_file_failed = True
            notice = LogEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                level=LogLevel.ERROR,
                component="AuditLogger",
                message="Log file disabled after write failure",
                data={"log_file": str(self._log_file), "error_message": str(e)},
            )
            self._emitted.append(notice)
            self._stream.write("".join(line + "\n" for line in self.render(notice)))
            self._stream.flush()
