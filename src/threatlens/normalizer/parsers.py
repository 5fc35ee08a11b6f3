"""
Per-format line parsers.

Each parser is a strategy that either recognizes a line and returns a
LogEntry, or returns None so the next strategy can try. They are probed
in a fixed order: JSON and Apache layouts are unambiguous, syslog is
fairly specific, and the generic parser accepts anything.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import LogEntry
from .patterns import (
    APACHE_COMBINED,
    SYSLOG,
    extract_ip,
    severity_from_level,
    severity_from_message,
    severity_from_status,
)
from .timestamps import (
    extract_timestamp,
    now_iso,
    parse_apache_date,
    parse_syslog_date,
    parse_timestamp,
    to_iso,
)

# Key aliases for structured records, tried in order
TIMESTAMP_KEYS = ("timestamp", "time", "date", "@timestamp")
IP_KEYS = ("ip", "source_ip", "remote_addr", "clientIP", "client_ip")
METHOD_KEYS = ("method", "request_method", "verb")
PATH_KEYS = ("path", "url", "request", "uri")
STATUS_KEYS = ("status", "statusCode", "status_code", "response_code")
USER_AGENT_KEYS = ("user_agent", "userAgent", "agent")
MESSAGE_KEYS = ("message", "msg", "log")
LEVEL_KEYS = ("level", "severity", "log_level")


class LineParser(ABC):
    """A single log format recognizer."""

    name: str = "base"

    @abstractmethod
    def parse(self, line: str) -> Optional[LogEntry]:
        """
        Parse one stripped, non-empty line.

        Returns:
            LogEntry if the line is in this parser's format, otherwise None
        """


def _pick(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """First non-empty value among the alias keys (verbatim, then lower-cased)."""
    for key in keys:
        for candidate in (key, key.lower()):
            value = record.get(candidate)
            if value is not None and value != "":
                return value
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)


def _as_status(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _normalize_record_timestamp(value: Any) -> str:
    if value is None:
        return now_iso()
    parsed = parse_timestamp(value)
    if parsed is None:
        # kept verbatim; detection treats it as invalid
        return _as_text(value)
    return to_iso(parsed)


def map_record(record: Mapping[str, Any], raw_line: str) -> LogEntry:
    """
    Map a key/value record (decoded JSON object or CSV row) onto a LogEntry.

    Args:
        record: Decoded record
        raw_line: Original text of the record

    Returns:
        Canonical LogEntry
    """
    ip = _pick(record, IP_KEYS)
    if ip is None:
        ip = extract_ip(json.dumps(record, default=str))

    message = _pick(record, MESSAGE_KEYS)
    message_text = _as_text(message) if message is not None else json.dumps(record, default=str)

    severity = severity_from_level(_pick(record, LEVEL_KEYS))
    if severity is None:
        severity = severity_from_message(_as_text(message))

    return LogEntry(
        timestamp=_normalize_record_timestamp(_pick(record, TIMESTAMP_KEYS)),
        source_ip=_as_text(ip) if ip is not None else None,
        method=_as_text(_pick(record, METHOD_KEYS)),
        path=_as_text(_pick(record, PATH_KEYS)),
        status_code=_as_status(_pick(record, STATUS_KEYS)),
        user_agent=_as_text(_pick(record, USER_AGENT_KEYS)),
        message=message_text,
        raw_line=raw_line,
        severity=severity,
    )


class JsonLineParser(LineParser):
    """Structured JSON object per line."""

    name = "json"

    def parse(self, line: str) -> Optional[LogEntry]:
        try:
            record = json.loads(line)
        except ValueError:
            return None
        if not isinstance(record, dict):
            return None
        return map_record(record, line)


class ApacheLineParser(LineParser):
    """Apache/Nginx combined log format."""

    name = "apache"

    def parse(self, line: str) -> Optional[LogEntry]:
        match = APACHE_COMBINED.match(line)
        if not match:
            return None

        groups = match.groupdict()
        status = int(groups["status"])
        parsed = parse_apache_date(groups["timestamp"])

        return LogEntry(
            timestamp=to_iso(parsed) if parsed else now_iso(),
            source_ip=groups["ip"],
            method=groups["method"],
            path=groups["path"],
            status_code=status,
            user_agent=groups["user_agent"] or "",
            message=f"{groups['method']} {groups['path']} {status}",
            raw_line=line,
            severity=severity_from_status(status),
        )


class SyslogLineParser(LineParser):
    """BSD syslog: ``Mon DD HH:MM:SS host service[pid]: message``."""

    name = "syslog"

    def __init__(self, year: Optional[int] = None):
        """
        Args:
            year: Year assumed for syslog stamps. Defaults to the current UTC year.
        """
        self.year = year

    def parse(self, line: str) -> Optional[LogEntry]:
        match = SYSLOG.match(line)
        if not match:
            return None

        groups = match.groupdict()
        message = groups["message"]
        pid = f"[{groups['pid']}]" if groups["pid"] else ""
        parsed = parse_syslog_date(groups["timestamp"], self.year)

        return LogEntry(
            timestamp=to_iso(parsed) if parsed else now_iso(),
            source_ip=extract_ip(message),
            method=groups["service"],
            path="",
            status_code=None,
            user_agent=f"{groups['host']}/{groups['service']}{pid}",
            message=message,
            raw_line=line,
            severity=severity_from_message(message),
        )


class GenericLineParser(LineParser):
    """Catch-all for free text lines."""

    name = "generic"

    def parse(self, line: str) -> Optional[LogEntry]:
        parsed = extract_timestamp(line)
        return LogEntry(
            timestamp=to_iso(parsed) if parsed else now_iso(),
            source_ip=extract_ip(line),
            message=line,
            raw_line=line,
            severity=severity_from_message(line),
        )


def default_parsers() -> List[LineParser]:
    """The standard probing order."""
    return [
        JsonLineParser(),
        ApacheLineParser(),
        SyslogLineParser(),
        GenericLineParser(),
    ]


def csv_record(headers: List[str], values: List[str]) -> Optional[Dict[str, str]]:
    """Zip a CSV row onto its header, or None when the column counts differ."""
    if len(values) != len(headers):
        return None
    return dict(zip(headers, values))


__all__ = [
    "LineParser",
    "JsonLineParser",
    "ApacheLineParser",
    "SyslogLineParser",
    "GenericLineParser",
    "default_parsers",
    "map_record",
    "csv_record",
]
