"""
Shared log patterns and entry classifiers.

Used by the parsers for IP and severity extraction and by the detection
rules for auth-failure and exploit-payload classification.
"""

import ipaddress
import re
from typing import Optional

from .models import EntrySeverity, LogEntry

IPV4_CANDIDATE = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})\b")

# IP - - [timestamp] "METHOD PATH PROTOCOL" STATUS SIZE "REFERRER" "USER-AGENT"
APACHE_COMBINED = re.compile(
    r'^(?P<ip>\S+)\s+\S+\s+\S+\s+\[(?P<timestamp>[^\]]+)\]\s+'
    r'"(?P<method>\S+)\s+(?P<path>\S+)\s+\S+"\s+(?P<status>\d{3})\s+(?P<size>\d+|-)\s*'
    r'"(?P<referrer>[^"]*)"\s*"(?P<user_agent>[^"]*)"'
)

# Mon DD HH:MM:SS host service[pid]: message
SYSLOG = re.compile(
    r"^(?P<timestamp>\w{3}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})\s+(?P<host>\S+)\s+"
    r"(?P<service>\S+?)(?:\[(?P<pid>\d+)\])?:\s+(?P<message>.+)"
)

AUTH_FAIL_PATTERNS = [
    re.compile(r"failed\s+password", re.IGNORECASE),
    re.compile(r"authentication\s+fail", re.IGNORECASE),
    re.compile(r"invalid\s+user", re.IGNORECASE),
    re.compile(r"login\s+failed", re.IGNORECASE),
    re.compile(r"access\s+denied", re.IGNORECASE),
    re.compile(r"unauthorized", re.IGNORECASE),
    re.compile(r"\b401\b"),
    re.compile(r"\b403\b"),
]

SUSPICIOUS_URL_PATTERNS = [
    re.compile(r"(\.\./)|(\.\.\\)"),  # path traversal
    re.compile(r"(<script|</script|javascript:)", re.IGNORECASE),  # XSS
    re.compile(r"(union\s+select|or\s+1\s*=\s*1|drop\s+table)", re.IGNORECASE),  # SQLi
    re.compile(r"/etc/(passwd|shadow)", re.IGNORECASE),
    re.compile(r"/wp-admin|/wp-login", re.IGNORECASE),
    re.compile(r"/\.env|/\.git", re.IGNORECASE),
    re.compile(r"cmd\.exe|powershell|/bin/(bash|sh)", re.IGNORECASE),  # command injection
    re.compile(r"/(phpmyadmin|adminer|phpinfo)", re.IGNORECASE),
]

# Explicit level names found in structured logs
_LEVEL_ALIASES = {
    "critical": EntrySeverity.CRITICAL,
    "crit": EntrySeverity.CRITICAL,
    "fatal": EntrySeverity.CRITICAL,
    "emerg": EntrySeverity.CRITICAL,
    "emergency": EntrySeverity.CRITICAL,
    "alert": EntrySeverity.CRITICAL,
    "error": EntrySeverity.ERROR,
    "err": EntrySeverity.ERROR,
    "warning": EntrySeverity.WARNING,
    "warn": EntrySeverity.WARNING,
    "info": EntrySeverity.INFO,
    "information": EntrySeverity.INFO,
    "notice": EntrySeverity.INFO,
    "debug": EntrySeverity.INFO,
    "trace": EntrySeverity.INFO,
}


def extract_ip(text: Optional[str]) -> Optional[str]:
    """Return the first valid IPv4 literal in ``text``, if any."""
    if not text:
        return None
    for match in IPV4_CANDIDATE.finditer(text):
        candidate = match.group(1)
        try:
            ipaddress.IPv4Address(candidate)
        except ValueError:
            continue
        return candidate
    return None


def severity_from_status(status: int) -> EntrySeverity:
    """Map an HTTP status code to an entry severity."""
    if status >= 500:
        return EntrySeverity.ERROR
    if status >= 400:
        return EntrySeverity.WARNING
    return EntrySeverity.INFO


def severity_from_message(message: Optional[str]) -> EntrySeverity:
    """Infer severity from keywords in free text."""
    if not message:
        return EntrySeverity.INFO
    lower = message.lower()
    if "critical" in lower or "emergency" in lower or "fatal" in lower:
        return EntrySeverity.CRITICAL
    if "error" in lower or "fail" in lower or "denied" in lower:
        return EntrySeverity.ERROR
    if "warn" in lower or "unauthorized" in lower or "invalid" in lower:
        return EntrySeverity.WARNING
    return EntrySeverity.INFO


def severity_from_level(level: object) -> Optional[EntrySeverity]:
    """Map an explicit level field (``"WARN"``, ``"err"``, ...) to a severity."""
    if not isinstance(level, str):
        return None
    return _LEVEL_ALIASES.get(level.strip().lower())


def is_auth_failure(entry: LogEntry) -> bool:
    """True when an entry records a failed authentication."""
    if entry.status_code in (401, 403):
        return True
    text = f"{entry.message} {entry.raw_line}"
    return any(p.search(text) for p in AUTH_FAIL_PATTERNS)


def is_suspicious_url(entry: LogEntry) -> bool:
    """True when the path (or the message, for pathless entries) carries an exploit payload."""
    target = entry.path or entry.message
    return any(p.search(target) for p in SUSPICIOUS_URL_PATTERNS)
