"""
Timestamp parsing and ISO-8601 UTC rendering.
"""

import re
from datetime import datetime, timezone
from typing import Optional

ISO_IN_TEXT = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}")
CLF_IN_TEXT = re.compile(r"\[(\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2})")

APACHE_FORMATS = ("%d/%b/%Y:%H:%M:%S %z", "%d/%b/%Y:%H:%M:%S")

# Epoch values above this are taken to be milliseconds
_EPOCH_MS_CUTOFF = 100_000_000_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utc_now())


def _to_utc(value: datetime) -> Optional[datetime]:
    """Convert to aware UTC; None when the shift leaves the datetime range."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def parse_apache_date(value: str) -> Optional[datetime]:
    """Parse ``10/Oct/2000:13:55:36 -0700`` (offset optional)."""
    value = value.strip()
    for fmt in APACHE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return _to_utc(parsed)
    return None


def parse_syslog_date(value: str, year: Optional[int] = None) -> Optional[datetime]:
    """
    Parse a syslog ``Mon DD HH:MM:SS`` stamp.

    Syslog omits the year, so the current UTC year is assumed unless
    one is given.
    """
    if year is None:
        year = utc_now().year
    normalized = " ".join(value.split())
    try:
        parsed = datetime.strptime(f"{year} {normalized}", "%Y %b %d %H:%M:%S")
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def parse_timestamp(value: object) -> Optional[datetime]:
    """
    Parse a timestamp of any supported shape into an aware UTC datetime.

    Accepts datetimes, epoch seconds or milliseconds, ISO-8601 strings
    (``Z`` suffix and space separator included) and Apache-style dates.
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _to_utc(value)

    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000 if abs(value) >= _EPOCH_MS_CUTOFF else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # isdigit() also accepts non-ASCII digits such as "²"
    if text.isascii() and text.isdigit():
        try:
            return parse_timestamp(int(text))
        except ValueError:
            # over the interpreter's int digit limit
            return None

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        return parse_apache_date(text)

    return _to_utc(parsed)


def extract_timestamp(text: str) -> Optional[datetime]:
    """Find an ISO-8601 or Apache-style timestamp embedded in free text."""
    match = ISO_IN_TEXT.search(text)
    if match:
        parsed = parse_timestamp(match.group(0))
        if parsed is not None:
            return parsed

    match = CLF_IN_TEXT.search(text)
    if match:
        return parse_apache_date(match.group(1))

    return None


def epoch_seconds(timestamp: Optional[str]) -> Optional[float]:
    """Seconds since the epoch for a stored timestamp, or None if it is invalid."""
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return None
    return parsed.timestamp()
