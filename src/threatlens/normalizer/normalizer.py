"""
Log normalizer: raw content of unknown format to canonical LogEntry records.
"""

import csv
import logging
from collections.abc import Iterable
from typing import List, Optional, Union

from threatlens.core.exceptions import InvalidInputError

from .models import LogEntry
from .parsers import LineParser, csv_record, default_parsers, map_record

logger = logging.getLogger(__name__)

RawContent = Union[str, bytes, Iterable]


def _format_from_hint(format_hint: Optional[str]) -> str:
    """Reduce ``"csv"``, ``".CSV"`` or ``"access.csv"`` to a bare lower-case extension."""
    if not format_hint:
        return ""
    return format_hint.rsplit(".", 1)[-1].strip().lower()


class LogNormalizer:
    """
    Normalizes raw log content into LogEntry records.

    Lines are probed against an ordered list of format parsers; the first
    one to recognize a line wins. CSV documents (selected by the format
    hint) are parsed as a whole, header first.
    """

    def __init__(self, parsers: Optional[List[LineParser]] = None):
        """
        Initialize the normalizer.

        Args:
            parsers: Ordered parser strategies. Defaults to JSON, Apache,
                syslog, then generic text.
        """
        self.parsers: List[LineParser] = parsers if parsers is not None else default_parsers()

    def normalize(self, raw_content: RawContent, format_hint: Optional[str] = None) -> List[LogEntry]:
        """
        Normalize a batch of raw log content.

        Args:
            raw_content: Whole document (str or bytes) or an iterable of lines
            format_hint: File extension or name; only ``csv`` changes behavior

        Returns:
            Entries in input order. Blank and unparseable lines are dropped.

        Raises:
            InvalidInputError: if raw_content is not text, bytes or lines
        """
        lines = self._to_lines(raw_content)

        if _format_from_hint(format_hint) == "csv":
            entries = self.parse_csv(lines)
        else:
            entries = []
            for line in lines:
                entry = self.parse_line(line)
                if entry is not None:
                    entries.append(entry)

        logger.debug(f"Normalized {len(entries)} entries from {len(lines)} lines")
        return entries

    def parse_line(self, line: str) -> Optional[LogEntry]:
        """
        Parse a single line with the first parser that recognizes it.

        Returns:
            LogEntry, or None for blank lines and lines no parser accepts
        """
        if not line or not line.strip():
            return None

        stripped = line.strip()
        for parser in self.parsers:
            try:
                entry = parser.parse(stripped)
            except Exception as e:
                logger.warning(f"Parser '{parser.name}' failed on line, dropping it: {e}")
                return None
            if entry is not None:
                return entry

        logger.debug(f"No parser recognized line: {stripped[:80]}")
        return None

    def parse_csv(self, lines: List[str]) -> List[LogEntry]:
        """
        Parse a CSV document whose first line is the header row.

        Header names are lower-cased with quotes removed. Rows whose column
        count differs from the header are dropped.
        """
        rows = [line.rstrip("\r\n") for line in lines]
        while rows and not rows[0].strip():
            rows.pop(0)
        if len(rows) < 2:
            return []

        # spreadsheet exports may lead with a byte order mark
        header_row = rows[0].lstrip("\ufeff")
        headers = [h.strip().lower().replace('"', "").replace("'", "") for h in header_row.split(",")]
        entries: List[LogEntry] = []
        dropped = 0

        for row in rows[1:]:
            if not row.strip():
                continue
            values = [v.strip() for v in next(csv.reader([row], skipinitialspace=True), [])]
            record = csv_record(headers, values)
            if record is None:
                dropped += 1
                continue
            try:
                entries.append(map_record(record, row.strip()))
            except Exception as e:
                logger.warning(f"Failed to normalize CSV row, dropping it: {e}")
                dropped += 1

        if dropped:
            logger.debug(f"Dropped {dropped} malformed CSV rows")
        return entries

    @staticmethod
    def _to_lines(raw_content: RawContent) -> List[str]:
        if isinstance(raw_content, bytes):
            raw_content = raw_content.decode("utf-8-sig", errors="replace")
        if isinstance(raw_content, str):
            return raw_content.splitlines()
        if isinstance(raw_content, Iterable) and not isinstance(raw_content, dict):
            lines = []
            for item in raw_content:
                if isinstance(item, bytes):
                    item = item.decode("utf-8", errors="replace")
                if not isinstance(item, str):
                    raise InvalidInputError(
                        f"Log lines must be str or bytes, got {type(item).__name__}"
                    )
                lines.extend(item.splitlines() or [""])
            return lines
        raise InvalidInputError(
            f"Raw log content must be str, bytes or an iterable of lines, "
            f"got {type(raw_content).__name__}"
        )


def normalize(raw_content: RawContent, format_hint: Optional[str] = None) -> List[LogEntry]:
    """
    Normalize raw log content with the default parser order.

    Args:
        raw_content: Whole document (str or bytes) or an iterable of lines
        format_hint: File extension or name; ``csv`` selects CSV parsing

    Returns:
        List of LogEntry records
    """
    return LogNormalizer().normalize(raw_content, format_hint)
