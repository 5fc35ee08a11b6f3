"""
Log format normalization.

Parses raw log lines of unknown format (JSON, Apache/Nginx combined,
syslog, CSV, free text) into canonical LogEntry records.
"""

__all__ = ["models", "patterns", "timestamps", "parsers", "normalizer"]
