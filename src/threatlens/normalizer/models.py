"""
Canonical log entry model.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EntrySeverity(str, Enum):
    """Severity inferred for a single log entry."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogEntry(BaseModel):
    """
    Normalized log entry.

    Every source format is reduced to this shape before detection. All
    fields except ``raw_line`` are best-effort extractions and may be
    empty; ``raw_line`` is the original text and is never rewritten.
    """

    timestamp: Optional[str] = Field(
        None, description="ISO-8601 UTC timestamp, or the unparseable original value"
    )
    source_ip: Optional[str] = Field(None, alias="sourceIP")
    method: str = ""
    path: str = ""
    status_code: Optional[int] = Field(None, alias="statusCode")
    user_agent: str = Field("", alias="userAgent")
    message: str = ""
    raw_line: str = Field(..., alias="rawLine")
    severity: EntrySeverity = EntrySeverity.INFO

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "timestamp": "2025-01-15T10:30:00.000Z",
                "sourceIP": "203.0.113.7",
                "method": "GET",
                "path": "/wp-login.php",
                "statusCode": 401,
                "userAgent": "curl/8.4.0",
                "message": "GET /wp-login.php 401",
                "rawLine": '203.0.113.7 - - [15/Jan/2025:10:30:00 +0000] "GET /wp-login.php HTTP/1.1" 401 512 "-" "curl/8.4.0"',
                "severity": "warning",
            }
        }
