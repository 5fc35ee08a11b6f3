"""
Threat data models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ThreatSeverity(str, Enum):
    """Severity levels for threats and anomalies."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Threat(BaseModel):
    """
    A finding produced by one detection rule for one grouping key.

    Threats are read-only facts about a batch and carry no identity beyond
    their content until a collaborator persists them.
    """

    type: str = Field(..., description="Human readable threat label")
    severity: ThreatSeverity
    description: str
    source_ip: Optional[str] = Field(None, alias="sourceIP")
    count: int = Field(..., ge=0, description="Occurrences supporting the finding")
    mitre_id: str = Field(..., alias="mitreId")
    mitre_name: str = Field(..., alias="mitreName")
    mitre_tactic: str = Field(..., alias="mitreTactic")
    raw_evidence: List[str] = Field(
        default_factory=list,
        alias="rawEvidence",
        description="Bounded sample of supporting raw lines or paths",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "type": "Brute Force Attack",
                "severity": "high",
                "description": "Possible brute force attack detected from IP 10.0.0.5 "
                "with 6 failed login attempts within 60 seconds.",
                "sourceIP": "10.0.0.5",
                "count": 6,
                "mitreId": "T1110",
                "mitreName": "Brute Force",
                "mitreTactic": "Credential Access",
                "rawEvidence": ["Jan 15 10:30:00 host sshd[42]: Failed password for root from 10.0.0.5"],
            }
        }
