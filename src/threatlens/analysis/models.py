"""
Risk analysis data models.
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from threatlens.detection.models import ThreatSeverity


class Stats(BaseModel):
    """
    Aggregate counts over one batch.
    """

    total_entries: int = Field(0, alias="totalEntries")
    unique_ips: int = Field(0, alias="uniqueIPs")
    ip_list: List[str] = Field(default_factory=list, alias="ipList")
    methods: Dict[str, int] = Field(default_factory=dict)
    status_codes: Dict[int, int] = Field(default_factory=dict, alias="statusCodes")
    error_count: int = Field(0, alias="errorCount")
    warning_count: int = Field(0, alias="warningCount")
    hourly_distribution: Dict[int, int] = Field(
        default_factory=dict,
        alias="hourlyDistribution",
        description="Entries per UTC hour of day",
    )

    class Config:
        populate_by_name = True

    @property
    def error_rate(self) -> float:
        return self.error_count / max(self.total_entries, 1)


class Anomaly(BaseModel):
    """Statistical deviation not tied to a MITRE technique."""

    type: str
    severity: ThreatSeverity
    description: str


class IPReputation(BaseModel):
    """Trust score for one source IP."""

    ip: str
    total_requests: int = Field(0, alias="totalRequests")
    errors: int = 0
    auth_failures: int = Field(0, alias="authFailures")
    threat_count: int = Field(0, alias="threatCount")
    score: int = Field(100, ge=0, le=100)

    class Config:
        populate_by_name = True


class ThreatBreakdown(BaseModel):
    """Threat counts grouped by type and by severity."""

    by_type: Dict[str, int] = Field(default_factory=dict, alias="byType")
    by_severity: Dict[str, int] = Field(
        default_factory=lambda: {"critical": 0, "high": 0, "medium": 0, "low": 0},
        alias="bySeverity",
    )

    class Config:
        populate_by_name = True


class TimelineBucket(BaseModel):
    """Log volume for one UTC hour."""

    time: str = Field(..., description="Bucket key, YYYY-MM-DD HH:00")
    total: int = 0
    errors: int = 0
    threats: int = 0


class Analysis(BaseModel):
    """
    Terminal output of the analysis core for one batch.
    """

    risk_score: int = Field(..., ge=0, le=100, alias="riskScore")
    risk_level: str = Field(..., alias="riskLevel")
    summary: str
    stats: Stats
    anomalies: List[Anomaly] = Field(default_factory=list)
    threat_breakdown: ThreatBreakdown = Field(
        default_factory=ThreatBreakdown, alias="threatBreakdown"
    )
    ip_reputation: List[IPReputation] = Field(default_factory=list, alias="ipReputation")
    timeline: List[TimelineBucket] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "riskScore": 40,
                "riskLevel": "MEDIUM",
                "summary": "**Security Analysis Report** - Risk Level: **MEDIUM** (Score: 40/100)",
                "stats": {"totalEntries": 250, "uniqueIPs": 12},
                "anomalies": [],
                "threatBreakdown": {
                    "byType": {"Brute Force Attack": 1},
                    "bySeverity": {"critical": 0, "high": 1, "medium": 0, "low": 0},
                },
                "ipReputation": [],
                "timeline": [],
            }
        }
