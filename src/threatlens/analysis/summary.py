"""
Natural-language analysis report.
"""

from typing import List, Sequence

from threatlens.detection.models import Threat, ThreatSeverity

from .models import Anomaly, Stats

TOP_THREATS = 5


def risk_level(score: int) -> str:
    """Convert a numeric risk score to its level bucket."""
    if score >= 75:
        return "CRITICAL"
    elif score >= 50:
        return "HIGH"
    elif score >= 25:
        return "MEDIUM"
    else:
        return "LOW"


def recommendations(score: int) -> List[str]:
    """Fixed recommendation list for a risk score bucket."""
    if score >= 50:
        return [
            "Immediately investigate flagged IP addresses",
            "Consider blocking critical threat source IPs at firewall level",
            "Review and harden authentication mechanisms",
            "Enable enhanced logging and monitoring",
        ]
    if score >= 25:
        return [
            "Monitor flagged IPs for continued suspicious activity",
            "Review access control policies",
            "Consider implementing rate limiting",
        ]
    return [
        "Continue regular log monitoring",
        "Maintain current security posture",
    ]


def _severity_line(label: str, threats: List[Threat]) -> str:
    return f"  - **{len(threats)} {label}**: {', '.join(t.type for t in threats)}"


def generate_summary(
    stats: Stats,
    threats: Sequence[Threat],
    anomalies: Sequence[Anomaly],
    risk_score: int,
) -> str:
    """
    Build the deterministic report text for one batch.

    Args:
        stats: Batch statistics
        threats: Detected threats
        anomalies: Detected anomalies
        risk_score: Composite 0-100 score

    Returns:
        Markdown-flavoured multi-line report
    """
    lines: List[str] = []

    lines.append(
        f"**Security Analysis Report** - Risk Level: **{risk_level(risk_score)}** "
        f"(Score: {risk_score}/100)\n"
    )
    lines.append(
        f"**Overview**: Analyzed {stats.total_entries:,} log entries from "
        f"{stats.unique_ips} unique IP addresses. Found {stats.error_count} errors "
        f"and {stats.warning_count} authentication failures.\n"
    )

    if threats:
        lines.append(f"**{len(threats)} Threat(s) Detected**:\n")
        for severity, label in (
            (ThreatSeverity.CRITICAL, "Critical"),
            (ThreatSeverity.HIGH, "High"),
            (ThreatSeverity.MEDIUM, "Medium"),
        ):
            matching = [t for t in threats if t.severity == severity]
            if matching:
                lines.append(_severity_line(label, matching))
        lines.append("")

        for threat in threats[:TOP_THREATS]:
            lines.append(f"  * {threat.description}")
        if len(threats) > TOP_THREATS:
            lines.append(f"  ... and {len(threats) - TOP_THREATS} more threats detected.")
    else:
        lines.append("**No active threats detected**: log patterns appear normal.\n")

    if anomalies:
        lines.append(f"\n**{len(anomalies)} Anomaly/Anomalies Detected**:\n")
        for anomaly in anomalies:
            lines.append(f"  - [{anomaly.severity.value.upper()}] {anomaly.description}")

    mitre_ids = list(dict.fromkeys(t.mitre_id for t in threats if t.mitre_id))
    if mitre_ids:
        lines.append(f"\n**MITRE ATT&CK Techniques Mapped**: {', '.join(mitre_ids)}")

    lines.append("\n**Recommendations**:")
    for number, text in enumerate(recommendations(risk_score), 1):
        lines.append(f"  {number}. {text}")

    return "\n".join(lines)
