"""
Detection rules.

Each rule reads the whole batch, groups entries by source IP (or IP and
status code), and emits at most one threat per triggering group. Rules
share no state and can run in any order.
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Sequence, Tuple

from threatlens.core.config import DetectionConfig
from threatlens.normalizer.models import LogEntry
from threatlens.normalizer.patterns import is_auth_failure, is_suspicious_url

from .mitre import MITRE_TECHNIQUES
from .models import Threat, ThreatSeverity
from .windows import has_window, max_events_in_window, sorted_epochs

EVIDENCE_LIMIT = 5
PATH_EVIDENCE_LIMIT = 10

SUSPICIOUS_USER_AGENTS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"nikto",
        r"sqlmap",
        r"nmap",
        r"masscan",
        r"burp",
        r"dirbuster",
        r"gobuster",
        r"wfuzz",
        r"hydra",
        r"metasploit",
        r"zgrab",
        r"python-requests",
        r"curl/\d",
        r"wget",
    )
]

SENSITIVE_ENDPOINTS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/admin",
        r"/dashboard",
        r"/api/admin",
        r"/root",
        r"/config",
        r"/internal",
        r"/manager",
        r"/console",
    )
]

AUTH_STATUS_CODES = (401, 403)
REJECTED_STATUS_CODES = (401, 403, 404)


def group_by_ip(
    entries: Sequence[LogEntry],
    predicate: Callable[[LogEntry], bool] = lambda entry: True,
) -> Dict[str, List[LogEntry]]:
    """
    Group matching entries by source IP, in first-seen order.

    Entries without a source IP are skipped.
    """
    groups: Dict[str, List[LogEntry]] = {}
    for entry in entries:
        if not entry.source_ip or not predicate(entry):
            continue
        groups.setdefault(entry.source_ip, []).append(entry)
    return groups


def _evidence(entries: Sequence[LogEntry]) -> List[str]:
    return [entry.raw_line for entry in entries[:EVIDENCE_LIMIT]]


def _seconds(value: float) -> str:
    return f"{value:g}"


class DetectionRule(ABC):
    """Base class for a detection rule."""

    name: str = "rule"
    mitre_id: str = ""

    @abstractmethod
    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        """
        Evaluate the rule against a batch.

        Args:
            entries: Normalized entries
            thresholds: Detection thresholds

        Returns:
            One threat per triggering group
        """

    def _threat(self, mitre_id: str = "", **fields) -> Threat:
        technique = MITRE_TECHNIQUES[mitre_id or self.mitre_id]
        return Threat(
            mitre_id=technique.id,
            mitre_name=technique.name,
            mitre_tactic=technique.tactic,
            **fields,
        )


class BruteForceRule(DetectionRule):
    """Repeated authentication failures from one IP."""

    name = "brute_force"
    mitre_id = "T1110"

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []
        required = thresholds.brute_force_count
        window = thresholds.brute_force_window_sec

        for ip, failures in group_by_ip(entries, is_auth_failure).items():
            if len(failures) < required:
                continue

            in_window = has_window(sorted_epochs(failures), required, window)

            # Many failures are flagged even without a tight window
            if not in_window and len(failures) < required * 2:
                continue

            suffix = f" within {_seconds(window)} seconds" if in_window else ""
            threats.append(
                self._threat(
                    type="Brute Force Attack",
                    severity=(
                        ThreatSeverity.CRITICAL
                        if len(failures) >= thresholds.brute_force_critical_count
                        else ThreatSeverity.HIGH
                    ),
                    description=(
                        f"Possible brute force attack detected from IP {ip} with "
                        f"{len(failures)} failed login attempts{suffix}."
                    ),
                    source_ip=ip,
                    count=len(failures),
                    raw_evidence=_evidence(failures),
                )
            )

        return threats


class DDoSRule(DetectionRule):
    """Request floods from one IP."""

    name = "ddos"
    mitre_id = "T1498"

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []
        required = thresholds.ddos_request_count
        window = thresholds.ddos_window_sec

        for ip, requests in group_by_ip(entries).items():
            peak = max_events_in_window(sorted_epochs(requests), window)

            if len(requests) < required and peak < required:
                continue

            peak_text = f", peak {peak} requests in {_seconds(window)}s window" if peak > 0 else ""
            threats.append(
                self._threat(
                    type="DDoS Pattern",
                    severity=ThreatSeverity.CRITICAL,
                    description=(
                        f"Potential DDoS attack from IP {ip}: {len(requests)} total "
                        f"requests detected{peak_text}."
                    ),
                    source_ip=ip,
                    count=len(requests),
                    raw_evidence=_evidence(requests),
                )
            )

        return threats


class ExploitAttemptRule(DetectionRule):
    """Requests carrying exploit payloads (traversal, XSS, SQLi, ...)."""

    name = "exploit_attempt"
    mitre_id = "T1190"

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []

        for ip, exploits in group_by_ip(entries, is_suspicious_url).items():
            threats.append(
                self._threat(
                    type="Exploit Attempt",
                    severity=(
                        ThreatSeverity.CRITICAL
                        if len(exploits) >= thresholds.exploit_critical_count
                        else ThreatSeverity.HIGH
                    ),
                    description=(
                        f"{len(exploits)} suspicious request(s) detected from IP {ip} "
                        f"containing potential exploit payloads (SQL injection, XSS, "
                        f"path traversal)."
                    ),
                    source_ip=ip,
                    count=len(exploits),
                    raw_evidence=_evidence(exploits),
                )
            )

        return threats


class PortScanRule(DetectionRule):
    """Many distinct paths requested by one IP."""

    name = "port_scan"
    mitre_id = "T1046"

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []
        paths_by_ip: Dict[str, Dict[str, None]] = {}

        for entry in entries:
            if not entry.source_ip or not entry.path:
                continue
            # dict keeps first-seen order for the evidence sample
            paths_by_ip.setdefault(entry.source_ip, {})[entry.path] = None

        for ip, paths in paths_by_ip.items():
            if len(paths) < thresholds.scan_unique_paths:
                continue
            threats.append(
                self._threat(
                    type="Reconnaissance / Port Scanning",
                    severity=ThreatSeverity.MEDIUM,
                    description=(
                        f"IP {ip} accessed {len(paths)} unique paths, possible "
                        f"directory/service scanning activity."
                    ),
                    source_ip=ip,
                    count=len(paths),
                    raw_evidence=list(paths)[:PATH_EVIDENCE_LIMIT],
                )
            )

        return threats


class SuspiciousStatusRule(DetectionRule):
    """Clusters of auth rejections or server errors for one (IP, status) pair."""

    name = "suspicious_status"
    mitre_id = "T1190"

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []
        clusters: Dict[Tuple[str, int], List[LogEntry]] = {}

        for entry in entries:
            code = entry.status_code
            if not entry.source_ip or not code:
                continue
            if code in AUTH_STATUS_CODES or code >= 500:
                clusters.setdefault((entry.source_ip, code), []).append(entry)

        for (ip, code), cluster in clusters.items():
            count = len(cluster)
            if count < thresholds.status_cluster_count:
                continue

            if count >= thresholds.status_cluster_critical_count:
                severity = ThreatSeverity.CRITICAL
            elif count >= thresholds.status_cluster_high_count:
                severity = ThreatSeverity.HIGH
            else:
                severity = ThreatSeverity.MEDIUM

            if code in AUTH_STATUS_CODES:
                label = "Unauthorized Access Attempts"
                mitre_id = "T1078"
                reason = "possible credential stuffing or access abuse"
            else:
                label = "Server Error Spike"
                mitre_id = "T1190"
                reason = "may indicate exploitation or misconfigured service"

            threats.append(
                self._threat(
                    mitre_id=mitre_id,
                    type=label,
                    severity=severity,
                    description=f"IP {ip} triggered {count} HTTP {code} responses: {reason}.",
                    source_ip=ip,
                    count=count,
                    raw_evidence=_evidence(cluster),
                )
            )

        return threats


class SuspiciousToolRule(DetectionRule):
    """Known scanner or attack tool user agents."""

    name = "suspicious_tool"
    mitre_id = "T1595"

    @staticmethod
    def _is_tool(entry: LogEntry) -> bool:
        return bool(entry.user_agent) and any(
            p.search(entry.user_agent) for p in SUSPICIOUS_USER_AGENTS
        )

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []

        for ip, matches in group_by_ip(entries, self._is_tool).items():
            if len(matches) < thresholds.suspicious_ua_count:
                continue
            user_agent = matches[0].user_agent
            threats.append(
                self._threat(
                    type="Suspicious Tool Detected",
                    severity=ThreatSeverity.HIGH,
                    description=(
                        f"IP {ip} is using a known scanning/attack tool "
                        f"({user_agent[:60]}): {len(matches)} requests detected."
                    ),
                    source_ip=ip,
                    count=len(matches),
                    raw_evidence=_evidence(matches),
                )
            )

        return threats


class UnauthorizedAdminAccessRule(DetectionRule):
    """Rejected requests to admin and other sensitive endpoints."""

    name = "unauthorized_admin_access"
    mitre_id = "T1133"

    @staticmethod
    def _is_rejected_sensitive(entry: LogEntry) -> bool:
        if entry.status_code not in REJECTED_STATUS_CODES:
            return False
        target = entry.path or entry.message
        return any(p.search(target) for p in SENSITIVE_ENDPOINTS)

    def detect(self, entries: Sequence[LogEntry], thresholds: DetectionConfig) -> List[Threat]:
        threats = []

        for ip, attempts in group_by_ip(entries, self._is_rejected_sensitive).items():
            if len(attempts) < thresholds.admin_access_count:
                continue
            threats.append(
                self._threat(
                    type="Unauthorized Admin Access",
                    severity=ThreatSeverity.HIGH,
                    description=(
                        f"IP {ip} attempted to access {len(attempts)} restricted/admin "
                        f"endpoints, possible unauthorized access attempt."
                    ),
                    source_ip=ip,
                    count=len(attempts),
                    raw_evidence=_evidence(attempts),
                )
            )

        return threats


def default_rules() -> List[DetectionRule]:
    """All built-in rules."""
    return [
        BruteForceRule(),
        DDoSRule(),
        ExploitAttemptRule(),
        PortScanRule(),
        SuspiciousStatusRule(),
        SuspiciousToolRule(),
        UnauthorizedAdminAccessRule(),
    ]
