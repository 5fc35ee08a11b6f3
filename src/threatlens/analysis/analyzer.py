"""
Risk analysis over a batch of entries and its detected threats.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from threatlens.core.config import AnalysisConfig, get_config
from threatlens.core.exceptions import InvalidInputError
from threatlens.detection.models import Threat, ThreatSeverity
from threatlens.normalizer.models import EntrySeverity, LogEntry
from threatlens.normalizer.timestamps import parse_timestamp

from .models import Analysis, Anomaly, IPReputation, Stats, ThreatBreakdown, TimelineBucket
from .summary import generate_summary, risk_level

logger = logging.getLogger(__name__)

MAX_REPUTATION_ENTRIES = 20


class RiskAnalyzer:
    """
    Computes statistics, anomalies and a composite risk score for a batch.

    The risk score sums:
    - a weight per threat by severity
    - a weight per anomaly by severity
    - the server error rate, scaled and capped
    and is rounded and clamped to 0-100.
    """

    THREAT_WEIGHTS = {
        ThreatSeverity.CRITICAL: 25,
        ThreatSeverity.HIGH: 15,
        ThreatSeverity.MEDIUM: 8,
        ThreatSeverity.LOW: 3,
    }

    ANOMALY_WEIGHTS = {
        ThreatSeverity.CRITICAL: 15,
        ThreatSeverity.HIGH: 10,
        ThreatSeverity.MEDIUM: 5,
    }

    # Reputation penalty per attributed threat
    REPUTATION_PENALTIES = {
        ThreatSeverity.CRITICAL: 40,
        ThreatSeverity.HIGH: 25,
        ThreatSeverity.MEDIUM: 10,
    }

    ERROR_RATE_FACTOR = 50
    ERROR_RATE_CAP = 15

    def __init__(self, thresholds: Optional[AnalysisConfig] = None):
        """
        Initialize the analyzer.

        Args:
            thresholds: Anomaly thresholds. If None, the global configuration.
        """
        self.thresholds = thresholds

    def analyze(self, entries: Sequence[LogEntry], threats: Sequence[Threat]) -> Analysis:
        """
        Run the full analysis for one batch.

        Args:
            entries: Normalized log entries
            threats: Threats detected in the same entries

        Returns:
            Analysis bundle
        """
        _validate(entries, LogEntry, "entries")
        _validate(threats, Threat, "threats")

        stats = self.compute_stats(entries)
        anomalies = self.detect_anomalies(entries, stats)
        score = self.calculate_risk_score(threats, anomalies, stats)

        analysis = Analysis(
            risk_score=score,
            risk_level=risk_level(score),
            summary=generate_summary(stats, threats, anomalies, score),
            stats=stats,
            anomalies=anomalies,
            threat_breakdown=self.threat_breakdown(threats),
            ip_reputation=self.compute_ip_reputation(entries, threats),
            timeline=self.build_timeline(entries, threats),
        )

        logger.info(
            f"Risk analysis complete: {score}/100 ({analysis.risk_level}), "
            f"{len(threats)} threats, {len(anomalies)} anomalies"
        )
        return analysis

    def compute_stats(self, entries: Sequence[LogEntry]) -> Stats:
        """Aggregate counts in a single pass over the entries."""
        ips: Dict[str, None] = {}
        methods: Dict[str, int] = {}
        status_codes: Dict[int, int] = {}
        hourly: Dict[int, int] = {}
        errors = 0
        warnings = 0

        for entry in entries:
            if entry.source_ip:
                ips[entry.source_ip] = None
            if entry.method:
                methods[entry.method] = methods.get(entry.method, 0) + 1
            if entry.status_code:
                status_codes[entry.status_code] = status_codes.get(entry.status_code, 0) + 1
                if entry.status_code >= 500:
                    errors += 1
                if entry.status_code in (401, 403):
                    warnings += 1

            parsed = parse_timestamp(entry.timestamp)
            if parsed is not None:
                hourly[parsed.hour] = hourly.get(parsed.hour, 0) + 1

        return Stats(
            total_entries=len(entries),
            unique_ips=len(ips),
            ip_list=list(ips),
            methods=methods,
            status_codes=status_codes,
            error_count=errors,
            warning_count=warnings,
            hourly_distribution=hourly,
        )

    def detect_anomalies(self, entries: Sequence[LogEntry], stats: Stats) -> List[Anomaly]:
        """
        Evaluate every anomaly check independently.

        Args:
            entries: Normalized log entries
            stats: Statistics for the same entries

        Returns:
            Anomalies in check order
        """
        thresholds = self._thresholds()
        anomalies: List[Anomaly] = []
        anomalies.extend(self._check_error_rate(stats, thresholds))
        anomalies.extend(self._check_concentration(entries, stats, thresholds))
        anomalies.extend(self._check_off_hours(entries, thresholds))
        anomalies.extend(self._check_burst(entries, thresholds))
        return anomalies

    def _check_error_rate(self, stats: Stats, thresholds: AnalysisConfig) -> List[Anomaly]:
        rate = stats.error_rate
        if rate <= thresholds.error_rate_threshold:
            return []
        return [
            Anomaly(
                type="High Error Rate",
                severity=(
                    ThreatSeverity.CRITICAL
                    if rate > thresholds.error_rate_critical
                    else ThreatSeverity.HIGH
                ),
                description=(
                    f"Error rate is {rate * 100:.1f}% ({stats.error_count} errors out of "
                    f"{stats.total_entries} entries), significantly above normal threshold "
                    f"of {thresholds.error_rate_threshold * 100:g}%."
                ),
            )
        ]

    def _check_concentration(
        self, entries: Sequence[LogEntry], stats: Stats, thresholds: AnalysisConfig
    ) -> List[Anomaly]:
        counts: Dict[str, int] = {}
        for entry in entries:
            if entry.source_ip:
                counts[entry.source_ip] = counts.get(entry.source_ip, 0) + 1

        anomalies = []
        for ip, count in counts.items():
            ratio = count / stats.total_entries
            if ratio > thresholds.concentration_ratio and count > thresholds.concentration_min_requests:
                anomalies.append(
                    Anomaly(
                        type="Traffic Concentration",
                        severity=ThreatSeverity.HIGH,
                        description=(
                            f"IP {ip} accounts for {ratio * 100:.1f}% of all traffic "
                            f"({count} requests), possible automated activity."
                        ),
                    )
                )
        return anomalies

    def _check_off_hours(
        self, entries: Sequence[LogEntry], thresholds: AnalysisConfig
    ) -> List[Anomaly]:
        start, end = thresholds.off_hours_start, thresholds.off_hours_end
        off_hours = 0
        for entry in entries:
            parsed = parse_timestamp(entry.timestamp)
            if parsed is not None and start <= parsed.hour <= end:
                off_hours += 1

        if off_hours <= len(entries) * thresholds.off_hours_ratio:
            return []
        if off_hours <= thresholds.off_hours_min_count:
            return []

        return [
            Anomaly(
                type="Off-Hours Activity",
                severity=ThreatSeverity.MEDIUM,
                description=(
                    f"{off_hours} requests detected during off-hours "
                    f"({start:02d}:00-{end:02d}:59 UTC), "
                    f"{off_hours / len(entries) * 100:.1f}% of total traffic."
                ),
            )
        ]

    def _check_burst(self, entries: Sequence[LogEntry], thresholds: AnalysisConfig) -> List[Anomaly]:
        times = sorted(
            t.timestamp()
            for t in (parse_timestamp(entry.timestamp) for entry in entries)
            if t is not None
        )
        size = thresholds.burst_size

        for i in range(len(times) - size + 1):
            if times[i + size - 1] - times[i] < thresholds.burst_window_sec:
                return [
                    Anomaly(
                        type="Request Burst",
                        severity=ThreatSeverity.HIGH,
                        description=(
                            f"Detected burst of {size}+ requests within "
                            f"{thresholds.burst_window_sec:g} second(s), possible automated "
                            f"tool or attack."
                        ),
                    )
                ]
        return []

    def calculate_risk_score(
        self,
        threats: Sequence[Threat],
        anomalies: Sequence[Anomaly],
        stats: Stats,
    ) -> int:
        """
        Calculate the composite risk score.

        Returns:
            Score in 0-100
        """
        score = 0.0
        for threat in threats:
            score += self.THREAT_WEIGHTS.get(threat.severity, 0)
        for anomaly in anomalies:
            score += self.ANOMALY_WEIGHTS.get(anomaly.severity, 0)
        score += min(stats.error_rate * self.ERROR_RATE_FACTOR, self.ERROR_RATE_CAP)

        # round half up
        return max(0, min(int(math.floor(score + 0.5)), 100))

    def threat_breakdown(self, threats: Sequence[Threat]) -> ThreatBreakdown:
        """Count threats by type and by severity."""
        breakdown = ThreatBreakdown()
        for threat in threats:
            breakdown.by_type[threat.type] = breakdown.by_type.get(threat.type, 0) + 1
            key = threat.severity.value
            breakdown.by_severity[key] = breakdown.by_severity.get(key, 0) + 1
        return breakdown

    def compute_ip_reputation(
        self, entries: Sequence[LogEntry], threats: Sequence[Threat]
    ) -> List[IPReputation]:
        """
        Score every source IP, worst first.

        Each IP starts at 100 and loses points per attributed threat.

        Returns:
            At most 20 reputations sorted ascending by score
        """
        totals: Dict[str, Dict[str, int]] = {}
        for entry in entries:
            if not entry.source_ip:
                continue
            record = totals.setdefault(
                entry.source_ip,
                {"requests": 0, "errors": 0, "auth_failures": 0, "threats": 0, "score": 100},
            )
            record["requests"] += 1
            if entry.status_code and entry.status_code >= 500:
                record["errors"] += 1
            if entry.status_code in (401, 403):
                record["auth_failures"] += 1

        for threat in threats:
            record = totals.get(threat.source_ip) if threat.source_ip else None
            if record is None:
                continue
            record["threats"] += 1
            record["score"] -= self.REPUTATION_PENALTIES.get(threat.severity, 0)

        reputations = [
            IPReputation(
                ip=ip,
                total_requests=record["requests"],
                errors=record["errors"],
                auth_failures=record["auth_failures"],
                threat_count=record["threats"],
                score=max(0, min(record["score"], 100)),
            )
            for ip, record in totals.items()
        ]
        reputations.sort(key=lambda r: r.score)
        return reputations[:MAX_REPUTATION_ENTRIES]

    def build_timeline(
        self, entries: Sequence[LogEntry], threats: Sequence[Threat]
    ) -> List[TimelineBucket]:
        """
        Bucket entries by UTC hour and overlay threats on existing buckets.

        Threats whose creation hour has no log bucket are left out.
        """
        buckets: Dict[str, TimelineBucket] = {}
        for entry in entries:
            parsed = parse_timestamp(entry.timestamp)
            if parsed is None:
                continue
            key = _hour_key(parsed)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = TimelineBucket(time=key)
            bucket.total += 1
            if entry.severity in (EntrySeverity.ERROR, EntrySeverity.CRITICAL):
                bucket.errors += 1

        for threat in threats:
            bucket = buckets.get(_hour_key(threat.created_at))
            if bucket is not None:
                bucket.threats += 1

        return [buckets[key] for key in sorted(buckets)]

    def _thresholds(self) -> AnalysisConfig:
        return self.thresholds or get_config().analysis


def _hour_key(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:00")


def _validate(items: Sequence, item_type: type, label: str) -> None:
    if not isinstance(items, (list, tuple)):
        raise InvalidInputError(f"{label} must be a list, got {type(items).__name__}")
    for item in items:
        if not isinstance(item, item_type):
            raise InvalidInputError(
                f"{label} must contain {item_type.__name__} instances, "
                f"got {type(item).__name__}"
            )


def analyze(
    entries: Sequence[LogEntry],
    threats: Sequence[Threat],
    thresholds: Optional[AnalysisConfig] = None,
) -> Analysis:
    """
    Analyze a batch and its detected threats.

    Args:
        entries: Normalized log entries
        threats: Threats detected in the same entries
        thresholds: Anomaly thresholds; defaults to the global configuration

    Returns:
        Analysis bundle
    """
    return RiskAnalyzer(thresholds=thresholds).analyze(entries, threats)
