"""
Tests for the detection engine and its rules.

Run with: pytest tests/
"""

import pytest

from threatlens.core.config import DetectionConfig
from threatlens.core.exceptions import InvalidInputError
from threatlens.detection.engine import DetectionEngine, detect
from threatlens.detection.mitre import get_technique, list_techniques
from threatlens.detection.models import ThreatSeverity
from threatlens.detection.rules import (
    BruteForceRule,
    DetectionRule,
    PortScanRule,
    group_by_ip,
)
from threatlens.detection.windows import has_window, max_events_in_window, tightest_span


def _of_type(threats, threat_type):
    return [t for t in threats if t.type == threat_type]


class TestWindows:
    """Test sliding window helpers."""

    def test_has_window(self):
        times = [0.0, 10.0, 20.0, 30.0, 200.0]

        assert has_window(times, 4, 30)
        assert not has_window(times, 4, 29.9)
        assert not has_window(times, 6, 1000)

    def test_tightest_span(self):
        assert tightest_span([0.0, 5.0, 6.0, 100.0], 2) == 1.0
        assert tightest_span([1.0], 2) is None

    def test_max_events_in_window(self):
        times = [0.0, 1.0, 2.0, 61.0, 62.0, 63.0, 64.0]

        assert max_events_in_window(times, 60) == 4
        assert max_events_in_window([], 60) == 0
        assert max_events_in_window([5.0, 5.0, 5.0], 0) == 3


class TestBruteForce:
    """Test the brute force rule."""

    def test_failed_passwords_in_window(self, make_entry):
        entries = [
            make_entry(ip="10.0.0.5", offset=i * 2, message="Failed password for root from 10.0.0.5")
            for i in range(6)
        ]

        threats = detect(entries)

        assert len(threats) == 1
        threat = threats[0]
        assert threat.type == "Brute Force Attack"
        assert threat.severity == ThreatSeverity.HIGH
        assert threat.count == 6
        assert threat.source_ip == "10.0.0.5"
        assert threat.mitre_id == "T1110"
        assert threat.mitre_name == "Brute Force"
        assert threat.mitre_tactic == "Credential Access"
        assert "within 60 seconds" in threat.description
        assert len(threat.raw_evidence) == 5

    def test_below_threshold(self, make_entry):
        entries = [make_entry(offset=i, status=401) for i in range(4)]

        assert _of_type(detect(entries), "Brute Force Attack") == []

    def test_spread_out_failures_need_double_count(self, make_entry):
        spread = [make_entry(offset=i * 100, message="login failed") for i in range(9)]
        assert _of_type(detect(spread), "Brute Force Attack") == []

        spread.append(make_entry(offset=900, message="login failed"))
        threats = _of_type(detect(spread), "Brute Force Attack")

        assert len(threats) == 1
        assert threats[0].count == 10
        assert "within" not in threats[0].description

    def test_critical_at_fifteen_failures(self, make_entry):
        entries = [make_entry(offset=i, message="authentication failure") for i in range(15)]

        threats = _of_type(detect(entries), "Brute Force Attack")

        assert threats[0].severity == ThreatSeverity.CRITICAL

    def test_invalid_timestamps_never_form_a_window(self, make_entry):
        entries = [
            make_entry(timestamp="not-a-time", message="Failed password for admin")
            for _ in range(6)
        ]

        assert _of_type(detect(entries), "Brute Force Attack") == []

    def test_custom_thresholds(self, make_entry):
        entries = [make_entry(offset=i, status=403) for i in range(3)]

        threats = detect(entries, thresholds=DetectionConfig(brute_force_count=3))

        assert len(_of_type(threats, "Brute Force Attack")) == 1


class TestDDoS:
    """Test the request flood rule."""

    def test_flood_within_forty_seconds(self, make_entry):
        entries = [make_entry(ip="1.2.3.4", offset=i * 40 / 119) for i in range(120)]

        threats = detect(entries)

        assert len(threats) == 1
        assert threats[0].type == "DDoS Pattern"
        assert threats[0].severity == ThreatSeverity.CRITICAL
        assert threats[0].count == 120
        assert threats[0].mitre_id == "T1498"
        assert "peak 120 requests" in threats[0].description

    def test_total_alone_triggers(self, make_entry):
        entries = [make_entry(ip="1.2.3.4", offset=i * 10) for i in range(100)]

        threats = _of_type(detect(entries), "DDoS Pattern")

        assert len(threats) == 1
        assert threats[0].count == 100

    def test_below_threshold(self, make_entry):
        entries = [make_entry(ip="1.2.3.4", offset=i) for i in range(99)]

        assert _of_type(detect(entries), "DDoS Pattern") == []


class TestExploitAttempt:
    """Test the exploit payload rule."""

    def test_single_traversal(self, make_entry):
        entries = [make_entry(ip="9.9.9.9", path="/../../../etc/passwd", status=404)]

        threats = detect(entries)

        assert len(threats) == 1
        assert threats[0].type == "Exploit Attempt"
        assert threats[0].count == 1
        assert threats[0].severity == ThreatSeverity.HIGH
        assert threats[0].mitre_id == "T1190"
        assert threats[0].mitre_name == "Exploit Public-Facing Application"

    def test_critical_at_five(self, make_entry):
        entries = [
            make_entry(ip="9.9.9.9", offset=i, path=f"/item?id={i} UNION SELECT password")
            for i in range(5)
        ]

        threats = _of_type(detect(entries), "Exploit Attempt")

        assert threats[0].severity == ThreatSeverity.CRITICAL

    def test_payload_without_ip_is_ignored(self, make_entry):
        entries = [make_entry(ip=None, path="/../../../etc/passwd")]

        assert detect(entries) == []


class TestPortScan:
    """Test the distinct path scanning rule."""

    def test_twenty_five_paths(self, make_entry):
        entries = [make_entry(ip="5.5.5.5", offset=i, path=f"/page/{i}") for i in range(25)]

        threats = detect(entries)

        assert len(threats) == 1
        assert threats[0].type == "Reconnaissance / Port Scanning"
        assert threats[0].severity == ThreatSeverity.MEDIUM
        assert threats[0].mitre_id == "T1046"
        assert threats[0].count == 25
        assert threats[0].raw_evidence == [f"/page/{i}" for i in range(10)]

    def test_repeated_paths_count_once(self, make_entry):
        entries = [make_entry(ip="5.5.5.5", offset=i, path=f"/page/{i % 19}") for i in range(60)]

        assert PortScanRule().detect(entries, DetectionConfig()) == []


class TestSuspiciousStatus:
    """Test (IP, status) clustering."""

    def test_auth_cluster(self, make_entry):
        entries = [make_entry(ip="7.7.7.7", offset=i * 30, status=401) for i in range(12)]

        threats = _of_type(detect(entries), "Unauthorized Access Attempts")

        assert len(threats) == 1
        assert threats[0].severity == ThreatSeverity.MEDIUM
        assert threats[0].mitre_id == "T1078"
        assert threats[0].mitre_tactic == "Initial Access"
        assert "HTTP 401" in threats[0].description

    def test_server_error_spike(self, make_entry):
        entries = [make_entry(ip="7.7.7.7", offset=i * 5, status=500) for i in range(25)]

        threats = _of_type(detect(entries), "Server Error Spike")

        assert len(threats) == 1
        assert threats[0].severity == ThreatSeverity.HIGH
        assert threats[0].mitre_id == "T1190"

    def test_codes_cluster_separately(self, make_entry):
        entries = [make_entry(ip="7.7.7.7", offset=i * 5, status=502) for i in range(6)]
        entries += [make_entry(ip="7.7.7.7", offset=i * 5, status=503) for i in range(6)]

        assert _of_type(detect(entries), "Server Error Spike") == []

    def test_critical_cluster(self, make_entry):
        entries = [make_entry(ip="7.7.7.7", offset=i * 2, status=503) for i in range(50)]

        threats = _of_type(detect(entries), "Server Error Spike")

        assert threats[0].severity == ThreatSeverity.CRITICAL


class TestSuspiciousTool:
    """Test scanner user agent matching."""

    def test_sqlmap(self, make_entry):
        entries = [
            make_entry(ip="6.6.6.6", offset=i, path="/", user_agent="sqlmap/1.7.2#stable")
            for i in range(3)
        ]

        threats = detect(entries)

        assert len(threats) == 1
        assert threats[0].type == "Suspicious Tool Detected"
        assert threats[0].severity == ThreatSeverity.HIGH
        assert threats[0].mitre_id == "T1595"
        assert "sqlmap" in threats[0].description

    def test_curl_needs_version(self, make_entry):
        versioned = [make_entry(offset=i, user_agent="curl/8.4.0") for i in range(3)]
        bare = [make_entry(offset=i, user_agent="my-curling-client") for i in range(3)]

        assert len(_of_type(detect(versioned), "Suspicious Tool Detected")) == 1
        assert _of_type(detect(bare), "Suspicious Tool Detected") == []


class TestUnauthorizedAdminAccess:
    """Test rejected access to sensitive endpoints."""

    def test_rejected_admin_requests(self, make_entry):
        entries = [
            make_entry(ip="8.8.4.4", offset=i * 60, path=f"/admin/page{i}", status=404)
            for i in range(5)
        ]

        threats = detect(entries)

        assert len(threats) == 1
        assert threats[0].type == "Unauthorized Admin Access"
        assert threats[0].mitre_id == "T1133"
        assert threats[0].count == 5

    def test_successful_admin_requests_ignored(self, make_entry):
        entries = [make_entry(offset=i, path="/admin", status=200) for i in range(10)]

        assert detect(entries) == []


class TestDetectionEngine:
    """Test the engine boundary."""

    def test_empty_batch(self):
        assert detect([]) == []

    def test_no_source_ips(self, make_entry):
        entries = [
            make_entry(ip=None, offset=i, status=401, path=f"/admin/{i}", user_agent="nikto")
            for i in range(150)
        ]

        assert detect(entries) == []

    def test_rejects_wrong_shapes(self, make_entry):
        with pytest.raises(InvalidInputError):
            detect("not entries")
        with pytest.raises(InvalidInputError):
            detect([make_entry(), {"sourceIP": "1.1.1.1"}])

    def test_failing_rule_is_skipped(self, make_entry):
        class ExplodingRule(DetectionRule):
            name = "exploding"

            def detect(self, entries, thresholds):
                raise RuntimeError("boom")

        engine = DetectionEngine(rules=[ExplodingRule(), BruteForceRule()])
        entries = [make_entry(offset=i, status=401) for i in range(5)]

        threats = engine.run(entries)

        assert [t.type for t in threats] == ["Brute Force Attack"]

    def test_get_and_add_rule(self):
        engine = DetectionEngine(rules=[])

        assert engine.get_rule("port_scan") is None
        engine.add_rule(PortScanRule())
        assert isinstance(engine.get_rule("port_scan"), PortScanRule)

    def test_more_evidence_never_removes_threats(self, make_entry):
        entries = [make_entry(offset=i, status=401) for i in range(6)]
        baseline = {t.type for t in detect(entries)}

        entries += [make_entry(offset=100 + i, status=401) for i in range(20)]
        extended = {t.type for t in detect(entries)}

        assert baseline <= extended

    def test_unreadable_timestamp_only_affects_its_own_ip(self, make_entry):
        entries = [
            make_entry(ip="10.0.0.9", timestamp=stamp, message="Failed password for root")
            for stamp in ("²", "①", "0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00", "²")
        ]
        entries += [
            make_entry(ip="10.0.0.5", offset=i * 2, message="Failed password for root")
            for i in range(6)
        ]

        threats = _of_type(detect(entries), "Brute Force Attack")

        assert [t.source_ip for t in threats] == ["10.0.0.5"]
        assert threats[0].count == 6

    def test_threats_are_immutable(self, make_entry):
        threat = detect([make_entry(path="/.env")])[0]

        with pytest.raises(Exception):
            threat.count = 99

    def test_serializes_with_camel_case_keys(self, make_entry):
        threat = detect([make_entry(path="/.git/HEAD")])[0]

        data = threat.model_dump(mode="json", by_alias=True)

        assert data["sourceIP"] == "10.0.0.1"
        assert data["mitreId"] == "T1190"
        assert data["rawEvidence"] == ["10.0.0.1 GET /.git/HEAD -"]
        assert "createdAt" in data

    def test_group_by_ip_skips_missing_ips(self, make_entry):
        entries = [make_entry(ip="1.1.1.1"), make_entry(ip=None), make_entry(ip="2.2.2.2")]

        assert list(group_by_ip(entries)) == ["1.1.1.1", "2.2.2.2"]


@pytest.fixture
def mixed_batch(make_entry):
    """A batch that sits around the default thresholds of every rule."""
    entries = [make_entry(ip="10.0.0.5", offset=i * 20, message="Failed password") for i in range(4)]
    entries += [make_entry(ip="10.0.0.6", offset=i * 2, message="Failed password") for i in range(7)]
    entries += [make_entry(ip="1.2.3.4", offset=i * 0.5) for i in range(80)]
    entries += [make_entry(ip="5.5.5.5", offset=i, path=f"/page/{i}") for i in range(15)]
    entries += [make_entry(ip="7.7.7.7", offset=i * 30, status=500) for i in range(12)]
    entries += [make_entry(ip="7.7.7.8", offset=i * 30, status=502) for i in range(6)]
    entries += [make_entry(ip="6.6.6.6", offset=i, user_agent="nikto/2.5") for i in range(2)]
    entries += [make_entry(ip="8.8.4.4", offset=i * 60, path="/admin", status=403) for i in range(3)]
    entries += [make_entry(ip="9.9.9.9", path="/../../etc/passwd")]
    return entries


class TestThresholdMonotonicity:
    """Lowering a count threshold never reduces the threats found."""

    @pytest.mark.parametrize("field", [
        "brute_force_count",
        "ddos_request_count",
        "scan_unique_paths",
        "status_cluster_count",
        "suspicious_ua_count",
        "admin_access_count",
    ])
    @pytest.mark.parametrize("lowered", [1, 2])
    def test_lowered_threshold(self, mixed_batch, field, lowered):
        baseline = detect(mixed_batch, thresholds=DetectionConfig())
        relaxed = detect(mixed_batch, thresholds=DetectionConfig(**{field: lowered}))

        assert len(baseline) == 3
        assert len(relaxed) > len(baseline)


class TestMitreTable:
    """Test the ATT&CK reference table."""

    def test_every_rule_technique_is_known(self):
        for technique_id in ("T1110", "T1498", "T1190", "T1046", "T1078", "T1595", "T1133"):
            assert get_technique(technique_id) is not None

    def test_lookup(self):
        technique = get_technique("T1046")

        assert technique.name == "Network Service Discovery"
        assert technique.tactic == "Discovery"
        assert technique.url.endswith("/T1046/")
        assert get_technique("T9999") is None

    def test_table_size(self):
        ids = [t.id for t in list_techniques()]

        assert len(ids) == 15
        assert len(set(ids)) == 15
