"""
Tests for configuration loading.

Run with: pytest tests/
"""

import pytest
from pydantic import ValidationError

from threatlens.core.config import (
    AnalysisConfig,
    AppConfig,
    DetectionConfig,
    get_config,
    load_config_file,
    reload_config,
)
from threatlens.core.exceptions import ConfigError


class TestDefaults:
    """Test default thresholds."""

    def test_detection_defaults(self):
        config = DetectionConfig()

        assert config.brute_force_count == 5
        assert config.brute_force_window_sec == 60
        assert config.ddos_request_count == 100
        assert config.scan_unique_paths == 20
        assert config.status_cluster_count == 10
        assert config.suspicious_ua_count == 3
        assert config.admin_access_count == 5

    def test_analysis_defaults(self):
        config = AnalysisConfig()

        assert config.error_rate_threshold == 0.10
        assert config.off_hours_start == 2
        assert config.off_hours_end == 5
        assert config.burst_size == 10
        assert config.burst_window_sec == 1.0

    def test_global_instance_is_cached(self):
        assert get_config() is get_config()


class TestEnvironment:
    """Test environment variable overrides."""

    def test_detection_threshold_from_env(self, monkeypatch):
        monkeypatch.setenv("THREATLENS_DETECTION_BRUTE_FORCE_COUNT", "3")

        config = reload_config()

        assert config.detection.brute_force_count == 3

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("THREATLENS_LOG_LEVEL", "debug")

        assert reload_config().log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            AppConfig(log_level="LOUD")


class TestValidation:
    """Test cross-field validation."""

    def test_off_hours_must_be_ordered(self):
        with pytest.raises(ValidationError):
            AnalysisConfig(off_hours_start=6, off_hours_end=2)

    def test_critical_error_rate_above_threshold(self):
        with pytest.raises(ValidationError):
            AnalysisConfig(error_rate_threshold=0.5, error_rate_critical=0.2)

    def test_brute_force_escalation_ordered(self):
        with pytest.raises(ValidationError):
            DetectionConfig(brute_force_count=20)

        assert DetectionConfig(brute_force_count=15).brute_force_critical_count == 15

    def test_status_cluster_escalation_ordered(self):
        with pytest.raises(ValidationError):
            DetectionConfig(status_cluster_count=30)
        with pytest.raises(ValidationError):
            DetectionConfig(status_cluster_high_count=60)

        config = DetectionConfig(status_cluster_count=20, status_cluster_high_count=50)
        assert config.status_cluster_critical_count == 50

    def test_unordered_file_is_a_config_error(self, tmp_path):
        path = tmp_path / "unordered.yaml"
        path.write_text("detection:\n  status_cluster_high_count: 5\n")

        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_burst_needs_two_events(self):
        with pytest.raises(ValidationError):
            AnalysisConfig(burst_size=1)


class TestConfigFile:
    """Test YAML configuration files."""

    def test_partial_file(self, tmp_path):
        path = tmp_path / "thresholds.yaml"
        path.write_text(
            "log_level: warning\n"
            "detection:\n"
            "  brute_force_count: 3\n"
            "analysis:\n"
            "  burst_size: 20\n"
        )

        config = load_config_file(path)

        assert config.log_level == "WARNING"
        assert config.detection.brute_force_count == 3
        assert config.detection.ddos_request_count == 100
        assert config.analysis.burst_size == 20

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_config_file(path)

        assert config.detection.brute_force_count == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config_file(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("detection: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("detection:\n  brute_force_count: 0\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config_file(path)
