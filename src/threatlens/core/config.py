"""
Configuration management for ThreatLens.

Uses Pydantic Settings for environment variable validation and type safety.
Every detection and anomaly threshold lives here so rule bodies never
carry magic numbers; callers may inject their own instances.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


class DetectionConfig(BaseSettings):
    """Thresholds for the rule-based detection engine."""

    brute_force_count: int = Field(
        default=5,
        ge=1,
        description="Failed logins from one IP needed inside the brute force window",
    )
    brute_force_window_sec: float = Field(
        default=60,
        ge=0,
        description="Brute force sliding window (seconds)",
    )
    brute_force_critical_count: int = Field(
        default=15,
        ge=1,
        description="Failure count at which a brute force becomes critical",
    )
    ddos_request_count: int = Field(
        default=100,
        ge=1,
        description="Requests from one IP that flag a DDoS pattern",
    )
    ddos_window_sec: float = Field(
        default=60,
        ge=0,
        description="DDoS peak-rate sliding window (seconds)",
    )
    exploit_critical_count: int = Field(
        default=5,
        ge=1,
        description="Exploit payloads from one IP at which severity becomes critical",
    )
    scan_unique_paths: int = Field(
        default=20,
        ge=1,
        description="Distinct paths from one IP that flag scanning",
    )
    status_cluster_count: int = Field(
        default=10,
        ge=1,
        description="Occurrences of one (IP, status) pair that flag a cluster",
    )
    status_cluster_high_count: int = Field(
        default=20,
        ge=1,
        description="Cluster size at which severity becomes high",
    )
    status_cluster_critical_count: int = Field(
        default=50,
        ge=1,
        description="Cluster size at which severity becomes critical",
    )
    suspicious_ua_count: int = Field(
        default=3,
        ge=1,
        description="Requests with a known tool user agent that flag an IP",
    )
    admin_access_count: int = Field(
        default=5,
        ge=1,
        description="Rejected requests to sensitive endpoints that flag an IP",
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "DetectionConfig":
        """Validate that escalation thresholds are ordered."""
        if self.brute_force_count > self.brute_force_critical_count:
            raise ValueError("brute_force_count must be <= brute_force_critical_count")
        if not (
            self.status_cluster_count
            <= self.status_cluster_high_count
            <= self.status_cluster_critical_count
        ):
            raise ValueError(
                "status cluster thresholds must satisfy count <= high_count <= critical_count"
            )
        return self

    class Config:
        env_prefix = "THREATLENS_DETECTION_"


class AnalysisConfig(BaseSettings):
    """Thresholds for the statistical anomaly checks."""

    error_rate_threshold: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Server error ratio above which an anomaly is raised",
    )
    error_rate_critical: float = Field(
        default=0.30,
        ge=0.0,
        le=1.0,
        description="Server error ratio above which the anomaly is critical",
    )
    concentration_ratio: float = Field(
        default=0.50,
        ge=0.0,
        le=1.0,
        description="Share of traffic from one IP that counts as concentrated",
    )
    concentration_min_requests: int = Field(
        default=20,
        ge=0,
        description="Requests one IP must exceed before concentration is reported",
    )
    off_hours_start: int = Field(
        default=2,
        ge=0,
        le=23,
        description="First off-hours hour (UTC, inclusive)",
    )
    off_hours_end: int = Field(
        default=5,
        ge=0,
        le=23,
        description="Last off-hours hour (UTC, inclusive)",
    )
    off_hours_ratio: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Share of off-hours entries above which an anomaly is raised",
    )
    off_hours_min_count: int = Field(
        default=10,
        ge=0,
        description="Off-hours entries that must be exceeded before reporting",
    )
    burst_size: int = Field(
        default=10,
        ge=2,
        description="Consecutive events that make up a burst",
    )
    burst_window_sec: float = Field(
        default=1.0,
        gt=0.0,
        description="Span a burst must stay under (seconds)",
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "AnalysisConfig":
        """Validate that paired thresholds are ordered."""
        if self.off_hours_start > self.off_hours_end:
            raise ValueError("off_hours_start must not be after off_hours_end")
        if self.error_rate_critical < self.error_rate_threshold:
            raise ValueError("error_rate_critical must be >= error_rate_threshold")
        return self

    class Config:
        env_prefix = "THREATLENS_ANALYSIS_"


class AppConfig(BaseSettings):
    """Main application configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Nested configurations
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v

    class Config:
        env_prefix = "THREATLENS_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance.

    Lazily loads configuration on first access.

    Returns:
        AppConfig: The global configuration instance
    """
    global _config
    if _config is None:
        _config = AppConfig(
            detection=DetectionConfig(),
            analysis=AnalysisConfig(),
        )
    return _config


def reload_config() -> AppConfig:
    """
    Reload configuration from environment variables.

    Useful for testing or when environment changes.

    Returns:
        AppConfig: The reloaded configuration instance
    """
    global _config
    _config = None
    return get_config()


def load_config_file(filepath: Union[str, Path]) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        filepath: Path to the configuration file

    Example YAML format:
        log_level: DEBUG
        detection:
          brute_force_count: 3
          ddos_request_count: 500
        analysis:
          burst_size: 20

    Returns:
        AppConfig built from the file; sections it omits keep their defaults

    Raises:
        ConfigError: if the file cannot be read or fails validation
    """
    try:
        with open(filepath, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read configuration from {filepath}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {filepath} must be a mapping")

    try:
        config = _build_config(data)
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid configuration in {filepath}: {e}") from e

    logger.info(f"Loaded configuration from {filepath}")
    return config


def _build_config(data: Dict[str, Any]) -> AppConfig:
    kwargs: Dict[str, Any] = {
        "detection": DetectionConfig(**(data.get("detection") or {})),
        "analysis": AnalysisConfig(**(data.get("analysis") or {})),
    }
    if "log_level" in data:
        kwargs["log_level"] = data["log_level"]
    return AppConfig(**kwargs)
