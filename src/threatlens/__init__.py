"""
ThreatLens - security log analysis core.

This package turns heterogeneous log text into canonical entries, runs
behavioral detectors mapped to MITRE ATT&CK techniques, and scores the
resulting batch.

Main modules:
- normalizer: multi-format log parsing into LogEntry records
- detection: rule-based threat detection (brute force, DDoS, exploits, ...)
- analysis: statistics, anomalies, risk score, IP reputation, timeline
- pipeline: the three stages chained for collaborators
- core: configuration, logging and exceptions
- cli: threatlensctl operational CLI
"""

__version__ = "0.1.0"
__author__ = "ThreatLens Team"

from threatlens.analysis.analyzer import analyze
from threatlens.detection.engine import detect
from threatlens.normalizer.normalizer import normalize
from threatlens.pipeline import PipelineResult, run_pipeline

__all__ = [
    "__version__",
    "__author__",
    "normalize",
    "detect",
    "analyze",
    "run_pipeline",
    "PipelineResult",
]
