"""
Statistical risk analysis.

Aggregates batch statistics, flags statistical anomalies and computes a
composite 0-100 risk score with a narrative summary, per-IP reputation
and an hourly timeline.
"""

__all__ = ["models", "analyzer", "summary"]
