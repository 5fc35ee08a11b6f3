"""
Rule-based threat detection.

Runs independent behavioral rules over normalized entries and emits
threats mapped to MITRE ATT&CK techniques.
"""

__all__ = ["models", "mitre", "windows", "rules", "engine"]
