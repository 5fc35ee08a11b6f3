"""
Detection engine for running rules against a batch of entries.
"""

import logging
from typing import List, Optional, Sequence

from threatlens.core.config import DetectionConfig, get_config
from threatlens.core.exceptions import InvalidInputError
from threatlens.normalizer.models import LogEntry

from .models import Threat
from .rules import DetectionRule, default_rules

logger = logging.getLogger(__name__)


def _validate_entries(entries: Sequence[LogEntry]) -> None:
    if not isinstance(entries, (list, tuple)):
        raise InvalidInputError(
            f"Entries must be a list of LogEntry, got {type(entries).__name__}"
        )
    for entry in entries:
        if not isinstance(entry, LogEntry):
            raise InvalidInputError(
                f"Entries must be LogEntry instances, got {type(entry).__name__}"
            )


class DetectionEngine:
    """
    Engine for evaluating detection rules against normalized entries.

    The engine:
    1. Validates the batch at the boundary
    2. Runs every rule independently over the same read-only entries
    3. Concatenates the rules' threats (grouped by rule, in rule order)
    """

    def __init__(
        self,
        rules: Optional[List[DetectionRule]] = None,
        thresholds: Optional[DetectionConfig] = None,
    ):
        """
        Initialize the detection engine.

        Args:
            rules: Rules to run. If None, all built-in rules.
            thresholds: Detection thresholds. If None, the global configuration.
        """
        self.rules: List[DetectionRule] = rules if rules is not None else default_rules()
        self.thresholds = thresholds

    def run(self, entries: Sequence[LogEntry]) -> List[Threat]:
        """
        Run all rules over a batch.

        Args:
            entries: Normalized log entries

        Returns:
            Detected threats; empty for an empty batch
        """
        _validate_entries(entries)
        if not entries:
            return []

        thresholds = self.thresholds or get_config().detection
        threats: List[Threat] = []

        for rule in self.rules:
            try:
                found = rule.detect(entries, thresholds)
            except Exception as e:
                logger.error(f"Detection rule '{rule.name}' failed: {e}")
                continue
            if found:
                logger.debug(f"Rule '{rule.name}' produced {len(found)} threat(s)")
            threats.extend(found)

        logger.info(f"Processed {len(entries)} entries, detected {len(threats)} threats")
        return threats

    def add_rule(self, rule: DetectionRule) -> None:
        """Add a rule to the engine."""
        self.rules.append(rule)

    def get_rule(self, name: str) -> Optional[DetectionRule]:
        """Get a rule by name."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None


def detect(
    entries: Sequence[LogEntry],
    thresholds: Optional[DetectionConfig] = None,
) -> List[Threat]:
    """
    Run the built-in detection rules over a batch.

    Args:
        entries: Normalized log entries
        thresholds: Detection thresholds; defaults to the global configuration

    Returns:
        Detected threats
    """
    return DetectionEngine(thresholds=thresholds).run(entries)
