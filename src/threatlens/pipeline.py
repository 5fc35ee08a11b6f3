"""
Normalize -> detect -> analyze, chained for collaborators.

Upload handlers and live-stream feeders call ``run_pipeline`` once per
batch (or micro-batch) and persist or broadcast the result themselves;
the pipeline keeps no state between calls.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from threatlens.analysis.analyzer import RiskAnalyzer
from threatlens.analysis.models import Analysis
from threatlens.core.config import AppConfig, get_config
from threatlens.detection.engine import DetectionEngine
from threatlens.detection.models import Threat
from threatlens.normalizer.models import LogEntry
from threatlens.normalizer.normalizer import LogNormalizer, RawContent

logger = logging.getLogger(__name__)


class PipelineResult(BaseModel):
    """Everything the core produces for one batch."""

    entries: List[LogEntry] = Field(default_factory=list)
    threats: List[Threat] = Field(default_factory=list)
    analysis: Analysis


def run_pipeline(
    raw_content: RawContent,
    format_hint: Optional[str] = None,
    config: Optional[AppConfig] = None,
) -> PipelineResult:
    """
    Run all three stages over one batch of raw log content.

    Args:
        raw_content: Whole document (str or bytes) or an iterable of lines
        format_hint: File extension or name; ``csv`` selects CSV parsing
        config: Thresholds to use. If None, the global configuration.

    Returns:
        Entries, threats and analysis for the batch
    """
    config = config or get_config()

    entries = LogNormalizer().normalize(raw_content, format_hint)
    threats = DetectionEngine(thresholds=config.detection).run(entries)
    analysis = RiskAnalyzer(thresholds=config.analysis).analyze(entries, threats)

    logger.info(
        f"Pipeline finished: {len(entries)} entries, {len(threats)} threats, "
        f"risk {analysis.risk_score}/100"
    )
    return PipelineResult(entries=entries, threats=threats, analysis=analysis)
