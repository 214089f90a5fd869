#!filepath: crimestat/pipeline/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from crimestat.regression.model import ModelState
from crimestat.regression.orchestrator import TrainingOutcome
from crimestat.regression.validator import ValidationResult
from crimestat.stats.summary import StatResult, StatsSummary
from crimestat.values.value import Value


@dataclass
class RegressionContext:
    """
    RegressionContext（FINAL）

    Semantics:
    - one context == one analytics run
    - the only channel between steps: facts and intermediate results, no logic
    """

    # -------------------------
    # identity
    # -------------------------
    run_id: str
    output_dir: Path

    # -------------------------
    # input (feature record lines)
    # -------------------------
    lines: List[str] = field(default_factory=list)

    # -------------------------
    # stats stage
    # -------------------------
    stats_entries: List[Tuple[str, Value]] = field(default_factory=list)
    stats_path: Optional[Path] = None
    summary: Optional[StatsSummary] = None
    field_stats: List[StatResult] = field(default_factory=list)
    correlations: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)

    # -------------------------
    # regression stage
    # -------------------------
    training: Optional[TrainingOutcome] = None
    model_state: Optional[ModelState] = None
    validation: Optional[ValidationResult] = None

    # -------------------------
    # outputs
    # -------------------------
    artifacts: Dict[str, Path] = field(default_factory=dict)
    metrics: Dict[str, Any] = field(default_factory=dict)
