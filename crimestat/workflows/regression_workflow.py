# crimestat/workflows/regression_workflow.py
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from crimestat.config.app_config import AppConfig
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.observability.instrumentation import Instrumentation
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.pipeline import AnalyticsPipeline
from crimestat.steps.artifact_persist_step import ArtifactPersistStep
from crimestat.steps.stats_step import StatsStep
from crimestat.steps.train_step import TrainStep
from crimestat.steps.validate_step import ValidateStep
from crimestat.utils.logger import init_logging, logs


def build_regression_pipeline(
        cfg: Optional[AppConfig] = None,
        inst: Optional[Instrumentation] = None,
) -> AnalyticsPipeline:
    """
    Stats -> Train -> Validate -> Persist

    NOTE: wiring only, never calls .run()
    """
    if cfg is None:
        cfg = AppConfig.load()
    if inst is None:
        inst = Instrumentation()

    executor = MapReduceExecutor(cfg.executor, inst)

    return AnalyticsPipeline(
        steps=[
            StatsStep(cfg.stats, executor, inst),
            TrainStep(cfg.regression, cfg.stats, executor, inst),
            ValidateStep(cfg.regression, cfg.stats, executor, inst),
            ArtifactPersistStep(cfg.regression, inst),
        ],
        output_dir=cfg.regression.output_dir,
        inst=inst,
    )


@logs.catch()
def run_regression(
        inputs: Iterable[str | Path],
        run_id: Optional[str] = None,
        cfg: Optional[AppConfig] = None,
) -> RegressionContext:
    if cfg is None:
        cfg = AppConfig.load()
    init_logging(cfg.log)
    run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
    return build_regression_pipeline(cfg).run(run_id, inputs)
