#!filepath: crimestat/steps/train_step.py
from __future__ import annotations

from crimestat.config.regression_config import RegressionConfig
from crimestat.config.stats_config import StatsConfig
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.observability.instrumentation import Instrumentation
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.step import PipelineStep
from crimestat.regression.model import ModelState
from crimestat.regression.orchestrator import EpochOrchestrator
from crimestat.regression.stopping import StopConditions
from crimestat.regression.trainer import RegressionTrainer
from crimestat.utils.logger import logs


class TrainStep(PipelineStep):
    """
    TrainStep

    Contract:
    - consumes ctx.lines, ctx.counts (from StatsStep)
    - produces ctx.training, ctx.model_state
    - no termination condition / missing counts fail before the first epoch
    """

    stage = "train"

    def __init__(
            self,
            cfg: RegressionConfig,
            stats_cfg: StatsConfig,
            executor: MapReduceExecutor,
            inst: Instrumentation | None = None,
    ):
        super().__init__(inst)
        self.cfg = cfg
        self.stats_cfg = stats_cfg
        self.executor = executor

    def run(self, ctx: RegressionContext) -> RegressionContext:
        with self.timed():
            self.cfg.check_termination()
            conditions = StopConditions.from_config(self.cfg)
            if not self.cfg.train_range().within(self.stats_cfg.filter_range()):
                # counts come from the stats window, examples from the train window
                logs.warning(
                    f"[TrainStep] train range {self.cfg.train_range()} is not inside "
                    f"the stats range {self.stats_cfg.filter_range()}"
                )

            state = ModelState(
                weights=self.cfg.coefficients(),
                bias=self.cfg.bias,
                learning_rate=self.cfg.learning_rate,
                counts=ctx.counts,
            )
            trainer = RegressionTrainer(
                dependent=self.cfg.dependent,
                independents=self.cfg.independents,
                state=state,
                types={f: self.stats_cfg.variant_of(f) for f in [self.cfg.dependent] + self.cfg.independents},
                date_range=self.cfg.train_range(),
                date_format=self.stats_cfg.date_format,
            )

            outcome = EpochOrchestrator(trainer, conditions, self.executor, self.inst).run(ctx.lines)

            ctx.training = outcome
            ctx.model_state = outcome.state
            ctx.metrics["epochs"] = outcome.epochs
            ctx.metrics["stop_reason"] = outcome.reason.value
            ctx.metrics["cost"] = outcome.state.cost
            ctx.metrics["min_cost"] = outcome.min_cost
            ctx.metrics["min_cost_epoch"] = outcome.min_cost_epoch
        return ctx
