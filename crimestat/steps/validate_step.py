#!filepath: crimestat/steps/validate_step.py
from __future__ import annotations

from crimestat.config.regression_config import RegressionConfig
from crimestat.config.stats_config import StatsConfig
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.observability.instrumentation import Instrumentation
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.step import PipelineStep
from crimestat.regression.validator import RegressionValidator
from crimestat.utils.logger import logs


class ValidateStep(PipelineStep):
    """
    ValidateStep

    Contract:
    - consumes ctx.lines, ctx.model_state
    - produces ctx.validation (None when no example falls in the range)
    """

    stage = "validate"

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
        if ctx.model_state is None:
            raise RuntimeError("No ModelState to validate")

        with self.timed():
            job = RegressionValidator(
                dependent=self.cfg.dependent,
                independents=self.cfg.independents,
                state=ctx.model_state,
                types={f: self.stats_cfg.variant_of(f) for f in [self.cfg.dependent] + self.cfg.independents},
                date_range=self.cfg.validate_range(),
                date_format=self.stats_cfg.date_format,
            )
            results = self.executor.run(job, ctx.lines)

        if not results:
            logs.warning(f"[ValidateStep] no examples within {self.cfg.validate_range()}")
            return ctx

        ctx.validation = results[0]
        ctx.metrics["r_squared"] = ctx.validation.r_squared
        ctx.metrics["r_bar_squared"] = ctx.validation.adjusted_r_squared
        ctx.metrics["std_error"] = ctx.validation.standard_error
        return ctx
