#!filepath: crimestat/steps/stats_step.py
from __future__ import annotations

from crimestat.config.stats_config import StatsConfig
from crimestat.io.stats_file import write_stats
from crimestat.keys.key_tag import canonical_pair
from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.observability.instrumentation import Instrumentation
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.step import PipelineStep
from crimestat.stats.aggregator import StatsAggregator
from crimestat.stats.summary import Stat, StatsSummary
from crimestat.utils.errors import UserInputError
from crimestat.utils.logger import logs


class StatsStep(PipelineStep):
    """
    StatsStep

    Contract:
    - consumes ctx.lines
    - produces ctx.stats_entries (sorted by key), ctx.stats_path,
      ctx.summary, ctx.field_stats, ctx.correlations, ctx.counts
    """

    stage = "stats"

    def __init__(
            self,
            cfg: StatsConfig,
            executor: MapReduceExecutor,
            inst: Instrumentation | None = None,
    ):
        super().__init__(inst)
        self.cfg = cfg
        self.executor = executor

    def run(self, ctx: RegressionContext) -> RegressionContext:
        with self.timed():
            job = StatsAggregator.from_config(self.cfg)
            entries = sorted(self.executor.run(job, ctx.lines), key=lambda kv: kv[0])
            if not entries:
                raise UserInputError(f"no feature records within {self.cfg.filter_range()}")

            with self.inst.timer("stats.write"):
                path = write_stats(
                    ctx.output_dir / self.cfg.stats_path,
                    entries,
                    header={
                        "variables": ", ".join(self.cfg.variables),
                        "date_range": str(self.cfg.filter_range()),
                    },
                )

            types = {f: self.cfg.variant_of(f) for f in self.cfg.variables}
            summary = StatsSummary.from_file(path, types, self.cfg.decimal_policy())

            ctx.stats_entries = entries
            ctx.stats_path = path
            ctx.summary = summary
            ctx.counts = summary.counts(self.cfg.variables)
            ctx.field_stats = summary.calc_all(self.cfg.variables)
            ctx.correlations = {
                canonical_pair(a, b): summary.calc_correlation(a, b).get(Stat.COR)
                for a, b, _ in job.keys.pairs
            }
            ctx.artifacts["stats"] = path

        for res in ctx.field_stats:
            logs.info(f"[StatsStep] {res.id}: { {s.value: v for s, v in res.values.items()} }")
        return ctx

