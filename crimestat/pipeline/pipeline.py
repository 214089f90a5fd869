#!filepath: crimestat/pipeline/pipeline.py
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from crimestat.io.records import read_lines
from crimestat.observability.instrumentation import Instrumentation
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.step import PipelineStep
from crimestat.utils.logger import logs


class AnalyticsPipeline:
    """
    AnalyticsPipeline = scheduler

    Rules:
    - the pipeline owns ordering and the context
    - the pipeline does no step-level timing
    - steps define their own time boundaries (PipelineStep.timed)
    """

    def __init__(
            self,
            steps: List[PipelineStep],
            output_dir: str | Path,
            inst: Instrumentation,
    ):
        self.steps = steps
        self.output_dir = Path(output_dir)
        self.inst = inst

    def run(self, run_id: str, inputs: Iterable[str | Path]) -> RegressionContext:
        logs.info(f"[Pipeline] ====== START {run_id} ======")

        out_dir = self.output_dir / run_id
        out_dir.mkdir(parents=True, exist_ok=True)

        ctx = RegressionContext(
            run_id=run_id,
            output_dir=out_dir,
            lines=read_lines(inputs),
        )
        logs.info(f"[Pipeline] {len(ctx.lines)} input lines")

        for step in self.steps:
            ctx = step.run(ctx)

        # timeline holds leaves only (written inside steps / executor)
        self.inst.generate_timeline_report(run_id)
        logs.info(f"[Pipeline] ====== END {run_id} ======")
        return ctx
