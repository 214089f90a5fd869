#!filepath: crimestat/pipeline/step.py
from __future__ import annotations

from crimestat.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)
from crimestat.pipeline.context import RegressionContext


class PipelineStep:
    """
    Pipeline step base class.

    Role:
      1. orchestration only (which job, which inputs, where results go)
      2. step-level time boundary (parent scope)

    Rules:
      - the step itself is never a timeline entry
      - leaf timers live inside the step
      - behaviour never depends on whether inst is real or no-op
    """

    stage: str = ""

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self):
        """Step-level scope: record=False, never lands in the timeline."""
        return self.inst.timer(self.step_name, record=False)

    def run(self, ctx: RegressionContext) -> RegressionContext:
        raise NotImplementedError
