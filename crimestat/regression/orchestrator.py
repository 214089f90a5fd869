#!filepath: crimestat/regression/orchestrator.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from crimestat.mapreduce.executor import MapReduceExecutor
from crimestat.observability.instrumentation import Instrumentation, NoOpInstrumentation
from crimestat.regression.model import ModelState
from crimestat.regression.stopping import ConvergenceMonitor, StopConditions, StopReason
from crimestat.regression.trainer import RegressionTrainer
from crimestat.utils.errors import CrimeStatError
from crimestat.utils.logger import logs


class TrainingStatus(str, Enum):
    INIT = "init"
    RUNNING_EPOCH = "running_epoch"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass(frozen=True)
class EpochRecord:
    epoch: int
    cost: float
    weights: Dict[str, float]
    bias: float
    examples: int
    seconds: float


@dataclass
class TrainingOutcome:
    state: ModelState
    reason: StopReason
    epochs: int
    min_cost: Optional[float]
    min_cost_epoch: Optional[int]
    history: List[EpochRecord] = field(default_factory=list)

    def history_frame(self) -> pd.DataFrame:
        """one row per epoch: epoch, cost, bias, w_<independent>..., examples, seconds"""
        rows: List[Dict[str, Any]] = []
        for r in self.history:
            row: Dict[str, Any] = {"epoch": r.epoch, "cost": r.cost, "bias": r.bias}
            row.update({f"w_{k}": v for k, v in r.weights.items()})
            row["examples"] = r.examples
            row["seconds"] = r.seconds
            rows.append(row)
        return pd.DataFrame(rows)


class EpochOrchestrator:
    """
    EpochOrchestrator（FINAL）

    States:
        INIT -> RUNNING_EPOCH(n) -> ... -> CONVERGED
                        \\-> FAILED (error inside an epoch, re-raised)

    Rules:
      - epochs never overlap; epoch n+1 starts from epoch n's reduced state
      - stop conditions are checked between epochs only
      - a missing termination condition fails here, before any epoch
    """

    def __init__(
            self,
            trainer: RegressionTrainer,
            conditions: StopConditions,
            executor: MapReduceExecutor | None = None,
            inst: Instrumentation | None = None,
    ):
        self.trainer = trainer
        self.conditions = conditions
        self.monitor = ConvergenceMonitor(conditions)
        self.executor = executor or MapReduceExecutor()
        self.inst = inst if inst is not None else NoOpInstrumentation()

        self.status = TrainingStatus.INIT
        self.epoch = 0
        self.history: List[EpochRecord] = []

    def run(self, items: Iterable[Any]) -> TrainingOutcome:
        if self.status is not TrainingStatus.INIT:
            raise CrimeStatError(f"orchestrator already used (status={self.status.value})")

        items = list(items)
        state = self.trainer.state
        self.monitor.start()
        self.inst.progress.start("training", self.conditions.epoch_limit or None, "epochs")

        try:
            while True:
                self.status = TrainingStatus.RUNNING_EPOCH
                result = self._run_epoch(state, items)
                state = result.state
                self.epoch = result.epoch

                reason = self.monitor.observe(result.epoch, result.cost, state)
                if reason is not None:
                    break
        except Exception:
            self.status = TrainingStatus.FAILED
            logs.exception(f"[EpochOrchestrator] training failed in epoch {self.epoch + 1}")
            raise

        self.status = TrainingStatus.CONVERGED
        self.inst.progress.done("training")
        self.inst.metrics.record("training.epochs", self.epoch)
        self.inst.metrics.record("training.min_cost", self.monitor.min_cost)
        logs.info(
            f"[EpochOrchestrator] stopped: {reason.value} after {self.epoch} epochs, "
            f"cost={state.cost} min_cost={self.monitor.min_cost} @ epoch {self.monitor.min_cost_epoch}"
        )

        return TrainingOutcome(
            state=state,
            reason=reason,
            epochs=self.epoch,
            min_cost=self.monitor.min_cost,
            min_cost_epoch=self.monitor.min_cost_epoch,
            history=list(self.history),
        )

    def _run_epoch(self, state: ModelState, items: List[Any]):
        job = self.trainer.for_state(state)
        start = perf_counter()
        with self.inst.timer("training.epoch"):
            results = self.executor.run(job, items)
        if not results:
            raise CrimeStatError(f"epoch {job.epoch_id} produced no result: no training examples")
        result = results[0]

        self.history.append(EpochRecord(
            epoch=result.epoch,
            cost=result.cost,
            weights=dict(result.state.weights),
            bias=result.state.bias,
            examples=result.examples,
            seconds=perf_counter() - start,
        ))
        self.inst.progress.update("training", result.epoch, self.conditions.epoch_limit or None, "epochs")
        logs.debug(f"[EpochOrchestrator] epoch {result.epoch} cost={result.cost}")
        return result
