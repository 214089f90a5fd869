#!filepath: crimestat/regression/stopping.py
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from crimestat.config.regression_config import RegressionConfig
from crimestat.regression.model import ModelState
from crimestat.utils.errors import ConfigurationError


class StopReason(str, Enum):
    EPOCH_LIMIT = "epoch_limit"
    TARGET_COST = "target_cost"
    STEADY_STATE = "steady_state"
    COST_INCREASE = "cost_increase"
    TIME_LIMIT = "time_limit"


@dataclass(frozen=True)
class StopConditions:
    """
    A value of 0 disables a condition. At least one of epoch_limit,
    target_cost and steady_limit must be enabled.
    """

    epoch_limit: int = 0
    target_cost: float = 0.0
    steady_target: int = 0
    steady_limit: int = 0
    increase_limit: int = 0
    target_time: float = 0.0  # minutes

    @classmethod
    def from_config(cls, cfg: RegressionConfig) -> "StopConditions":
        return cls(
            epoch_limit=cfg.epoch_limit,
            target_cost=cfg.target_cost,
            steady_target=cfg.steady_target,
            steady_limit=cfg.steady_limit,
            increase_limit=cfg.increase_limit,
            target_time=cfg.target_time,
        )

    def validate(self) -> None:
        if not (self.epoch_limit > 0 or self.target_cost > 0 or self.steady_limit > 0):
            raise ConfigurationError(
                "no termination condition: set epoch_limit, target_cost or steady_limit"
            )
        if self.steady_limit > 0 and self.steady_target <= 0:
            raise ConfigurationError("steady_limit requires steady_target > 0")


def _truncate(x: float, places: int) -> float:
    scale = 10 ** places
    return math.trunc(x * scale) / scale


class ConvergenceMonitor:
    """
    Evaluates the stop conditions after every epoch.

    Semantics:
      - epoch limit    : epochs run >= epoch_limit
      - target cost    : cost <= target_cost
      - steady state   : cost and every parameter, truncated to
                         steady_target places, unchanged for steady_limit
                         consecutive epochs
      - cost increase  : increase_limit consecutive epochs with a higher cost
      - time limit     : target_time minutes since start()

    Also tracks the minimum cost seen and the epoch it occurred in.
    """

    def __init__(self, conditions: StopConditions, clock: Callable[[], float] = time.monotonic):
        conditions.validate()
        self.conditions = conditions
        self.clock = clock

        self.min_cost: Optional[float] = None
        self.min_cost_epoch: Optional[int] = None
        self.steady_count = 0
        self.increase_count = 0
        self._last_cost: Optional[float] = None
        self._last_fingerprint: Optional[Tuple[float, ...]] = None
        self._started: Optional[float] = None

    def start(self) -> None:
        self._started = self.clock()

    def elapsed_minutes(self) -> float:
        if self._started is None:
            return 0.0
        return (self.clock() - self._started) / 60.0

    def observe(self, epoch: int, cost: float, state: ModelState) -> Optional[StopReason]:
        c = self.conditions

        if self.min_cost is None or cost < self.min_cost:
            self.min_cost = cost
            self.min_cost_epoch = epoch

        if self._last_cost is not None and cost > self._last_cost:
            self.increase_count += 1
        else:
            self.increase_count = 0
        self._last_cost = cost

        if c.steady_limit > 0:
            fingerprint = (_truncate(cost, c.steady_target),) + state.truncated(c.steady_target)
            if fingerprint == self._last_fingerprint:
                self.steady_count += 1
            else:
                self.steady_count = 0
            self._last_fingerprint = fingerprint

        if c.target_cost > 0 and cost <= c.target_cost:
            return StopReason.TARGET_COST
        if c.steady_limit > 0 and self.steady_count >= c.steady_limit:
            return StopReason.STEADY_STATE
        if c.increase_limit > 0 and self.increase_count >= c.increase_limit:
            return StopReason.COST_INCREASE
        if c.epoch_limit > 0 and epoch >= c.epoch_limit:
            return StopReason.EPOCH_LIMIT
        if c.target_time > 0 and self.elapsed_minutes() >= c.target_time:
            return StopReason.TIME_LIMIT
        return None
