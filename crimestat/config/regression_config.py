# crimestat/config/regression_config.py
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from crimestat.utils.datetime_utils import DateRange
from crimestat.utils.errors import ConfigurationError, MissingCoefficientError


class RegressionConfig(BaseModel):
    """
    RegressionConfig（FINAL / FROZEN）

    model
        dependent / independents, initial weight (scalar broadcast to every
        independent, or one entry per independent), bias, learning rate

    termination (at least one of the first three, checked at training setup)
        epoch_limit    : stop once this many epochs have run
        target_cost    : stop once cost <= target_cost
        steady_limit   : stop once cost and parameters, truncated to
                         `steady_target` decimal places, are unchanged for
                         this many epochs
        increase_limit : stop after this many consecutive cost increases
        target_time    : stop after this many minutes of wall clock

    dates
        train_*    : examples used by the trainer
        validate_* : examples used by the validator
    """

    model_config = ConfigDict(frozen=True)

    # -------------------------
    # model
    # -------------------------
    dependent: str
    independents: List[str]
    weight: Union[float, Dict[str, float]] = 0.0
    bias: float = 0.0
    learning_rate: float = Field(default=0.01, gt=0)

    # -------------------------
    # termination
    # -------------------------
    epoch_limit: int = Field(default=0, ge=0)
    target_cost: float = Field(default=0.0, ge=0)
    steady_target: int = Field(default=0, ge=0)
    steady_limit: int = Field(default=0, ge=0)
    increase_limit: int = Field(default=0, ge=0)
    target_time: float = Field(default=0.0, ge=0)

    # -------------------------
    # dates
    # -------------------------
    train_start_date: Optional[date] = None
    train_end_date: Optional[date] = None
    validate_start_date: Optional[date] = None
    validate_end_date: Optional[date] = None

    # -------------------------
    # artifacts
    # -------------------------
    output_dir: str = "output"
    model_file: str = "model.json"
    history_file: str = "history.parquet"
    validation_file: str = "validation.json"

    @field_validator("independents")
    @classmethod
    def _non_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one independent variable is required")
        if len(set(v)) != len(v):
            raise ValueError(f"duplicate independent variables {v}")
        return v

    @model_validator(mode="after")
    def _check(self) -> "RegressionConfig":
        if self.dependent in self.independents:
            raise ValueError(f"{self.dependent} is both dependent and independent")
        if self.steady_limit > 0 and self.steady_target <= 0:
            raise ValueError("steady_limit requires steady_target > 0")
        self.train_range()
        self.validate_range()
        return self

    # --------------------------------------------------
    # derived
    # --------------------------------------------------
    def train_range(self) -> DateRange:
        return DateRange(self.train_start_date, self.train_end_date)

    def validate_range(self) -> DateRange:
        return DateRange(self.validate_start_date, self.validate_end_date)

    def coefficients(self) -> Dict[str, float]:
        """Initial weight per independent; a scalar weight is broadcast."""
        if isinstance(self.weight, dict):
            missing = [x for x in self.independents if x not in self.weight]
            if missing:
                raise MissingCoefficientError("weight", missing)
            return {x: float(self.weight[x]) for x in self.independents}
        return {x: float(self.weight) for x in self.independents}

    def has_termination(self) -> bool:
        return self.epoch_limit > 0 or self.target_cost > 0 or self.steady_limit > 0

    def check_termination(self) -> None:
        if not self.has_termination():
            raise ConfigurationError(
                "no termination condition: set epoch_limit, target_cost or steady_limit"
            )
