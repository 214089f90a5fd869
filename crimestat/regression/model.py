#!filepath: crimestat/regression/model.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from crimestat.utils.errors import MissingCoefficientError


@dataclass(frozen=True)
class ModelState:
    """
    ModelState（FROZEN）

    The (weights, bias) snapshot one epoch trains against, plus the per-field
    observation counts used as gradient divisors. An epoch never mutates it:
    the trainer's reduce returns the next state.
    """

    weights: Mapping[str, float]
    bias: float
    learning_rate: float
    counts: Mapping[str, int] = field(default_factory=dict)
    epoch: int = 0
    cost: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    def __reduce__(self):
        # MappingProxyType does not pickle; worker processes get plain dicts
        return (
            ModelState,
            (dict(self.weights), self.bias, self.learning_rate, dict(self.counts), self.epoch, self.cost),
        )

    @property
    def independents(self) -> List[str]:
        return list(self.weights)

    def advance(self, weights: Mapping[str, float], bias: float, cost: float) -> "ModelState":
        return replace(self, weights=weights, bias=bias, cost=cost, epoch=self.epoch + 1)

    def parameters(self) -> Tuple[float, ...]:
        """weights (in independent order) followed by bias"""
        return tuple(self.weights.values()) + (self.bias,)

    def truncated(self, places: int) -> Tuple[float, ...]:
        """parameters truncated (toward zero) to `places` decimal places"""
        scale = 10 ** places
        return tuple(math.trunc(p * scale) / scale for p in self.parameters())

    def check(self, independents: Iterable[str]) -> None:
        independents = list(independents)
        missing_w = [x for x in independents if x not in self.weights]
        if missing_w:
            raise MissingCoefficientError("weight", missing_w)
        missing_n = [x for x in independents if x not in self.counts]
        if missing_n:
            raise MissingCoefficientError("count", missing_n)

    # --------------------------------------------------
    # model file: {weights, bias, learning_rate, epoch, cost}
    # --------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": dict(self.weights),
            "bias": self.bias,
            "learning_rate": self.learning_rate,
            "epoch": self.epoch,
            "cost": self.cost,
        }

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path, counts: Optional[Mapping[str, int]] = None) -> "ModelState":
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")), counts)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any], counts: Optional[Mapping[str, int]] = None) -> "ModelState":
        return cls(
            weights={k: float(v) for k, v in d["weights"].items()},
            bias=float(d["bias"]),
            learning_rate=float(d["learning_rate"]),
            counts=counts or {},
            epoch=int(d.get("epoch", 0)),
            cost=d.get("cost"),
        )


class LinearRegressor:
    """
    Per-variable linear regression formulas.

    Training treats each independent separately (yhat_i = w_i * x_i + b);
    prediction for validation uses the joint yhat = sum(w_i * x_i) + b.
    """

    # ---------------- training terms ----------------
    @staticmethod
    def predict_one(weight: float, x: float, bias: float) -> float:
        return weight * x + bias

    @staticmethod
    def error(y: float, y_hat: float) -> float:
        return y - y_hat

    @staticmethod
    def sq_error(e: float) -> float:
        return e * e

    @staticmethod
    def pd_weight(x: float, e: float) -> float:
        """d(e^2)/dw = -2 * x * e"""
        return -2.0 * x * e

    @staticmethod
    def pd_bias(e: float) -> float:
        """d(e^2)/db = -2 * e"""
        return -2.0 * e

    @staticmethod
    def cost(sq_error_sum: float, n: int) -> float:
        return sq_error_sum / n

    @staticmethod
    def step(param: float, pd_sum: float, n: int, learning_rate: float) -> float:
        """param - (mean partial derivative) * lr"""
        return param - (pd_sum / n) * learning_rate

    # ---------------- prediction ----------------
    @staticmethod
    def predict(state: ModelState, xs: Mapping[str, float]) -> float:
        total = state.bias
        for name, w in state.weights.items():
            if name not in xs:
                raise KeyError(f"missing value for independent variable {name!r}")
            total += w * xs[name]
        return total

    # ---------------- goodness of fit ----------------
    @staticmethod
    def r_squared(ssr: float, sst: float) -> float:
        if sst == 0:
            return math.nan
        return ssr / sst

    @staticmethod
    def adjusted_r_squared(r2: float, n: int, k: int) -> float:
        dof = n - k - 1
        if dof <= 0:
            return math.nan
        return 1.0 - ((n - 1) / dof) * (1.0 - r2)

    @staticmethod
    def standard_error(sse: float, n: int, k: int) -> float:
        dof = n - k - 1
        if dof <= 0:
            return math.nan
        return math.sqrt(sse / dof)
