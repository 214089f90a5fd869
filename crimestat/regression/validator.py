#!filepath: crimestat/regression/validator.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from crimestat.io.records import FeatureRecord, FeatureRecordParser, format_line
from crimestat.keys.key_tag import Metric, tag
from crimestat.mapreduce.job import MapReduceJob
from crimestat.regression.model import LinearRegressor, ModelState
from crimestat.utils.datetime_utils import DateRange
from crimestat.utils.errors import MissingCoefficientError
from crimestat.utils.logger import logs
from crimestat.values.value import Variant


@dataclass(frozen=True)
class ValidationResult:
    """
    Goodness of fit of the final model over the validation examples.

        SSR = sum((yhat - mean)^2)
        SSE = sum((y - yhat)^2)
        SST = sum((y - mean)^2)
        R^2 = SSR / SST
        adjusted R^2 = 1 - ((n - 1) / (n - k - 1)) * (1 - R^2)
        standard error = sqrt(SSE / (n - k - 1))
    """

    dependent: str
    n: int
    k: int
    y_mean: float
    ssr: float
    sse: float
    sst: float
    r_squared: float
    adjusted_r_squared: float
    standard_error: float
    examples: List[Tuple[date, float, float]] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "dependent": self.dependent,
            "n": self.n,
            "k": self.k,
            "y_mean": self.y_mean,
            "ssr": self.ssr,
            "sse": self.sse,
            "sst": self.sst,
            "r_squared": self.r_squared,
            "r_bar_squared": self.adjusted_r_squared,
            "std_error": self.standard_error,
        }

    def lines(self) -> List[str]:
        """one diagnostic line per example, then the fit statistics"""
        yhat_key = tag(self.dependent, Metric.YHAT)
        out = [
            format_line(d, {self.dependent: y, yhat_key: y_hat})
            for d, y, y_hat in self.examples
        ]
        out.append(format_line(self.dependent, {
            "r_squared": self.r_squared,
            "r_bar_squared": self.adjusted_r_squared,
            "std_error": self.standard_error,
        }))
        return out


Pair = Dict[str, Any]


class RegressionValidator(MapReduceJob[Union[str, FeatureRecord], str, Pair, ValidationResult]):
    """
    RegressionValidator

    map    : examples in the validation range -> (dependent, {date, y, yhat})
             with yhat = sum(w_i * x_i) + b from the final model
    reduce : buffers every (y, yhat) of the key; the y mean must be known
             before SSR / SST can be summed
    """

    name = "regression-validate"

    def __init__(
            self,
            dependent: str,
            independents: Sequence[str],
            state: ModelState,
            types: Optional[Mapping[str, Variant]] = None,
            date_range: DateRange = DateRange(),
            date_format: Optional[str] = None,
    ):
        self.dependent = dependent
        self.independents = list(independents)
        self.state = state
        self.date_range = date_range

        types = types or {}
        fields = [dependent] + self.independents
        self.parser = FeatureRecordParser(
            {f: types.get(f, Variant.FLOAT64) for f in fields}, date_format
        )
        self.setup()

    def setup(self) -> None:
        missing = [x for x in self.independents if x not in self.state.weights]
        if missing:
            raise MissingCoefficientError("weight", missing)

    def map(self, item: Union[str, FeatureRecord]) -> Iterator[Tuple[str, Pair]]:
        record = self.parser.parse(item) if isinstance(item, str) else item
        if record is None or not self.date_range.contains(record.date):
            return
        xs = {x: record[x].as_float() for x in self.independents}
        yield self.dependent, {
            "date": record.date,
            self.dependent: record[self.dependent].as_float(),
            tag(self.dependent, Metric.YHAT): LinearRegressor.predict(self.state, xs),
        }

    def reduce(self, key: str, values: List[Pair]) -> Iterator[ValidationResult]:
        lr = LinearRegressor
        yhat_key = tag(key, Metric.YHAT)
        cache = sorted((v["date"], v[key], v[yhat_key]) for v in values)

        n = len(cache)
        k = len(self.independents)
        y_mean = math.fsum(y for _, y, _ in cache) / n

        ssr = math.fsum((y_hat - y_mean) ** 2 for _, _, y_hat in cache)
        sse = math.fsum((y - y_hat) ** 2 for _, y, y_hat in cache)
        sst = math.fsum((y - y_mean) ** 2 for _, y, _ in cache)

        r2 = lr.r_squared(ssr, sst)
        result = ValidationResult(
            dependent=key,
            n=n,
            k=k,
            y_mean=y_mean,
            ssr=ssr,
            sse=sse,
            sst=sst,
            r_squared=r2,
            adjusted_r_squared=lr.adjusted_r_squared(r2, n, k),
            standard_error=lr.standard_error(sse, n, k),
            examples=cache,
        )
        logs.info(f"[RegressionValidator] {key} - {result.summary()}")
        yield result
