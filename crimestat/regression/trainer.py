#!filepath: crimestat/regression/trainer.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from crimestat.io.records import FeatureRecord, FeatureRecordParser
from crimestat.keys.key_tag import Metric, tag, tag_chain
from crimestat.mapreduce.job import MapReduceJob
from crimestat.regression.model import LinearRegressor, ModelState
from crimestat.utils.datetime_utils import DateRange
from crimestat.utils.errors import ZeroCountError
from crimestat.utils.logger import logs
from crimestat.values.value import Variant

Terms = Dict[str, float]


@dataclass(frozen=True)
class EpochResult:
    """Reduce output of one training epoch."""

    epoch: int
    state: ModelState
    cost: float
    variable_costs: Dict[str, float] = field(default_factory=dict)
    examples: int = 0

    @property
    def weights(self) -> Mapping[str, float]:
        return self.state.weights

    @property
    def bias(self) -> float:
        return self.state.bias


def _sum_terms(values: Sequence[Terms]) -> Terms:
    out: Terms = {}
    for v in values:
        for k, x in v.items():
            out[k] = out.get(k, 0.0) + x
    return out


class RegressionTrainer(MapReduceJob[Union[str, FeatureRecord], int, Terms, EpochResult]):
    """
    RegressionTrainer (one epoch of gradient descent)

    Contract:
      - the (weights, bias) snapshot is fixed for the whole epoch
      - map, per example and per independent x_i:
            yhat = w_i * x_i + b,  e = y - yhat,  se = e^2
            pdW  = -2 * x_i * e,   pdB = -2 * e
        emitted under key = epoch id as
            {x_i-PDW, x_i-ERR-SQ, x_i-CNT, dependent-ERR, dependent-PDB}
        dependent-ERR / dependent-PDB carry the mean over the independents
      - reduce, with n_i the precomputed count of x_i and n = n_0 the count
        of the first independent:
            cost  = (sum over i of sum se_i) / n
            w_i'  = w_i - (sum pdW_i / n_i) * lr
            b'    = b   - (sum pdB / n) * lr
        variable_costs keeps sum se_i / n_i per independent
      - missing weights or independent counts fail in setup, before any
        example; the dependent needs no count
    """

    name = "regression-train"

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

        fields = [dependent] + self.independents
        types = types or {}
        self.parser = FeatureRecordParser(
            {f: types.get(f, Variant.FLOAT64) for f in fields}, date_format
        )
        self.setup()

    @property
    def epoch_id(self) -> int:
        return self.state.epoch + 1

    def for_state(self, state: ModelState) -> "RegressionTrainer":
        """Same job against the next epoch's snapshot."""
        job = copy.copy(self)
        job.state = state
        job.setup()
        return job

    def setup(self) -> None:
        self.state.check(self.independents)
        zero = [f for f in self.independents if self.state.counts[f] <= 0]
        if zero:
            raise ZeroCountError(f"precomputed count is zero for {zero}")

    # --------------------------------------------------
    # map
    # --------------------------------------------------
    def map(self, item: Union[str, FeatureRecord]) -> Iterator[Tuple[int, Terms]]:
        record = self.parser.parse(item) if isinstance(item, str) else item
        if record is None or not self.date_range.contains(record.date):
            return
        yield self.epoch_id, self.terms(record)

    def terms(self, record: FeatureRecord) -> Terms:
        lr = LinearRegressor
        y = record[self.dependent].as_float()

        out: Terms = {}
        err_total = 0.0
        pdb_total = 0.0
        for x_name in self.independents:
            x = record[x_name].as_float()
            y_hat = lr.predict_one(self.state.weights[x_name], x, self.state.bias)
            e = lr.error(y, y_hat)

            out[tag(x_name, Metric.PDW)] = lr.pd_weight(x, e)
            out[tag_chain(x_name, [Metric.ERR, Metric.SQ])] = lr.sq_error(e)
            out[tag(x_name, Metric.CNT)] = 1.0
            err_total += e
            pdb_total += lr.pd_bias(e)

        k = len(self.independents)
        out[tag(self.dependent, Metric.ERR)] = err_total / k
        out[tag(self.dependent, Metric.PDB)] = pdb_total / k
        return out

    # --------------------------------------------------
    # combine / reduce
    # --------------------------------------------------
    def combine(self, key: int, values: List[Terms]) -> Iterator[Tuple[int, Terms]]:
        yield key, _sum_terms(values)

    def reduce(self, key: int, values: List[Terms]) -> Iterator[EpochResult]:
        lr = LinearRegressor
        sums = _sum_terms(values)
        counts = self.state.counts
        rate = self.state.learning_rate
        n_ref = counts[self.independents[0]]

        weights: Dict[str, float] = {}
        variable_costs: Dict[str, float] = {}
        sq_error_total = 0.0
        for x_name in self.independents:
            n = counts[x_name]
            sq_error = sums.get(tag_chain(x_name, [Metric.ERR, Metric.SQ]), 0.0)
            sq_error_total += sq_error
            variable_costs[x_name] = lr.cost(sq_error, n)
            weights[x_name] = lr.step(
                self.state.weights[x_name], sums.get(tag(x_name, Metric.PDW), 0.0), n, rate
            )

        bias = lr.step(self.state.bias, sums.get(tag(self.dependent, Metric.PDB), 0.0), n_ref, rate)
        cost = lr.cost(sq_error_total, n_ref)

        examples = int(sums.get(tag(self.independents[0], Metric.CNT), 0))
        if examples != n_ref:
            logs.debug(
                f"[RegressionTrainer] epoch {key}: {examples} examples, "
                f"precomputed count {n_ref}"
            )

        yield EpochResult(
            epoch=key,
            state=self.state.advance(weights, bias, cost),
            cost=cost,
            variable_costs=variable_costs,
            examples=examples,
        )
