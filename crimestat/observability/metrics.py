#!filepath: crimestat/observability/metrics.py
from dataclasses import dataclass, field
from typing import Any, Dict

from crimestat.utils.logger import logs


@dataclass
class MetricRecorder:
    """
    Gauges (record) and monotonic counters (incr).

    Counters are the only metrics map/reduce tasks report: they add up the
    same way no matter how the input was partitioned.
    """

    enabled: bool = True
    metrics: Dict[str, Any] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)

    def record(self, name: str, value: Any):
        if not self.enabled:
            return
        self.metrics[name] = value
        logs.info(f"[Metric] {name} = {value}")

    def incr(self, name: str, n: int = 1):
        if not self.enabled:
            return
        if n < 0:
            raise ValueError(f"counter {name} cannot decrease (n={n})")
        self.counters[name] = self.counters.get(name, 0) + n

    def counter(self, name: str) -> int:
        return self.counters.get(name, 0)

    def report(self):
        if not self.enabled:
            return
        for name in sorted(self.counters):
            logs.info(f"[Counter] {name} = {self.counters[name]}")
