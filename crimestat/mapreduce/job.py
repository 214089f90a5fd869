#!filepath: crimestat/mapreduce/job.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, List, Tuple, TypeVar

In = TypeVar("In")
K = TypeVar("K")
V = TypeVar("V")
Out = TypeVar("Out")


class MapReduceJob(ABC, Generic[In, K, V, Out]):
    """
    One map/reduce job (pure logic, no I/O).

    Contract:
      - map / combine / reduce are pure functions of their arguments and
        the job's construction-time state, so any task may be re-run
      - combine output has the same type as map output and may be applied
        zero, one or many times
      - reduce receives every value of one key in arbitrary order

    Jobs are pickled into worker processes; keep them plain data.
    """

    name: str = ""

    def setup(self) -> None:
        """Called once before any input is mapped. Fatal checks go here."""

    @abstractmethod
    def map(self, item: In) -> Iterable[Tuple[K, V]]:
        raise NotImplementedError

    def combine(self, key: K, values: List[V]) -> Iterable[Tuple[K, V]]:
        raise NotImplementedError

    @abstractmethod
    def reduce(self, key: K, values: List[V]) -> Iterable[Out]:
        raise NotImplementedError

    @property
    def job_name(self) -> str:
        return self.name or self.__class__.__name__

    @property
    def has_combiner(self) -> bool:
        return type(self).combine is not MapReduceJob.combine
